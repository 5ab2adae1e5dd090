from __future__ import annotations

import unittest

from interview_pipeline.core.pipeline_states import (
    ACTIVE_INTERVIEW_STATUSES,
    ALL_CANDIDATE_STATUSES,
    ALL_INTERVIEW_STATUSES,
    ALL_STAGE_STATUSES,
    CANDIDATE_ACTIVE,
    CANDIDATE_ARCHIVED,
    CANDIDATE_DISMISSED,
    CANDIDATE_DOCUMENTATION,
    CANDIDATE_GRAPH,
    CANDIDATE_HIRED,
    CANDIDATE_REJECTED,
    INTERVIEW_CANCELLED,
    INTERVIEW_COMPLETED,
    INTERVIEW_OUTCOMES,
    OUTCOME_FAILED,
    OUTCOME_PASSED,
    OUTCOME_PENDING,
    STAGE_FAILED,
    STAGE_GRAPH,
    STAGE_IN_PROGRESS,
    STAGE_PASSED,
    STAGE_PENDING,
    STAGE_WAITING,
    TERMINAL_STAGE_STATUSES,
    can_transition_candidate,
    can_transition_stage,
    is_terminal_stage_status,
    normalize_status,
)


class CandidateGraphTests(unittest.TestCase):
    def test_graph_covers_all_statuses(self) -> None:
        self.assertSetEqual(set(CANDIDATE_GRAPH.keys()), set(ALL_CANDIDATE_STATUSES))
        for targets in CANDIDATE_GRAPH.values():
            self.assertTrue(targets.issubset(set(ALL_CANDIDATE_STATUSES)))

    def test_interview_phase_exits(self) -> None:
        self.assertTrue(can_transition_candidate(CANDIDATE_ACTIVE, CANDIDATE_DOCUMENTATION))
        self.assertTrue(can_transition_candidate(CANDIDATE_ACTIVE, CANDIDATE_REJECTED))
        self.assertFalse(can_transition_candidate(CANDIDATE_ACTIVE, CANDIDATE_HIRED))

    def test_terminal_statuses_do_not_return_to_active(self) -> None:
        for status in (CANDIDATE_REJECTED, CANDIDATE_DOCUMENTATION, CANDIDATE_HIRED, CANDIDATE_DISMISSED):
            self.assertFalse(can_transition_candidate(status, CANDIDATE_ACTIVE))
        self.assertEqual(CANDIDATE_GRAPH[CANDIDATE_ARCHIVED], frozenset())

    def test_hire_then_dismiss_path(self) -> None:
        path = [CANDIDATE_ACTIVE, CANDIDATE_DOCUMENTATION, CANDIDATE_HIRED, CANDIDATE_DISMISSED, CANDIDATE_ARCHIVED]
        for current, target in zip(path, path[1:]):
            self.assertTrue(can_transition_candidate(current, target), f"{current} -> {target}")
        self.assertFalse(can_transition_candidate(CANDIDATE_HIRED, CANDIDATE_ARCHIVED))
        self.assertFalse(can_transition_candidate(CANDIDATE_DOCUMENTATION, CANDIDATE_DISMISSED))

    def test_new_candidates_start_active(self) -> None:
        self.assertTrue(can_transition_candidate(None, CANDIDATE_ACTIVE))
        self.assertFalse(can_transition_candidate(None, CANDIDATE_HIRED))


class StageGraphTests(unittest.TestCase):
    def test_graph_covers_all_statuses(self) -> None:
        self.assertSetEqual(set(STAGE_GRAPH.keys()), set(ALL_STAGE_STATUSES))

    def test_terminal_statuses_have_no_edges(self) -> None:
        for status in TERMINAL_STAGE_STATUSES:
            self.assertTrue(is_terminal_stage_status(status))
            self.assertEqual(STAGE_GRAPH[status], frozenset())
        self.assertFalse(is_terminal_stage_status(STAGE_IN_PROGRESS))

    def test_scheduling_and_outcome_edges(self) -> None:
        self.assertTrue(can_transition_stage(STAGE_WAITING, STAGE_IN_PROGRESS))
        self.assertTrue(can_transition_stage(STAGE_PENDING, STAGE_IN_PROGRESS))
        self.assertTrue(can_transition_stage(STAGE_IN_PROGRESS, STAGE_PENDING))
        self.assertTrue(can_transition_stage(STAGE_IN_PROGRESS, STAGE_PASSED))
        self.assertTrue(can_transition_stage(STAGE_WAITING, STAGE_FAILED))
        self.assertFalse(can_transition_stage(STAGE_PASSED, STAGE_FAILED))
        self.assertFalse(can_transition_stage(STAGE_IN_PROGRESS, STAGE_WAITING))

    def test_initial_status_is_waiting_or_pending(self) -> None:
        self.assertTrue(can_transition_stage(None, STAGE_WAITING))
        self.assertTrue(can_transition_stage(None, STAGE_PENDING))
        self.assertFalse(can_transition_stage(None, STAGE_PASSED))
        self.assertFalse(can_transition_stage(None, "bogus"))

    def test_normalize_status(self) -> None:
        self.assertEqual(normalize_status(" In Progress "), STAGE_IN_PROGRESS)
        self.assertEqual(normalize_status("in-progress"), STAGE_IN_PROGRESS)
        self.assertIsNone(normalize_status("   "))
        self.assertIsNone(normalize_status(None))


class InterviewStatusTests(unittest.TestCase):
    def test_only_open_bookings_hold_time(self) -> None:
        self.assertTrue(ACTIVE_INTERVIEW_STATUSES.issubset(set(ALL_INTERVIEW_STATUSES)))
        self.assertNotIn(INTERVIEW_CANCELLED, ACTIVE_INTERVIEW_STATUSES)
        self.assertNotIn(INTERVIEW_COMPLETED, ACTIVE_INTERVIEW_STATUSES)

    def test_outcomes(self) -> None:
        self.assertSetEqual(set(INTERVIEW_OUTCOMES), {OUTCOME_PASSED, OUTCOME_FAILED, OUTCOME_PENDING})


if __name__ == "__main__":
    unittest.main()
