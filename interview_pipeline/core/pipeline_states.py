from __future__ import annotations


# Candidate lifecycle statuses.
CANDIDATE_ACTIVE = "active"
CANDIDATE_DOCUMENTATION = "documentation"
CANDIDATE_HIRED = "hired"
CANDIDATE_REJECTED = "rejected"
CANDIDATE_DISMISSED = "dismissed"
CANDIDATE_ARCHIVED = "archived"

ALL_CANDIDATE_STATUSES: tuple[str, ...] = (
    CANDIDATE_ACTIVE,
    CANDIDATE_DOCUMENTATION,
    CANDIDATE_HIRED,
    CANDIDATE_REJECTED,
    CANDIDATE_DISMISSED,
    CANDIDATE_ARCHIVED,
)

# Explicit state diagram:
# each key can only move to the listed next statuses.
CANDIDATE_GRAPH: dict[str, frozenset[str]] = {
    CANDIDATE_ACTIVE: frozenset(
        {CANDIDATE_DOCUMENTATION, CANDIDATE_REJECTED, CANDIDATE_DISMISSED, CANDIDATE_ARCHIVED}
    ),
    CANDIDATE_DOCUMENTATION: frozenset({CANDIDATE_HIRED, CANDIDATE_REJECTED, CANDIDATE_ARCHIVED}),
    CANDIDATE_HIRED: frozenset({CANDIDATE_DISMISSED}),
    CANDIDATE_REJECTED: frozenset({CANDIDATE_ARCHIVED}),
    CANDIDATE_DISMISSED: frozenset({CANDIDATE_ARCHIVED}),
    CANDIDATE_ARCHIVED: frozenset(),
}


# Interview stage statuses.
STAGE_WAITING = "waiting"
STAGE_PENDING = "pending"
STAGE_IN_PROGRESS = "in_progress"
STAGE_PASSED = "passed"
STAGE_FAILED = "failed"

ALL_STAGE_STATUSES: tuple[str, ...] = (
    STAGE_WAITING,
    STAGE_PENDING,
    STAGE_IN_PROGRESS,
    STAGE_PASSED,
    STAGE_FAILED,
)

TERMINAL_STAGE_STATUSES: frozenset[str] = frozenset({STAGE_PASSED, STAGE_FAILED})
STAGE_OUTCOMES: frozenset[str] = TERMINAL_STAGE_STATUSES

STAGE_GRAPH: dict[str, frozenset[str]] = {
    STAGE_WAITING: frozenset({STAGE_PENDING, STAGE_IN_PROGRESS, STAGE_PASSED, STAGE_FAILED}),
    STAGE_PENDING: frozenset({STAGE_IN_PROGRESS, STAGE_PASSED, STAGE_FAILED}),
    STAGE_IN_PROGRESS: frozenset({STAGE_PENDING, STAGE_PASSED, STAGE_FAILED}),
    STAGE_PASSED: frozenset(),
    STAGE_FAILED: frozenset(),
}


# Interview booking statuses and outcomes.
INTERVIEW_SCHEDULED = "scheduled"
INTERVIEW_COMPLETED = "completed"
INTERVIEW_CANCELLED = "cancelled"
INTERVIEW_RESCHEDULED = "rescheduled"

ALL_INTERVIEW_STATUSES: tuple[str, ...] = (
    INTERVIEW_SCHEDULED,
    INTERVIEW_COMPLETED,
    INTERVIEW_CANCELLED,
    INTERVIEW_RESCHEDULED,
)

# Bookings in these statuses still hold the interviewer's time.
ACTIVE_INTERVIEW_STATUSES: frozenset[str] = frozenset({INTERVIEW_SCHEDULED, INTERVIEW_RESCHEDULED})

OUTCOME_PASSED = "passed"
OUTCOME_FAILED = "failed"
OUTCOME_PENDING = "pending"
INTERVIEW_OUTCOMES: frozenset[str] = frozenset({OUTCOME_PASSED, OUTCOME_FAILED, OUTCOME_PENDING})


def normalize_status(raw: str | None) -> str | None:
    if raw is None:
        return None
    normalized = raw.strip().lower().replace(" ", "_").replace("-", "_")
    return normalized or None


def is_terminal_stage_status(status: str | None) -> bool:
    return normalize_status(status) in TERMINAL_STAGE_STATUSES


def can_transition_stage(from_status: str | None, to_status: str | None) -> bool:
    from_normalized = normalize_status(from_status)
    to_normalized = normalize_status(to_status)
    if to_normalized not in STAGE_GRAPH:
        return False
    # Freshly created stages have no status yet.
    if from_normalized is None:
        return to_normalized in {STAGE_WAITING, STAGE_PENDING}
    if from_normalized == to_normalized:
        return False
    return to_normalized in STAGE_GRAPH.get(from_normalized, frozenset())


def can_transition_candidate(from_status: str | None, to_status: str | None) -> bool:
    from_normalized = normalize_status(from_status)
    to_normalized = normalize_status(to_status)
    if to_normalized not in CANDIDATE_GRAPH:
        return False
    if from_normalized is None:
        return to_normalized == CANDIDATE_ACTIVE
    if from_normalized == to_normalized:
        return False
    return to_normalized in CANDIDATE_GRAPH.get(from_normalized, frozenset())
