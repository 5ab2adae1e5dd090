from interview_pipeline.db.base import Base
from interview_pipeline.models.audit_log import RecAuditLog
from interview_pipeline.models.candidate import RecCandidate
from interview_pipeline.models.interview import RecInterview
from interview_pipeline.models.interviewer_lock import RecInterviewerLock
from interview_pipeline.models.notification import RecNotification
from interview_pipeline.models.stage import RecInterviewStage

__all__ = [
    "Base",
    "RecAuditLog",
    "RecCandidate",
    "RecInterview",
    "RecInterviewStage",
    "RecInterviewerLock",
    "RecNotification",
]
