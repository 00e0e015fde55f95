from __future__ import annotations

from enum import Enum
from typing import Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from rehearsal.timer import clamp_minutes

T = TypeVar("T")


class CallSource(str, Enum):
    REMOTE = "remote"
    FALLBACK = "fallback"


class FallbackReason(str, Enum):
    UNAVAILABLE = "unavailable"  # no credential configured
    FAILURE = "failure"  # exception or blank result


class CallOutcome(BaseModel, Generic[T]):
    op: str
    value: T
    source: CallSource
    reason: Optional[FallbackReason] = None

    @classmethod
    def remote(cls, op: str, value: T) -> "CallOutcome[T]":
        return cls(op=op, value=value, source=CallSource.REMOTE)

    @classmethod
    def fallback(cls, op: str, value: T, reason: FallbackReason) -> "CallOutcome[T]":
        return cls(op=op, value=value, source=CallSource.FALLBACK, reason=reason)

    @property
    def is_fallback(self) -> bool:
        return self.source == CallSource.FALLBACK


class GeneratedQuestion(BaseModel):
    question: str
    starter_code: str = ""


class CommandKind(str, Enum):
    START_TIMER = "start_timer"
    PAUSE_TIMER = "pause_timer"
    RESET_TIMER = "reset_timer"
    SET_COMPANY = "set_company"
    GENERATE_QUESTION = "generate_question"
    EVALUATE_SOLUTION = "evaluate_solution"
    UNRECOGNIZED = "unrecognized"


class Command(BaseModel):
    kind: CommandKind
    company: Optional[str] = None

    @classmethod
    def set_company(cls, name: str) -> "Command":
        return cls(kind=CommandKind.SET_COMPANY, company=name)


class SessionState:
    """Per-connection session record. Only InterviewSession mutates it."""

    def __init__(self, duration_minutes: Optional[int] = None) -> None:
        minutes = clamp_minutes(duration_minutes)
        self.company: Optional[str] = None
        self.duration_minutes: int = minutes
        self.pending_duration_minutes: Optional[int] = None
        self.remaining_seconds: int = minutes * 60
        self.running: bool = False
        self.question: str = ""
        self.starter_code: str = ""
        self.code: str = ""
        self.evaluation: str = ""
        self.feedback: str = ""
        self.language: str = "python"
        self.voice_connected: bool = False
        self.last_source: Dict[str, str] = {}


class GenerateRequest(BaseModel):
    company: Optional[str] = None


class EvaluateRequest(BaseModel):
    question: Optional[str] = None
    code: Optional[str] = None


class FeedbackRequest(BaseModel):
    company: Optional[str] = None
    question: Optional[str] = None
    code: Optional[str] = None
    evaluation: Optional[str] = None
    time_spent: int = Field(default=0, alias="timeSpent", ge=0)


class ResumeReviewRequest(BaseModel):
    resume_text: Optional[str] = Field(default=None, alias="resumeText")
