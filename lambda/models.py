"""
Value types shared by the judge adapters, the matcher and the verification service.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class Platform(str, Enum):
    """Supported judges. Values are the names used in slash command options."""
    CODEFORCES = 'codeforces'
    CODECHEF = 'codechef'

    @property
    def display_name(self) -> str:
        return 'Codeforces' if self is Platform.CODEFORCES else 'CodeChef'


class Outcome(str, Enum):
    """Result of a start or verify attempt, as reported to the command layer."""
    STARTED = 'started'
    VERIFIED = 'verified'
    NOT_YET = 'not_yet'
    MISMATCH = 'mismatch'
    EXPIRED = 'expired'
    NOT_FOUND = 'not_found'
    DUPLICATE_LINK = 'duplicate_link'
    BACKEND_UNAVAILABLE = 'backend_unavailable'
    VERIFIED_NOT_SAVED = 'verified_not_saved'
    STORAGE_ERROR = 'storage_error'
    INVALID_INPUT = 'invalid_input'


@dataclass(frozen=True)
class ProblemRef:
    """
    Judge problem reference.

    Codeforces problems are (contest_id, index), e.g. (1000, 'A').
    CodeChef problems only have a code, stored as the index with no contest.
    """
    contest_id: Optional[int]
    index: str

    def matches(self, other: 'ProblemRef') -> bool:
        return (
            self.contest_id == other.contest_id
            and self.index.upper() == other.index.upper()
        )

    def __str__(self) -> str:
        if self.contest_id is None:
            return self.index
        return f"{self.contest_id}{self.index}"


@dataclass(frozen=True)
class Submission:
    problem_ref: ProblemRef
    verdict: str
    timestamp_seconds: int
    submission_id: Optional[str] = None


@dataclass(frozen=True)
class Problem:
    id: str
    name: str
    url: str
    rating: Optional[int] = None


@dataclass(frozen=True)
class UserProfile:
    username: str
    rank: Optional[str]
    rating: int = 0


@dataclass(frozen=True)
class RoleAssignment:
    verified_role_assigned: bool = False
    rank_role_assigned: bool = False


@dataclass(frozen=True)
class VerificationSession:
    """A pending challenge. Never mutated: transitions delete and recreate."""
    id: str
    user_id: str
    guild_id: str
    platform: Platform
    username: str
    problem_id: str
    problem_url: str
    problem_name: str
    started_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def remaining(self, now: datetime) -> timedelta:
        return max(self.expires_at - now, timedelta(0))

    @property
    def started_at_seconds(self) -> int:
        """Start instant floored to whole seconds, the granularity judges report."""
        return math.floor(self.started_at.timestamp())


@dataclass(frozen=True)
class LinkedAccount:
    user_id: str
    guild_id: str
    platform: Platform
    username: str
    rank: Optional[str] = None
    verified_at: Optional[datetime] = None


@dataclass
class VerificationResult:
    """One per platform, handed to the command layer to render."""
    platform: Optional[Platform]
    username: Optional[str]
    outcome: Outcome
    message: str
    rank: Optional[str] = None
    problem_url: Optional[str] = None
    problem_name: Optional[str] = None
    problem_rating: Optional[int] = None
    time_remaining: Optional[str] = None
    remaining_seconds: Optional[int] = None
    roles: RoleAssignment = field(default_factory=RoleAssignment)

    @property
    def success(self) -> bool:
        return self.outcome in (Outcome.STARTED, Outcome.VERIFIED)
