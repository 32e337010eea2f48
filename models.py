from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    ADMIN = "Administrator"
    COLLECTOR = "Collector"
    VIEWER = "Viewer"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


@dataclass
class User:
    id: str
    name: str
    email: str
    role: UserRole
    avatar: str
    created_at: int  # epoch ms
    status: UserStatus = UserStatus.PENDING
    access_logs: list = field(default_factory=list)  # epoch ms, newest first


@dataclass(frozen=True)
class PhotoEntry:
    id: str  # UUID
    url: str  # data URL or remote URL
    timestamp: int  # epoch ms
    user_id: str
    description: str = ""
    tags: tuple = ()
    vehicle_model: Optional[str] = None
    license_plate: Optional[str] = None
    location: Optional[str] = None


@dataclass
class AnalysisResult:
    description: str = ""
    tags: list = field(default_factory=list)
    vehicle_model: str = ""
    license_plate: str = ""

    def copy(self) -> "AnalysisResult":
        return AnalysisResult(self.description, list(self.tags), self.vehicle_model, self.license_plate)


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    SOFT_FAILURE = "soft_failure"  # service answered but could not identify the vehicle
    HARD_FAILURE = "hard_failure"  # service unreachable or response unusable


@dataclass
class AnalysisOutcome:
    kind: OutcomeKind
    result: AnalysisResult
    error: Optional[str] = None

    @classmethod
    def success(cls, result: AnalysisResult) -> "AnalysisOutcome":
        return cls(OutcomeKind.SUCCESS, result)

    @classmethod
    def soft_failure(cls, result: AnalysisResult) -> "AnalysisOutcome":
        return cls(OutcomeKind.SOFT_FAILURE, result)

    @classmethod
    def hard_failure(cls, error: str) -> "AnalysisOutcome":
        return cls(OutcomeKind.HARD_FAILURE, AnalysisResult(), error)
