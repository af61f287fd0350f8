"""Framework-agnostic domain models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, fields
from enum import Enum
from typing import Optional


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"


class ErrorCode(str, Enum):
    # Enrichment
    NOT_READY = "NOT_READY"
    INVALID_URL = "INVALID_URL"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    INVALID_HEADER = "INVALID_HEADER"
    INVALID_STATUS = "INVALID_STATUS"
    CONVERSION = "CONVERSION"
    INVALID_API_TOKEN = "INVALID_API_TOKEN"
    INVALID_NAME = "INVALID_NAME"
    LIMIT_REACHED = "LIMIT_REACHED"
    NOT_FOUND = "NOT_FOUND"
    COMPLETION_FAILED = "COMPLETION_FAILED"

    # Record store
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorCategory(str, Enum):
    """Broad family of an enrichment failure."""

    CONFIGURATION = "CONFIGURATION"
    INPUT = "INPUT"
    QUOTA = "QUOTA"
    TRANSPORT = "TRANSPORT"
    PROTOCOL = "PROTOCOL"
    ABSENT = "ABSENT"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def outcome(self) -> "Outcome":
        if self in (ErrorCategory.INPUT, ErrorCategory.ABSENT):
            return Outcome.CLIENT_ERROR
        if self is ErrorCategory.QUOTA:
            return Outcome.RETRY_LATER
        return Outcome.SERVER_ERROR


_SEVERITY = {
    ErrorCategory.INPUT: 0,
    ErrorCategory.ABSENT: 0,
    ErrorCategory.QUOTA: 1,
    ErrorCategory.TRANSPORT: 2,
    ErrorCategory.CONFIGURATION: 2,
    ErrorCategory.PROTOCOL: 2,
}


class Outcome(str, Enum):
    """How a caller should surface a failure to its own client."""

    CLIENT_ERROR = "CLIENT_ERROR"
    RETRY_LATER = "RETRY_LATER"
    SERVER_ERROR = "SERVER_ERROR"


@dataclass(frozen=True)
class EnrichmentResult:
    """Attributes filled in from the sources; a field stays None when its source failed."""

    sex: Optional[Sex] = None
    nationality: Optional[str] = None
    age: Optional[int] = None

    @property
    def complete(self) -> bool:
        return self.sex is not None and self.nationality is not None and self.age is not None


@dataclass(frozen=True)
class Person:
    name: str
    surname: str
    patronymic: str
    nationality: str
    sex: Sex
    age: int
    id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class PersonPartial:
    name: Optional[str] = None
    surname: Optional[str] = None
    patronymic: Optional[str] = None
    nationality: Optional[str] = None
    sex: Optional[Sex] = None
    age: Optional[int] = None

    def changes(self) -> dict:
        """Fields that are set, by name."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    @property
    def empty(self) -> bool:
        return not self.changes()
