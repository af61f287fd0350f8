"""Domain-specific errors.

Enrichment errors are mapped to HTTP outcomes through their category in the
transport layer; record errors map to HTTP status codes directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Optional

from .models import ErrorCategory, ErrorCode, Outcome

if TYPE_CHECKING:
    from .models import EnrichmentResult


@dataclass(frozen=True)
class DomainErrorInfo:
    code: str
    message: str
    detail: Optional[str] = None


class EnrichmentError(Exception):
    """Base class for all enrichment failures."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    category: ErrorCategory = ErrorCategory.TRANSPORT
    default_message: str = "enrichment error"

    def __init__(self, message: str | None = None, *, source: str | None = None, detail: str | None = None):
        message = message or self.default_message
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)
        self.info = DomainErrorInfo(code=self.code.value, message=message, detail=detail)

    @property
    def outcome(self) -> Outcome:
        return self.category.outcome

    def matches(self, kind: type[EnrichmentError]) -> bool:
        """Return True if this failure is of the given kind."""
        return isinstance(self, kind)

    def bind_source(self, source: str) -> None:
        """Attach the name of the failing source if none is set yet."""
        if self.source is None:
            self.source = source
            self.args = (f"{source}: {self.info.message}",)


class NotReadyError(EnrichmentError):
    """Raised when quota data is requested before any successful call."""

    code = ErrorCode.NOT_READY
    category = ErrorCategory.CONFIGURATION
    default_message = "fetcher is not ready (not used yet)"


class InvalidURLError(EnrichmentError):
    code = ErrorCode.INVALID_URL
    category = ErrorCategory.CONFIGURATION
    default_message = "invalid URL"


class FetchTimeoutError(EnrichmentError):
    code = ErrorCode.TIMEOUT
    category = ErrorCategory.TRANSPORT
    default_message = "timeout"


class NetworkError(EnrichmentError):
    code = ErrorCode.NETWORK_ERROR
    category = ErrorCategory.TRANSPORT
    default_message = "network error"


class InvalidResponseError(EnrichmentError):
    """Raised when the source breaks its response contract."""

    code = ErrorCode.INVALID_RESPONSE
    category = ErrorCategory.PROTOCOL
    default_message = "invalid response"


class InvalidHeaderError(InvalidResponseError):
    code = ErrorCode.INVALID_HEADER
    default_message = "invalid header"


class InvalidStatusError(InvalidResponseError):
    code = ErrorCode.INVALID_STATUS
    default_message = "invalid status code"


class ConversionError(InvalidResponseError):
    """Raised when the body parses but its value fails validation."""

    code = ErrorCode.CONVERSION
    default_message = "conversion error"


class InvalidAPITokenError(EnrichmentError):
    code = ErrorCode.INVALID_API_TOKEN
    category = ErrorCategory.CONFIGURATION
    default_message = "invalid API token"


class InvalidNameError(EnrichmentError):
    code = ErrorCode.INVALID_NAME
    category = ErrorCategory.INPUT
    default_message = "invalid name"


class LimitReachedError(EnrichmentError):
    code = ErrorCode.LIMIT_REACHED
    category = ErrorCategory.QUOTA
    default_message = "request limit reached"


class NotFoundError(EnrichmentError):
    """The source has no answer for the given name. Not a system failure."""

    code = ErrorCode.NOT_FOUND
    category = ErrorCategory.ABSENT
    default_message = "not found"


class CompletionError(EnrichmentError):
    """One or more sources failed while completing a record.

    Keeps the partially filled result and the failure of every field, so the
    caller can still inspect which source failed and why.
    """

    code = ErrorCode.COMPLETION_FAILED
    default_message = "completion error"

    def __init__(self, result: EnrichmentResult, failures: Mapping[str, EnrichmentError]):
        if not failures:
            raise ValueError("CompletionError requires at least one failure")
        self.result = result
        self.failures = dict(failures)
        summary = " ".join(f"{{{field}: {exc}}}" for field, exc in self.failures.items())
        super().__init__(
            f"completion error ({len(self.failures)} fetchers failed). fetcher errors: {summary}",
            detail=",".join(f"{field}={exc.code.value}" for field, exc in self.failures.items()),
        )

    @property
    def category(self) -> ErrorCategory:  # type: ignore[override]
        worst = None
        for exc in self.failures.values():
            if worst is None or exc.category.severity > worst.severity:
                worst = exc.category
        return worst

    def matches(self, kind: type[EnrichmentError]) -> bool:
        return isinstance(self, kind) or any(exc.matches(kind) for exc in self.failures.values())


def outcome_of(exc: EnrichmentError) -> Outcome:
    return exc.category.outcome


class RecordError(Exception):
    """Base class for record store errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.info = DomainErrorInfo(code=self.code.value, message=message, detail=detail)


class RecordNotFoundError(RecordError):
    code = ErrorCode.RECORD_NOT_FOUND


class RecordArgumentError(RecordError):
    code = ErrorCode.INVALID_ARGUMENT


class RepositoryError(RecordError):
    code = ErrorCode.DATABASE_ERROR
