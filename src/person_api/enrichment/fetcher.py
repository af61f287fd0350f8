"""Rate-limit aware client for a single name lookup source.

One `Fetcher` wraps one `GET {base_url}?name=...[&apikey=...]` endpoint. The
source specific payload shape is handled by an injected `PayloadDecoder`, so
the same client serves every source.
"""

from __future__ import annotations

import asyncio
import json
import re
from datetime import datetime
from typing import Any, Generic, Mapping, Protocol, TypeVar

import aiohttp

from ..domain.errors import (
    EnrichmentError,
    FetchTimeoutError,
    InvalidAPITokenError,
    InvalidHeaderError,
    InvalidNameError,
    InvalidResponseError,
    InvalidStatusError,
    InvalidURLError,
    LimitReachedError,
    NetworkError,
    NotReadyError,
)
from ..observability.logger import get_logger
from ..utils.time import after_seconds, utc_now
from .quota import QuotaSnapshot, QuotaState

logger = get_logger(__name__)

DEFAULT_FETCH_TIMEOUT_SECONDS = 3.0

LIMIT_HEADER = "X-Rate-Limit-Limit"
REMAINING_HEADER = "X-Rate-Limit-Remaining"
RESET_HEADER = "X-Rate-Limit-Reset"

_NON_NEGATIVE_INT = re.compile(r"[0-9]+")

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class PayloadDecoder(Protocol[T_co]):
    """Turns a parsed JSON payload of one source into a value.

    Raises NotFoundError when the source has no answer, ConversionError when
    the value fails a sanity check and InvalidResponseError when the payload
    has the wrong shape.
    """

    def decode(self, payload: Any) -> T_co: ...


def parse_rate_limit_header(headers: Mapping[str, str], name: str) -> int:
    raw = headers.get(name)
    if raw is None or not _NON_NEGATIVE_INT.fullmatch(raw.strip()):
        raise InvalidHeaderError(f"invalid header {name!r}", detail=f"value={raw!r}")
    return int(raw.strip())


class Fetcher(Generic[T]):
    """Client for one source with request quota bookkeeping.

    Args:
        source: Short name used in errors and logs.
        base_url: Endpoint queried with the `name` parameter.
        decoder: Source specific payload decoder.
        token: Optional API token, sent as the `apikey` parameter.
        session: Shared client session. When omitted the fetcher creates and owns one.
        timeout_seconds: Timeout of a single request.
    """

    def __init__(
        self,
        *,
        source: str,
        base_url: str,
        decoder: PayloadDecoder[T],
        token: str | None = None,
        session: aiohttp.ClientSession | None = None,
        timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    ):
        self.source = source
        self._base_url = base_url
        self._decoder = decoder
        self._token = token
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._quota = QuotaState()

    @property
    def ready(self) -> bool:
        return self._quota.ready

    def request_limit(self) -> int:
        """Number of requests the source permits per window."""
        return self._ready_snapshot().limit

    def requests_left(self) -> int:
        """Number of requests left until the window resets."""
        return self._ready_snapshot().remaining

    def reset_time(self) -> datetime:
        """Time when the source's window resets."""
        return self._ready_snapshot().reset_at

    def _ready_snapshot(self) -> QuotaSnapshot:
        snapshot = self._quota.snapshot()
        if snapshot is None:
            raise NotReadyError(source=self.source)
        return snapshot

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def fill(self, name: str) -> T:
        """Look up the value for `name`.

        Raises LimitReachedError without any request while the quota is known
        to be exhausted and its window has not reset yet.
        """
        snapshot = self._quota.snapshot()
        if snapshot is not None and snapshot.exhausted(utc_now()):
            logger.info("fetch_skipped_limit_reached", source=self.source, reset_at=snapshot.reset_at.isoformat())
            raise LimitReachedError(source=self.source, detail="local quota exhausted")

        params = {"name": name}
        if self._token is not None:
            params["apikey"] = self._token

        try:
            async with self._get_session().get(self._base_url, params=params, timeout=self._timeout) as response:
                self._update_quota(response.headers)
                self._check_status(response.status)
                body = await response.read()
        except EnrichmentError as e:
            e.bind_source(self.source)
            raise
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(source=self.source, detail=str(e) or None) from e
        except aiohttp.InvalidURL as e:
            raise InvalidURLError(source=self.source, detail=str(e)) from e
        except aiohttp.ClientError as e:
            raise NetworkError(source=self.source, detail=str(e)) from e

        try:
            payload = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidResponseError("body is not valid JSON", source=self.source, detail=str(e)) from e

        try:
            return self._decoder.decode(payload)
        except EnrichmentError as e:
            e.bind_source(self.source)
            raise

    def _update_quota(self, headers: Mapping[str, str]) -> None:
        limit = parse_rate_limit_header(headers, LIMIT_HEADER)
        remaining = parse_rate_limit_header(headers, REMAINING_HEADER)
        reset = parse_rate_limit_header(headers, RESET_HEADER)

        try:
            reset_at = after_seconds(reset)
        except OverflowError as e:
            raise InvalidHeaderError(f"invalid header {RESET_HEADER!r}", detail=f"value={reset!r} out of range") from e

        was_ready = self._quota.ready
        snapshot = self._quota.apply(limit=limit, remaining=remaining, reset_at=reset_at)
        if not was_ready:
            logger.info(
                "quota_adopted",
                source=self.source,
                limit=snapshot.limit,
                remaining=snapshot.remaining,
                reset_at=snapshot.reset_at.isoformat(),
            )

    def _check_status(self, status: int) -> None:
        if status in (401, 402):
            raise InvalidAPITokenError(source=self.source, detail=f"status={status}")
        if status == 422:
            raise InvalidNameError(source=self.source)
        if status == 429:
            raise LimitReachedError(source=self.source, detail="status=429")
        if status != 200:
            raise InvalidStatusError(source=self.source, detail=f"status={status}")
