"""Concurrent completion of a person's sex, nationality and age by first name."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

import aiohttp

from ..config.settings import PersonApiSettings
from ..domain.errors import CompletionError, EnrichmentError, NotReadyError
from ..domain.models import EnrichmentResult, Sex
from ..observability.logger import get_logger
from .fetcher import Fetcher
from .sources import agify_fetcher, genderize_fetcher, nationalize_fetcher
from .tracing import build_trace_config

logger = get_logger(__name__)

DEFAULT_COMPLETER_TIMEOUT_SECONDS = 10.0


class Enricher:
    """Runs the sex, nationality and age fetchers together and merges their results.

    The retry time reported by `unlocking_time` is computed once and then kept
    for the lifetime of the instance.
    """

    def __init__(
        self,
        *,
        sex: Fetcher[Sex],
        nationality: Fetcher[str],
        age: Fetcher[int],
        session: aiohttp.ClientSession | None = None,
    ):
        self._fetchers: Dict[str, Fetcher[Any]] = {
            "sex": sex,
            "nationality": nationality,
            "age": age,
        }
        self._session = session
        self._unlock_time: Optional[datetime] = None

    @classmethod
    def from_settings(cls, settings: PersonApiSettings) -> Enricher:
        """Build an enricher whose fetchers share one session owned by the enricher.

        Must be called from within a running event loop.
        """
        session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=settings.completer_timeout_seconds),
            trace_configs=[build_trace_config()],
        )
        options = dict(token=settings.api_token, session=session, timeout_seconds=settings.fetch_timeout_seconds)
        return cls(
            sex=genderize_fetcher(settings.genderize_url, **options),
            nationality=nationalize_fetcher(settings.nationalize_url, **options),
            age=agify_fetcher(settings.agify_url, **options),
            session=session,
        )

    @property
    def fetchers(self) -> Dict[str, Fetcher[Any]]:
        return dict(self._fetchers)

    async def aclose(self) -> None:
        for fetcher in self._fetchers.values():
            await fetcher.aclose()
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def complete(self, name: str) -> EnrichmentResult:
        """Fill sex, nationality and age for `name`.

        All three lookups always run to completion. If any of them fails a
        CompletionError is raised; it still carries the fields that succeeded.
        """
        outcomes = await asyncio.gather(
            *(fetcher.fill(name) for fetcher in self._fetchers.values()),
            return_exceptions=True,
        )

        values: Dict[str, Any] = {}
        failures: Dict[str, EnrichmentError] = {}
        for field, outcome in zip(self._fetchers, outcomes):
            if isinstance(outcome, EnrichmentError):
                failures[field] = outcome
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                values[field] = outcome

        result = EnrichmentResult(**values)
        if not failures:
            return result

        error = CompletionError(result=result, failures=failures)
        logger.info(
            "completion_failed",
            category=error.category.value,
            failures={field: exc.code.value for field, exc in failures.items()},
        )
        raise error

    def unlocking_time(self) -> datetime:
        """Time after which retrying a completion is worthwhile.

        This is the latest reset time among the three sources. Raises
        NotReadyError while any source has not answered a request yet.
        """
        if self._unlock_time is None:
            try:
                reset_times = [fetcher.reset_time() for fetcher in self._fetchers.values()]
            except NotReadyError as e:
                raise NotReadyError("some of the fetchers are not ready", detail=str(e)) from e
            self._unlock_time = max(reset_times)
            logger.info("unlocking_time_computed", unlock_time=self._unlock_time.isoformat())
        return self._unlock_time
