"""Debug tracing of the requests sent to the lookup sources."""

from __future__ import annotations

from types import SimpleNamespace

import aiohttp

from ..observability.logger import get_logger
from ..utils.validators import mask_query_param
from .fetcher import LIMIT_HEADER, REMAINING_HEADER, RESET_HEADER

logger = get_logger(__name__)


async def _on_request_end(
    session: aiohttp.ClientSession,
    context: SimpleNamespace,
    params: aiohttp.TraceRequestEndParams,
) -> None:
    headers = params.response.headers
    logger.debug(
        "source_request_completed",
        method=params.method,
        url=mask_query_param(str(params.url), "apikey"),
        status=params.response.status,
        rate_limit_limit=headers.get(LIMIT_HEADER),
        rate_limit_remaining=headers.get(REMAINING_HEADER),
        rate_limit_reset=headers.get(RESET_HEADER),
    )


async def _on_request_exception(
    session: aiohttp.ClientSession,
    context: SimpleNamespace,
    params: aiohttp.TraceRequestExceptionParams,
) -> None:
    logger.debug(
        "source_request_failed",
        method=params.method,
        url=mask_query_param(str(params.url), "apikey"),
        error=repr(params.exception),
    )


def build_trace_config() -> aiohttp.TraceConfig:
    trace_config = aiohttp.TraceConfig()
    trace_config.on_request_end.append(_on_request_end)
    trace_config.on_request_exception.append(_on_request_exception)
    return trace_config
