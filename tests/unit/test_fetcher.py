from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any

import pytest

from person_api.domain.errors import (
    ConversionError,
    FetchTimeoutError,
    InvalidAPITokenError,
    InvalidHeaderError,
    InvalidNameError,
    InvalidResponseError,
    InvalidStatusError,
    LimitReachedError,
    NetworkError,
    NotFoundError,
    NotReadyError,
)
from person_api.enrichment.fetcher import Fetcher, parse_rate_limit_header
from person_api.utils.time import utc_now

ACCEPTABLE_TIME_DELTA = timedelta(seconds=3)


class QuxDecoder:
    def decode(self, payload: Any) -> str:
        value = payload.get("qux")
        if value is None:
            raise NotFoundError()
        if len(value) < 3:
            raise ConversionError()
        return value


def _fetcher(url: str, **kwargs) -> Fetcher[str]:
    return Fetcher(source="qux", base_url=url, decoder=QuxDecoder(), **kwargs)


async def _fill(fetcher: Fetcher[str], name: str) -> str:
    try:
        return await fetcher.fill(name)
    finally:
        await fetcher.aclose()


def _assert_close(actual, expected) -> None:
    assert abs(actual - expected) <= ACCEPTABLE_TIME_DELTA


@pytest.mark.asyncio
async def test_fill_returns_value_and_adopts_quota(source_server) -> None:
    reply = dict(body='{"qux":"res_string","buzz":23}', limit="1000", remaining="123", reset="15000")
    async with source_server(reply) as source:
        fetcher = _fetcher(source.url)
        result = await _fill(fetcher, "Dmitriy")

    assert result == "res_string"
    assert source.requests == [{"name": "Dmitriy"}]
    assert fetcher.request_limit() == 1000
    assert fetcher.requests_left() == 123
    _assert_close(fetcher.reset_time(), utc_now() + timedelta(seconds=15000))


@pytest.mark.asyncio
async def test_fill_sends_api_token(source_server) -> None:
    async with source_server(dict(body='{"qux":"value"}')) as source:
        await _fill(_fetcher(source.url, token="secret"), "Ann")

    assert source.requests == [{"name": "Ann", "apikey": "secret"}]


@pytest.mark.asyncio
async def test_explicit_null_is_not_found(source_server) -> None:
    reply = dict(body='{"qux":null,"buzz":23}', limit="100", remaining="50", reset="1000")
    async with source_server(reply) as source:
        fetcher = _fetcher(source.url)
        with pytest.raises(NotFoundError) as excinfo:
            await _fill(fetcher, "naaaame")

    assert excinfo.value.source == "qux"
    assert fetcher.request_limit() == 100
    assert fetcher.requests_left() == 50


@pytest.mark.asyncio
async def test_failed_sanity_check_is_conversion_error(source_server) -> None:
    async with source_server(dict(body='{"qux":"ab"}')) as source:
        with pytest.raises(ConversionError):
            await _fill(_fetcher(source.url), "Bob")


@pytest.mark.asyncio
async def test_status_429_is_limit_reached_and_updates_quota(source_server) -> None:
    reply = dict(status=429, body='{"error":"Request limit reached"}', limit="100", remaining="0", reset="1000")
    async with source_server(reply) as source:
        fetcher = _fetcher(source.url)
        with pytest.raises(LimitReachedError):
            await _fill(fetcher, "Bill")

    assert fetcher.request_limit() == 100
    assert fetcher.requests_left() == 0
    _assert_close(fetcher.reset_time(), utc_now() + timedelta(seconds=1000))


@pytest.mark.asyncio
async def test_exhausted_quota_skips_network_call(source_server) -> None:
    async with source_server(dict(body='{"qux":"value"}', remaining="0", reset="600")) as source:
        fetcher = _fetcher(source.url)
        try:
            assert await fetcher.fill("Ann") == "value"
            with pytest.raises(LimitReachedError):
                await fetcher.fill("Ann")
        finally:
            await fetcher.aclose()

    assert source.calls == 1


@pytest.mark.asyncio
async def test_exhausted_quota_with_elapsed_window_still_calls(source_server) -> None:
    async with source_server(dict(body='{"qux":"value"}', remaining="0", reset="0")) as source:
        fetcher = _fetcher(source.url)
        try:
            await fetcher.fill("Ann")
            await fetcher.fill("Ann")
        finally:
            await fetcher.aclose()

    assert source.calls == 2


@pytest.mark.asyncio
async def test_remaining_never_increases(source_server) -> None:
    first = dict(body='{"qux":"value"}', limit="1000", remaining="100", reset="60")
    second = dict(body='{"qux":"value"}', limit="5000", remaining="150", reset="9000")
    async with source_server(first, second) as source:
        fetcher = _fetcher(source.url)
        try:
            await fetcher.fill("Ann")
            await fetcher.fill("Ann")
        finally:
            await fetcher.aclose()

    assert source.calls == 2
    assert fetcher.requests_left() == 100
    assert fetcher.request_limit() == 1000
    _assert_close(fetcher.reset_time(), utc_now() + timedelta(seconds=60))


@pytest.mark.asyncio
async def test_remaining_follows_lower_report(source_server) -> None:
    first = dict(body='{"qux":"value"}', remaining="100")
    second = dict(body='{"qux":"value"}', remaining="42")
    async with source_server(first, second) as source:
        fetcher = _fetcher(source.url)
        try:
            await fetcher.fill("Ann")
            await fetcher.fill("Ann")
        finally:
            await fetcher.aclose()

    assert fetcher.requests_left() == 42


def test_accessors_fail_before_first_call() -> None:
    fetcher = _fetcher("http://127.0.0.1:1/")

    assert not fetcher.ready
    with pytest.raises(NotReadyError):
        fetcher.request_limit()
    with pytest.raises(NotReadyError):
        fetcher.requests_left()
    with pytest.raises(NotReadyError):
        fetcher.reset_time()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "headers",
    [
        dict(limit=None),
        dict(remaining="many"),
        dict(reset="-5"),
        dict(limit="1.5"),
        dict(reset="1000000000000"),
    ],
)
async def test_bad_rate_limit_header(source_server, headers: dict) -> None:
    async with source_server(dict(body='{"qux":"value"}', **headers)) as source:
        fetcher = _fetcher(source.url)
        with pytest.raises(InvalidHeaderError) as excinfo:
            await _fill(fetcher, "Ann")

    assert excinfo.value.source == "qux"
    assert not fetcher.ready


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, error",
    [
        (401, InvalidAPITokenError),
        (402, InvalidAPITokenError),
        (422, InvalidNameError),
        (404, InvalidStatusError),
        (500, InvalidStatusError),
    ],
)
async def test_status_classification(source_server, status: int, error: type) -> None:
    async with source_server(dict(status=status, body='{"error":"nope"}', remaining="77")) as source:
        fetcher = _fetcher(source.url)
        with pytest.raises(error):
            await _fill(fetcher, "Ann")

    # headers are applied before the status is checked
    assert fetcher.requests_left() == 77


@pytest.mark.asyncio
async def test_body_that_is_not_json(source_server) -> None:
    async with source_server(dict(body="<html>oops</html>")) as source:
        with pytest.raises(InvalidResponseError) as excinfo:
            await _fill(_fetcher(source.url), "Ann")

    assert type(excinfo.value) is InvalidResponseError


@pytest.mark.asyncio
async def test_slow_source_times_out(source_server) -> None:
    async with source_server(dict(body='{"qux":"value"}', delay=1.0)) as source:
        with pytest.raises(FetchTimeoutError):
            await _fill(_fetcher(source.url, timeout_seconds=0.2), "Ann")


@pytest.mark.asyncio
async def test_unreachable_source_is_network_error() -> None:
    with pytest.raises(NetworkError) as excinfo:
        await _fill(_fetcher("http://127.0.0.1:1/"), "Ann")

    assert excinfo.value.source == "qux"


def test_parse_rate_limit_header() -> None:
    assert parse_rate_limit_header({"X-Rate-Limit-Limit": " 25 "}, "X-Rate-Limit-Limit") == 25
    with pytest.raises(InvalidHeaderError):
        parse_rate_limit_header({}, "X-Rate-Limit-Limit")


@pytest.mark.asyncio
async def test_concurrent_fills_keep_lowest_remaining(source_server) -> None:
    replies = [
        dict(body='{"qux":"value"}', remaining="100", delay=0.1),
        dict(body='{"qux":"value"}', remaining="40", delay=0.1),
        dict(body='{"qux":"value"}', remaining="70", delay=0.1),
    ]
    async with source_server(*replies) as source:
        fetcher = _fetcher(source.url)
        try:
            results = await asyncio.gather(*(fetcher.fill("Ann") for _ in range(3)))
        finally:
            await fetcher.aclose()

    assert results == ["value", "value", "value"]
    assert source.calls == 3
    assert fetcher.requests_left() == 40
