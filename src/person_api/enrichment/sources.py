"""Payload decoders and fetcher factories for the three lookup sources."""

from __future__ import annotations

from typing import Any, List, Optional, Type, TypeVar

import aiohttp
from pydantic import BaseModel, StrictInt, StrictStr, ValidationError

from ..domain.errors import ConversionError, InvalidResponseError, NotFoundError
from ..domain.models import Sex
from ..utils.validators import is_country_code
from .fetcher import DEFAULT_FETCH_TIMEOUT_SECONDS, Fetcher

M = TypeVar("M", bound=BaseModel)


def _validate(model: Type[M], payload: Any) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidResponseError("unexpected payload shape", detail=str(e)) from e


class GenderizePayload(BaseModel):
    gender: Optional[StrictStr] = None


class CountryData(BaseModel):
    country_id: StrictStr


class NationalizePayload(BaseModel):
    country: Optional[List[CountryData]] = None


class AgifyPayload(BaseModel):
    age: Optional[StrictInt] = None


class GenderizeDecoder:
    def decode(self, payload: Any) -> Sex:
        data = _validate(GenderizePayload, payload)
        if data.gender is None:
            raise NotFoundError()
        try:
            return Sex(data.gender)
        except ValueError as e:
            raise ConversionError(f"invalid sex value: {data.gender!r}") from e


class NationalizeDecoder:
    """The first (most probable) country is authoritative."""

    def decode(self, payload: Any) -> str:
        data = _validate(NationalizePayload, payload)
        if not data.country:
            raise NotFoundError()
        nationality = data.country[0].country_id
        if not is_country_code(nationality):
            raise ConversionError(f"invalid value for nationality: {nationality!r}")
        return nationality


class AgifyDecoder:
    def decode(self, payload: Any) -> int:
        data = _validate(AgifyPayload, payload)
        if data.age is None:
            raise NotFoundError()
        if data.age < 0:
            raise ConversionError(f"invalid age value: {data.age}")
        return data.age


def genderize_fetcher(
    base_url: str,
    *,
    token: str | None = None,
    session: aiohttp.ClientSession | None = None,
    timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
) -> Fetcher[Sex]:
    return Fetcher(
        source="genderize",
        base_url=base_url,
        decoder=GenderizeDecoder(),
        token=token,
        session=session,
        timeout_seconds=timeout_seconds,
    )


def nationalize_fetcher(
    base_url: str,
    *,
    token: str | None = None,
    session: aiohttp.ClientSession | None = None,
    timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
) -> Fetcher[str]:
    return Fetcher(
        source="nationalize",
        base_url=base_url,
        decoder=NationalizeDecoder(),
        token=token,
        session=session,
        timeout_seconds=timeout_seconds,
    )


def agify_fetcher(
    base_url: str,
    *,
    token: str | None = None,
    session: aiohttp.ClientSession | None = None,
    timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
) -> Fetcher[int]:
    return Fetcher(
        source="agify",
        base_url=base_url,
        decoder=AgifyDecoder(),
        token=token,
        session=session,
        timeout_seconds=timeout_seconds,
    )
