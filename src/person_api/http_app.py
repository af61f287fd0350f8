"""FastAPI app.

Transport layer only: converts requests to domain inputs, calls the store and
the enricher, and maps domain errors to HTTP responses.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from .config.settings import get_settings
from .domain.errors import (
    EnrichmentError,
    NotReadyError,
    RecordArgumentError,
    RecordError,
    RecordNotFoundError,
    outcome_of,
)
from .domain.models import Outcome, Person
from .enrichment.enricher import Enricher
from .lifespan import app_state, lifespan_manager
from .models.requests import (
    PersonFull,
    PersonFullWithID,
    PersonPartialData,
    PersonPostData,
    QuotaReport,
    SourceQuota,
)
from .observability.logger import get_logger
from .storage.repositories import PersonStore
from .utils.time import seconds_until

logger = get_logger(__name__)

app = FastAPI(title="Person API", version="0.1.0", lifespan=lifespan_manager)
router = APIRouter(prefix=get_settings().api_prefix)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", path=request.url.path, error=repr(exc))
    return JSONResponse(status_code=500, content={"detail": "internal_error"})


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


def _people() -> PersonStore:
    people = app_state.get("people")
    if people is None:
        raise HTTPException(status_code=503, detail="person_store_unavailable")
    return people


def _enricher() -> Enricher:
    enricher = app_state.get("enricher")
    if enricher is None:
        raise HTTPException(status_code=503, detail="enricher_unavailable")
    return enricher


def _record_failure(exc: RecordError) -> HTTPException:
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=404, detail="person_not_found")
    if isinstance(exc, RecordArgumentError):
        return HTTPException(status_code=400, detail="invalid_argument")
    logger.error("unexpected_error", error=str(exc), code=exc.info.code, detail=exc.info.detail)
    return HTTPException(status_code=500, detail="internal_error")


def _enrichment_failure(exc: EnrichmentError, enricher: Enricher) -> HTTPException:
    outcome = outcome_of(exc)
    if outcome is Outcome.CLIENT_ERROR:
        return HTTPException(status_code=422, detail="name_not_enrichable")
    if outcome is Outcome.RETRY_LATER:
        headers = None
        try:
            headers = {"Retry-After": str(seconds_until(enricher.unlocking_time()))}
        except NotReadyError:
            logger.warning("unlocking_time_not_ready", error=str(exc))
        return HTTPException(status_code=503, detail="enrichment_limit_reached", headers=headers)
    logger.error("enrichment_failed", error=str(exc), code=exc.info.code, detail=exc.info.detail)
    return HTTPException(status_code=502, detail="enrichment_failed")


@router.post("/person", status_code=201)
async def person_post(payload: PersonPostData) -> uuid.UUID:
    people = _people()
    enricher = _enricher()

    try:
        data = await enricher.complete(payload.name)
    except EnrichmentError as exc:
        raise _enrichment_failure(exc, enricher) from exc

    person = Person(
        name=payload.name,
        surname=payload.surname,
        patronymic=payload.patronymic,
        nationality=data.nationality,
        sex=data.sex,
        age=data.age,
    )
    try:
        person_id = await people.create(person)
    except RecordError as exc:
        raise _record_failure(exc) from exc
    logger.info("person_created", person_id=str(person_id))
    return person_id


@router.get("/person/{person_id}", response_model=PersonFullWithID)
async def person_get(person_id: uuid.UUID) -> PersonFullWithID:
    try:
        person = await _people().get_by_id(person_id)
    except RecordError as exc:
        raise _record_failure(exc) from exc
    return PersonFullWithID.from_domain(person)


@router.put("/person/{person_id}")
async def person_put(person_id: uuid.UUID, payload: PersonFull) -> Response:
    try:
        await _people().full_update(person_id, payload.to_domain())
    except RecordError as exc:
        raise _record_failure(exc) from exc
    return Response(status_code=200)


@router.patch("/person/{person_id}")
async def person_patch(person_id: uuid.UUID, payload: PersonPartialData) -> Response:
    try:
        await _people().partial_update(person_id, payload.to_domain())
    except RecordError as exc:
        raise _record_failure(exc) from exc
    return Response(status_code=200)


@router.delete("/person/{person_id}")
async def person_delete(person_id: uuid.UUID) -> Response:
    try:
        await _people().delete(person_id)
    except RecordError as exc:
        raise _record_failure(exc) from exc
    return Response(status_code=200)


@router.get("/enrichment/quota", response_model=QuotaReport)
async def enrichment_quota() -> QuotaReport:
    sources = {}
    for field, fetcher in _enricher().fetchers.items():
        try:
            sources[field] = SourceQuota(
                ready=True,
                limit=fetcher.request_limit(),
                remaining=fetcher.requests_left(),
                reset_at=fetcher.reset_time(),
            )
        except NotReadyError:
            sources[field] = SourceQuota(ready=False)
    return QuotaReport(sources=sources)


app.include_router(router)
