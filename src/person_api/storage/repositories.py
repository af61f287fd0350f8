"""Repository pattern for database access (person records)."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..domain.errors import RecordArgumentError, RecordNotFoundError, RepositoryError
from ..domain.models import Person, PersonPartial, Sex
from ..models.database import PersonRecord
from ..observability.logger import get_logger

logger = get_logger(__name__)


class PersonStore(Protocol):
    async def create(self, person: Person) -> uuid.UUID: ...

    async def get_by_id(self, person_id: uuid.UUID) -> Person: ...

    async def full_update(self, person_id: uuid.UUID, replacement: Person) -> None: ...

    async def partial_update(self, person_id: uuid.UUID, partial: PersonPartial) -> None: ...

    async def delete(self, person_id: uuid.UUID) -> None: ...

    async def close(self) -> None: ...


def _to_domain(record: PersonRecord) -> Person:
    return Person(
        id=record.person_id,
        name=record.name,
        surname=record.surname,
        patronymic=record.patronymic,
        nationality=record.nationality,
        sex=Sex(record.sex),
        age=record.age,
    )


def _columns(person: Person) -> dict:
    return {
        "name": person.name,
        "surname": person.surname,
        "patronymic": person.patronymic,
        "nationality": person.nationality,
        "sex": person.sex.value,
        "age": person.age,
    }


def _wrap_error(exc: SQLAlchemyError) -> Exception:
    if isinstance(exc, IntegrityError):
        return RecordArgumentError("constraint violation", detail=str(exc.orig))
    logger.error("database_error", error=str(exc))
    return RepositoryError("unexpected database error", detail=str(exc))


class PersonRepository:
    """Repository for person records backed by SQLAlchemy."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def create(self, person: Person) -> uuid.UUID:
        try:
            async with self._session_factory() as session:
                record = PersonRecord(
                    person_id=uuid.uuid4(),
                    created_at=datetime.utcnow(),
                    updated_at=datetime.utcnow(),
                    **_columns(person),
                )
                session.add(record)
                await session.commit()
                return record.person_id
        except SQLAlchemyError as e:
            raise _wrap_error(e) from e

    async def get_by_id(self, person_id: uuid.UUID) -> Person:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(PersonRecord).where(PersonRecord.person_id == person_id))
                record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise _wrap_error(e) from e
        if record is None:
            raise RecordNotFoundError("person not found", detail=str(person_id))
        return _to_domain(record)

    async def full_update(self, person_id: uuid.UUID, replacement: Person) -> None:
        await self._update(person_id, _columns(replacement))

    async def partial_update(self, person_id: uuid.UUID, partial: PersonPartial) -> None:
        changes = partial.changes()
        if not changes:
            raise RecordArgumentError("no fields to update")
        if "sex" in changes:
            changes["sex"] = changes["sex"].value
        await self._update(person_id, changes)

    async def _update(self, person_id: uuid.UUID, values: dict) -> None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    update(PersonRecord)
                    .where(PersonRecord.person_id == person_id)
                    .values(updated_at=datetime.utcnow(), **values)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise _wrap_error(e) from e
        if result.rowcount == 0:
            raise RecordNotFoundError("person not found", detail=str(person_id))

    async def delete(self, person_id: uuid.UUID) -> None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(delete(PersonRecord).where(PersonRecord.person_id == person_id))
                await session.commit()
        except SQLAlchemyError as e:
            raise _wrap_error(e) from e
        if result.rowcount == 0:
            raise RecordNotFoundError("person not found", detail=str(person_id))

    async def close(self) -> None:
        from .database import close_db

        await close_db()
