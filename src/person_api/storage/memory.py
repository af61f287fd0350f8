"""In-memory person store for development and tests."""

from __future__ import annotations

import asyncio
import dataclasses
import uuid
from typing import Dict

from ..domain.errors import RecordArgumentError, RecordNotFoundError
from ..domain.models import Person, PersonPartial


class InMemoryPersonRepository:
    def __init__(self) -> None:
        self._people: Dict[uuid.UUID, Person] = {}
        self._lock = asyncio.Lock()

    async def create(self, person: Person) -> uuid.UUID:
        person_id = uuid.uuid4()
        async with self._lock:
            self._people[person_id] = dataclasses.replace(person, id=person_id)
        return person_id

    async def get_by_id(self, person_id: uuid.UUID) -> Person:
        person = self._people.get(person_id)
        if person is None:
            raise RecordNotFoundError("person not found", detail=str(person_id))
        return person

    async def full_update(self, person_id: uuid.UUID, replacement: Person) -> None:
        async with self._lock:
            if person_id not in self._people:
                raise RecordNotFoundError("person not found", detail=str(person_id))
            self._people[person_id] = dataclasses.replace(replacement, id=person_id)

    async def partial_update(self, person_id: uuid.UUID, partial: PersonPartial) -> None:
        async with self._lock:
            person = self._people.get(person_id)
            if person is None:
                raise RecordNotFoundError("person not found", detail=str(person_id))
            if partial.empty:
                raise RecordArgumentError("no fields to update")
            self._people[person_id] = dataclasses.replace(person, **partial.changes())

    async def delete(self, person_id: uuid.UUID) -> None:
        async with self._lock:
            if self._people.pop(person_id, None) is None:
                raise RecordNotFoundError("person not found", detail=str(person_id))

    async def close(self) -> None:
        return None
