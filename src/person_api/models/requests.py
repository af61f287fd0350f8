"""Request/response models of the HTTP API."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Dict, Optional

from pydantic import BaseModel, Field

from ..domain.models import Person, PersonPartial, Sex

CountryCode = Annotated[str, Field(pattern=r"^[A-Z]{2}$", description="Country code by ISO 3166-1 alpha-2")]
Age = Annotated[int, Field(ge=0)]


class PersonPostData(BaseModel):
    name: str = Field(..., min_length=1)
    surname: str = Field(..., min_length=1)
    patronymic: str = ""


class PersonFull(BaseModel):
    name: str = Field(..., min_length=1)
    surname: str = Field(..., min_length=1)
    patronymic: str = ""
    nationality: CountryCode
    sex: Sex
    age: Age

    def to_domain(self) -> Person:
        return Person(
            name=self.name,
            surname=self.surname,
            patronymic=self.patronymic,
            nationality=self.nationality,
            sex=self.sex,
            age=self.age,
        )


class PersonFullWithID(PersonFull):
    id: uuid.UUID

    @classmethod
    def from_domain(cls, person: Person) -> PersonFullWithID:
        return cls(
            id=person.id,
            name=person.name,
            surname=person.surname,
            patronymic=person.patronymic,
            nationality=person.nationality,
            sex=person.sex,
            age=person.age,
        )


class PersonPartialData(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    surname: Optional[str] = Field(default=None, min_length=1)
    patronymic: Optional[str] = None
    nationality: Optional[CountryCode] = None
    sex: Optional[Sex] = None
    age: Optional[Age] = None

    def to_domain(self) -> PersonPartial:
        return PersonPartial(**self.model_dump())


class SourceQuota(BaseModel):
    ready: bool
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset_at: Optional[datetime] = None


class QuotaReport(BaseModel):
    sources: Dict[str, SourceQuota]
