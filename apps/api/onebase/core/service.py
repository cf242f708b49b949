from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from onebase.core.database import unit_of_work
from onebase.core.errors import ConflictError, NotFoundError
from onebase.core.repository import DEFAULT_PAGE_SIZE, ModelT, TenantRepository, ensure_reference


ReadT = TypeVar("ReadT", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class Reference:
    field: str
    relation: str
    repository: TenantRepository[Any]


def blank_to_none(values: dict[str, Any]) -> dict[str, Any]:
    return {key: (None if value == "" else value) for key, value in values.items()}


class TenantCrudService(Generic[ModelT, ReadT]):
    """Transactional CRUD over a tenant repository.

    Writes verify that every referenced row lives in the caller's organization
    before touching the table. Deleting a row that is still referenced under a
    restricting foreign key fails with a conflict instead of a store error.
    """

    repository: TenantRepository[ModelT]
    read_model: type[ReadT]
    label: ClassVar[str] = "Record"
    references: ClassVar[tuple[Reference, ...]] = ()
    in_use_message: ClassVar[str | None] = None

    def list(
        self,
        session: Session,
        org_id: uuid.UUID,
        *,
        search: str | None = None,
        filters: dict[str, Any] | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[ReadT]:
        rows = self.repository.list(session, org_id, search=search, filters=filters, limit=limit, offset=offset)
        return [self.to_read(row) for row in rows]

    def get(self, session: Session, org_id: uuid.UUID, entity_id: uuid.UUID) -> ReadT:
        entity = self.repository.get(session, org_id, entity_id)
        if entity is None:
            raise NotFoundError(f"{self.label} not found")
        return self.to_read(entity)

    def create(self, session: Session, org_id: uuid.UUID, dto: BaseModel, **extra: Any) -> ReadT:
        values = {**blank_to_none(dto.model_dump()), **extra}
        self.check_references(session, org_id, values)
        with unit_of_work(session):
            entity = self.repository.add(session, org_id, values)
            entity_id = entity.id  # type: ignore[attr-defined]
        return self.get(session, org_id, entity_id)

    def update(self, session: Session, org_id: uuid.UUID, entity_id: uuid.UUID, dto: BaseModel) -> ReadT:
        patch = blank_to_none(dto.model_dump(exclude_unset=True))
        if not self.repository.exists(session, org_id, entity_id):
            raise NotFoundError(f"{self.label} not found")
        self.check_references(session, org_id, patch)
        with unit_of_work(session):
            self.repository.update(session, org_id, entity_id, patch)
        return self.get(session, org_id, entity_id)

    def delete(self, session: Session, org_id: uuid.UUID, entity_id: uuid.UUID) -> None:
        try:
            with unit_of_work(session):
                deleted = self.repository.delete(session, org_id, entity_id)
        except IntegrityError as exc:
            raise ConflictError(self.in_use_message or f"{self.label} is still referenced") from exc
        if not deleted:
            raise NotFoundError(f"{self.label} not found")

    def check_references(self, session: Session, org_id: uuid.UUID, values: dict[str, Any]) -> None:
        for reference in self.references:
            ensure_reference(
                session,
                reference.repository,
                org_id,
                values.get(reference.field),
                relation=reference.relation,
                field=to_camel(reference.field),
            )

    def to_read(self, entity: ModelT) -> ReadT:
        return self.read_model.model_validate(entity)
