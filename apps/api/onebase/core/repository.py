from __future__ import annotations

import uuid
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import Select, delete, or_, select, update
from sqlalchemy.orm import InstrumentedAttribute, Session

from onebase.core.database import Base, utcnow
from onebase.core.errors import ValidationError


ModelT = TypeVar("ModelT", bound=Base)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


class TenantRepository(Generic[ModelT]):
    """Query helpers for a table whose rows all carry an ``org_id``.

    Every statement built here filters on the caller's organization, so a row that
    belongs to another tenant behaves exactly like a row that does not exist.
    Subclasses declare which columns are searchable, filterable and how lists sort
    (a leading ``-`` means descending).
    """

    model: type[ModelT]
    search_columns: ClassVar[tuple[str, ...]] = ()
    filter_columns: ClassVar[tuple[str, ...]] = ()
    ordering: ClassVar[tuple[str, ...]] = ("-created_at",)

    def column(self, name: str) -> InstrumentedAttribute[Any]:
        return getattr(self.model, name)

    def scoped(self, org_id: uuid.UUID) -> Select[tuple[ModelT]]:
        return select(self.model).where(self.column("org_id") == org_id)

    def get(self, session: Session, org_id: uuid.UUID, entity_id: uuid.UUID) -> ModelT | None:
        return session.scalar(self.scoped(org_id).where(self.column("id") == entity_id))

    def exists(self, session: Session, org_id: uuid.UUID, entity_id: uuid.UUID) -> bool:
        stmt = (
            select(self.column("id"))
            .where(self.column("org_id") == org_id, self.column("id") == entity_id)
            .limit(1)
        )
        return session.scalar(stmt) is not None

    def list(
        self,
        session: Session,
        org_id: uuid.UUID,
        *,
        search: str | None = None,
        filters: dict[str, Any] | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[ModelT]:
        stmt = self.apply_filters(self.scoped(org_id), filters)
        stmt = self.apply_search(stmt, search)
        stmt = stmt.order_by(*self.order_clauses()).offset(offset).limit(limit)
        return list(session.scalars(stmt).all())

    def apply_search(self, stmt: Select[Any], search: str | None) -> Select[Any]:
        if not search or not self.search_columns:
            return stmt
        pattern = f"%{search}%"
        return stmt.where(or_(*(self.column(name).ilike(pattern) for name in self.search_columns)))

    def apply_filters(self, stmt: Select[Any], filters: dict[str, Any] | None) -> Select[Any]:
        for name, value in (filters or {}).items():
            if value is None:
                continue
            if name not in self.filter_columns:
                raise ValueError(f"unsupported filter for {self.model.__tablename__}: {name}")
            stmt = stmt.where(self.column(name) == value)
        return stmt

    def order_clauses(self) -> list[Any]:
        clauses = []
        for name in self.ordering:
            if name.startswith("-"):
                clauses.append(self.column(name[1:]).desc())
            else:
                clauses.append(self.column(name).asc())
        return clauses

    def add(self, session: Session, org_id: uuid.UUID, values: dict[str, Any]) -> ModelT:
        entity = self.model(org_id=org_id, **values)
        session.add(entity)
        session.flush()
        return entity

    def update(self, session: Session, org_id: uuid.UUID, entity_id: uuid.UUID, patch: dict[str, Any]) -> bool:
        """Apply a partial update. Keys are column attribute names; absent keys stay untouched."""
        if not patch:
            return self.exists(session, org_id, entity_id)
        result = session.execute(
            update(self.model)
            .where(self.column("org_id") == org_id, self.column("id") == entity_id)
            .values(**patch, updated_at=utcnow())
        )
        return result.rowcount > 0

    def delete(self, session: Session, org_id: uuid.UUID, entity_id: uuid.UUID) -> bool:
        result = session.execute(
            delete(self.model).where(self.column("org_id") == org_id, self.column("id") == entity_id)
        )
        return result.rowcount > 0


def ensure_reference(
    session: Session,
    repository: TenantRepository[Any],
    org_id: uuid.UUID,
    entity_id: uuid.UUID | None,
    *,
    relation: str,
    field: str,
) -> None:
    """Fail with a validation error unless ``entity_id`` is absent or names a row in the same tenant."""
    if entity_id is None:
        return
    if not repository.exists(session, org_id, entity_id):
        message = f"{relation} not found or does not belong to organization"
        raise ValidationError(message, details=[{"field": field, "message": message, "type": "missing_relation"}])
