"""Image-owner resolution and image binding."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from admin_dashboard.domain.errors import (
    AmbiguousDepartmentError,
    BindingConflictError,
    DepartmentNotFoundError,
)
from admin_dashboard.domain.models import ImageOwner, OwnerKind, RemoteReference
from admin_dashboard.services.cache import DepartmentCache

_logger = logging.getLogger(__name__)


class DepartmentRepository(Protocol):
    """Authoritative store for one kind of image owner."""

    def find(self, department_id: UUID) -> ImageOwner | None:
        """Return a record by id, if present."""

    def find_by_name(self, name: str) -> list[ImageOwner]:
        """Return every record with exactly this name."""

    def update(
        self, department_id: UUID, fields: dict[str, object], expected_version: int
    ) -> ImageOwner | None:
        """Apply `fields` if the stored version matches; return the new record."""


@dataclass
class DepartmentResolver:
    """Maps inbound references to authoritative records of one owner kind."""

    repository: DepartmentRepository
    cache: DepartmentCache
    kind: OwnerKind = OwnerKind.DEPARTMENT

    def resolve(self, reference: str) -> ImageOwner:
        """Resolve an id or a name to exactly one record."""
        cleaned = reference.strip()
        if not cleaned:
            raise DepartmentNotFoundError(reference, self.kind.label)

        department_id = _parse_uuid(cleaned)
        if department_id is not None:
            department = self.repository.find(department_id)
            if department is not None:
                self.cache.put(department)
                return department

        matches = self._match_name(cleaned)
        if not matches:
            raise DepartmentNotFoundError(cleaned, self.kind.label)
        if len(matches) > 1:
            raise AmbiguousDepartmentError(
                cleaned,
                [str(department.id) for department in matches],
                self.kind.label,
            )
        return matches[0]

    def bind(self, department: ImageOwner, reference: RemoteReference) -> ImageOwner:
        """Persist an uploaded image reference onto the authoritative record."""
        return self._write(department, {"image_reference": reference})

    def clear(self, department: ImageOwner) -> ImageOwner:
        """Remove the image reference from the authoritative record."""
        return self._write(department, {"image_reference": None})

    def _match_name(self, name: str) -> list[ImageOwner]:
        cached = self.cache.lookup_name(name)
        if cached is not None:
            return [entry.department for entry in cached]
        matches = self.repository.find_by_name(name)
        self.cache.store_name(name, matches)
        return matches

    def _write(self, department: ImageOwner, fields: dict[str, object]) -> ImageOwner:
        current = self.repository.find(department.id)
        if current is None or current.version != department.version:
            self.cache.invalidate(department.id)
            raise BindingConflictError(str(department.id), self.kind.label)
        updated = self.repository.update(
            department.id, fields, expected_version=department.version
        )
        if updated is None:
            self.cache.invalidate(department.id)
            raise BindingConflictError(str(department.id), self.kind.label)
        self.cache.put(updated)
        _logger.info(
            "%s %s image set to %s",
            self.kind.label,
            updated.id,
            updated.image_reference.locator if updated.image_reference else None,
        )
        return updated


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None
