"""Read-optimised department cache."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from admin_dashboard.domain.models import CachedDepartment, ImageOwner


class DepartmentCache(Protocol):
    """Cache interface for image-owner records of one kind.

    Entries may be stale relative to the authoritative store; callers that
    write must re-validate against the store first.
    """

    def lookup_name(self, name: str) -> list[CachedDepartment] | None:
        """Return cached departments for a name, or None on a miss."""

    def store_name(self, name: str, departments: Iterable[ImageOwner]) -> None:
        """Record the complete set of departments carrying `name`."""

    def put(self, department: ImageOwner) -> None:
        """Insert or refresh a single record read from the store."""

    def invalidate(self, department_id: UUID) -> None:
        """Drop a record and every name index that references it."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class _NameEntry:
    ids: set[UUID]
    expires_at: datetime


@dataclass
class InMemoryDepartmentCache(DepartmentCache):
    """Process-local department cache with a TTL on name lookups."""

    ttl_seconds: int = 300
    now: Callable[[], datetime] = _utcnow
    _records: dict[UUID, CachedDepartment] = field(default_factory=dict)
    _names: dict[str, _NameEntry] = field(default_factory=dict)

    def lookup_name(self, name: str) -> list[CachedDepartment] | None:
        """Return cached matches if the name index is fresh and complete."""
        entry = self._names.get(name)
        if entry is None:
            return None
        if self.now() >= entry.expires_at:
            self._names.pop(name, None)
            return None
        records = [self._records.get(department_id) for department_id in entry.ids]
        if any(record is None for record in records):
            self._names.pop(name, None)
            return None
        return sorted(records, key=lambda record: str(record.department.id))

    def store_name(self, name: str, departments: Iterable[ImageOwner]) -> None:
        """Replace the name index with the store's answer."""
        ids: set[UUID] = set()
        for department in departments:
            self.put(department)
            ids.add(department.id)
        expires_at = self.now() + timedelta(seconds=self.ttl_seconds)
        self._names[name] = _NameEntry(ids=ids, expires_at=expires_at)

    def put(self, department: ImageOwner) -> None:
        """Store a record and keep existing name indexes consistent."""
        self._records[department.id] = CachedDepartment(
            department=department, cached_at=self.now()
        )
        for name, entry in self._names.items():
            if name == department.name:
                entry.ids.add(department.id)
            else:
                entry.ids.discard(department.id)

    def invalidate(self, department_id: UUID) -> None:
        """Forget a record so the next lookup goes to the store."""
        self._records.pop(department_id, None)
        stale = [
            name for name, entry in self._names.items() if department_id in entry.ids
        ]
        for name in stale:
            self._names.pop(name, None)
