"""Supabase-backed repository for image-owner records."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from admin_dashboard.domain.models import Department, ImageOwner, RemoteReference
from admin_dashboard.services.departments import DepartmentRepository

_COLUMNS = "id, name, image_reference, version"


@dataclass
class SupabaseImageOwnerRepository(DepartmentRepository):
    """Supabase implementation of the authoritative store for one owner kind.

    Rows live in the table named after the kind (`departments`, `professors`).
    """

    client: Client
    record_type: type[ImageOwner] = Department

    @property
    def table(self) -> str:
        return self.record_type.kind.collection

    def find(self, department_id: UUID) -> ImageOwner | None:
        """Return a record by id, if present."""
        response = (
            self.client.table(self.table)
            .select(_COLUMNS)
            .eq("id", str(department_id))
            .limit(1)
            .execute()
        )
        if response.data:
            return self._to_record(response.data[0])
        return None

    def find_by_name(self, name: str) -> list[ImageOwner]:
        """Return every record with exactly this name."""
        response = (
            self.client.table(self.table).select(_COLUMNS).eq("name", name).execute()
        )
        return [self._to_record(row) for row in response.data or []]

    def update(
        self, department_id: UUID, fields: dict[str, object], expected_version: int
    ) -> ImageOwner | None:
        """Apply a version-guarded update and return the stored row."""
        payload = {key: _serialize(value) for key, value in fields.items()}
        payload["version"] = expected_version + 1
        payload["updated_at"] = datetime.now(tz=UTC).isoformat()
        response = (
            self.client.table(self.table)
            .update(payload)
            .eq("id", str(department_id))
            .eq("version", expected_version)
            .execute()
        )
        if not response.data:
            return None
        return self._to_record(response.data[0])

    def _to_record(self, row: dict[str, object]) -> ImageOwner:
        locator = row.get("image_reference")
        return self.record_type(
            id=UUID(str(row["id"])),
            name=str(row["name"]),
            image_reference=RemoteReference.parse(str(locator)) if locator else None,
            version=int(row.get("version") or 1),
        )


def _serialize(value: object) -> object:
    if isinstance(value, RemoteReference):
        return value.locator
    return value
