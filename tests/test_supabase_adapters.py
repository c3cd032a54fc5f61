"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from uuid import uuid4

from admin_dashboard.adapters.supabase_owner_repository import (
    SupabaseImageOwnerRepository,
)
from admin_dashboard.domain.models import Professor, RemoteReference


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "update": []}
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def test_find_parses_image_reference() -> None:
    client = FakeSupabaseClient()
    table = client.table("departments")
    department_id = uuid4()
    table.queue(
        "select",
        [
            {
                "id": str(department_id),
                "name": "Physics",
                "image_reference": "department-images/departments/p.png",
                "version": 4,
            }
        ],
    )

    department = SupabaseImageOwnerRepository(client).find(department_id)

    assert department is not None
    assert department.id == department_id
    assert department.version == 4
    assert department.image_reference == RemoteReference(
        "department-images", "departments/p.png"
    )
    assert table.last_filters == [("id", str(department_id))]


def test_find_missing_department() -> None:
    client = FakeSupabaseClient()

    assert SupabaseImageOwnerRepository(client).find(uuid4()) is None


def test_find_by_name_returns_every_match() -> None:
    client = FakeSupabaseClient()
    table = client.table("departments")
    table.queue(
        "select",
        [
            {"id": str(uuid4()), "name": "Arts", "image_reference": None},
            {"id": str(uuid4()), "name": "Arts", "image_reference": None},
        ],
    )

    departments = SupabaseImageOwnerRepository(client).find_by_name("Arts")

    assert [d.name for d in departments] == ["Arts", "Arts"]
    assert all(d.image_reference is None for d in departments)
    assert all(d.version == 1 for d in departments)
    assert table.last_filters == [("name", "Arts")]


def test_update_is_guarded_by_version() -> None:
    client = FakeSupabaseClient()
    table = client.table("departments")
    department_id = uuid4()
    reference = RemoteReference("department-images", "departments/p.png")
    table.queue(
        "update",
        [
            {
                "id": str(department_id),
                "name": "Physics",
                "image_reference": reference.locator,
                "version": 3,
            }
        ],
    )

    updated = SupabaseImageOwnerRepository(client).update(
        department_id, {"image_reference": reference}, expected_version=2
    )

    assert updated is not None
    assert updated.image_reference == reference
    assert isinstance(table.last_payload, dict)
    assert table.last_payload["image_reference"] == reference.locator
    assert table.last_payload["version"] == 3
    assert "updated_at" in table.last_payload
    assert table.last_filters == [("id", str(department_id)), ("version", 2)]


def test_update_with_stale_version_returns_none() -> None:
    client = FakeSupabaseClient()

    updated = SupabaseImageOwnerRepository(client).update(
        uuid4(), {"image_reference": None}, expected_version=7
    )

    assert updated is None
    assert client.table("departments").last_payload["image_reference"] is None


def test_professor_repository_reads_professors_table() -> None:
    client = FakeSupabaseClient()
    professor_id = uuid4()
    client.table("professors").queue(
        "select",
        [
            {
                "id": str(professor_id),
                "name": "Ada Lovelace",
                "image_reference": "department-images/professors/a.png",
                "version": 2,
            }
        ],
    )

    professor = SupabaseImageOwnerRepository(client, record_type=Professor).find(
        professor_id
    )

    assert isinstance(professor, Professor)
    assert professor.image_reference == RemoteReference(
        "department-images", "professors/a.png"
    )
    assert "departments" not in client.tables
