"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from admin_dashboard.config import Settings
from admin_dashboard.containers import AppContainer
from admin_dashboard.domain.errors import (
    ImageNotFoundError,
    ObjectExistsError,
    UserNotFoundError,
)
from admin_dashboard.domain.models import (
    Department,
    ImageOwner,
    OwnerKind,
    Professor,
    RemoteReference,
    StorageSession,
    UploadContent,
    UploadCredentials,
)
from admin_dashboard.services.cache import InMemoryDepartmentCache
from admin_dashboard.services.connections import ConnectionManager, StorageConnector
from admin_dashboard.services.departments import (
    DepartmentRepository,
    DepartmentResolver,
)
from admin_dashboard.services.images import ImageBindingService, ImageFetcher
from admin_dashboard.services.retry import RetryPolicy
from admin_dashboard.services.uploads import StorageGateway, UploadExecutor
from admin_dashboard.services.users import IdentityProvider, UserAdminService

VALID_CREDENTIALS = UploadCredentials(
    identity="uploader@example.com", secret="s3cret-pass"
)


@dataclass
class InMemoryDepartmentRepository(DepartmentRepository):
    """In-memory authoritative store for tests."""

    departments: dict[UUID, ImageOwner] = field(default_factory=dict)
    record_type: type[ImageOwner] = Department
    find_calls: int = 0
    find_by_name_calls: int = 0

    def add(self, name: str) -> ImageOwner:
        department = self.record_type(id=uuid4(), name=name)
        self.departments[department.id] = department
        return department

    def find(self, department_id: UUID) -> ImageOwner | None:
        self.find_calls += 1
        return self.departments.get(department_id)

    def find_by_name(self, name: str) -> list[ImageOwner]:
        self.find_by_name_calls += 1
        return [d for d in self.departments.values() if d.name == name]

    def update(
        self, department_id: UUID, fields: dict[str, object], expected_version: int
    ) -> ImageOwner | None:
        current = self.departments.get(department_id)
        if current is None or current.version != expected_version:
            return None
        updated = replace(current, **fields, version=current.version + 1)
        self.departments[department_id] = updated
        return updated


async def no_sleep(_delay: float) -> None:
    return None


@dataclass
class RecordingSleep:
    """Sleep stand-in that records requested delays."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@dataclass
class FakeStorageClient(StorageConnector, StorageGateway):
    """Scriptable storage backend without overwrites.

    Each entry of an outcome queue is either an exception to raise or None for
    success; when a queue is empty the call succeeds.
    """

    connect_outcomes: list[Exception | None] = field(default_factory=list)
    put_outcomes: list[Exception | None] = field(default_factory=list)
    delete_outcomes: list[Exception | None] = field(default_factory=list)
    connect_delay: float = 0.0
    put_delay: float = 0.0
    connect_calls: int = 0
    put_sessions: list[StorageSession] = field(default_factory=list)
    objects: dict[str, bytes] = field(default_factory=dict)
    content_types: dict[str, str] = field(default_factory=dict)
    deleted: list[RemoteReference] = field(default_factory=list)
    bucket: str = "department-images"

    async def connect(self, credentials: UploadCredentials) -> StorageSession:
        self.connect_calls += 1
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        _raise_next(self.connect_outcomes)
        return StorageSession(
            access_token=f"token-{self.connect_calls}",
            expires_at=datetime.now(tz=UTC) + timedelta(hours=1),
        )

    async def put_object(
        self, session: StorageSession, destination: str, content: UploadContent
    ) -> RemoteReference:
        self.put_sessions.append(session)
        if self.put_delay:
            await asyncio.sleep(self.put_delay)
        _raise_next(self.put_outcomes)
        reference = RemoteReference(bucket=self.bucket, path=destination)
        if destination in self.objects:
            raise ObjectExistsError(reference)
        self.objects[destination] = content.data
        self.content_types[destination] = content.content_type
        return reference

    async def delete_object(
        self, session: StorageSession, reference: RemoteReference
    ) -> None:
        _raise_next(self.delete_outcomes)
        self.objects.pop(reference.path, None)
        self.deleted.append(reference)

    async def get_object(
        self, session: StorageSession, reference: RemoteReference
    ) -> UploadContent:
        if reference.path not in self.objects:
            raise ImageNotFoundError(reference.locator)
        return UploadContent(
            data=self.objects[reference.path],
            content_type=self.content_types.get(reference.path, "image/jpeg"),
        )


def _raise_next(outcomes: list[Exception | None]) -> None:
    if outcomes:
        outcome = outcomes.pop(0)
        if outcome is not None:
            raise outcome


@dataclass
class FakeIdentityProvider(IdentityProvider):
    """Identity provider holding accounts in memory."""

    emails: set[str] = field(default_factory=set)
    deleted: list[str] = field(default_factory=list)
    error: Exception | None = None

    async def delete_user(self, email: str) -> None:
        if self.error is not None:
            raise self.error
        if email not in self.emails:
            raise UserNotFoundError(email)
        self.emails.discard(email)
        self.deleted.append(email)


def fast_policy(max_attempts: int = 3, timeout: float = 1.0) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=max_attempts,
        base_delay_seconds=0.5,
        attempt_timeout_seconds=timeout,
    )


def build_manager(
    storage: FakeStorageClient,
    credentials: UploadCredentials = VALID_CREDENTIALS,
    policy: RetryPolicy | None = None,
) -> ConnectionManager:
    return ConnectionManager(
        connector=storage,
        credentials=credentials,
        policy=policy or fast_policy(),
        sleep=no_sleep,
    )


def build_executor(
    storage: FakeStorageClient,
    manager: ConnectionManager,
    policy: RetryPolicy | None = None,
) -> UploadExecutor:
    return UploadExecutor(
        gateway=storage,
        connections=manager,
        policy=policy or fast_policy(),
        sleep=no_sleep,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        storage_email="uploader@example.com",
        storage_password="s3cret-pass",
    )


@pytest.fixture
def department_repository() -> InMemoryDepartmentRepository:
    return InMemoryDepartmentRepository()


@pytest.fixture
def storage_client() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider(emails={"prof@example.com"})


@pytest.fixture
def professor_repository() -> InMemoryDepartmentRepository:
    return InMemoryDepartmentRepository(record_type=Professor)


@pytest.fixture
def resolver(
    department_repository: InMemoryDepartmentRepository,
) -> DepartmentResolver:
    return DepartmentResolver(
        repository=department_repository, cache=InMemoryDepartmentCache()
    )


@pytest.fixture
def professor_resolver(
    professor_repository: InMemoryDepartmentRepository,
) -> DepartmentResolver:
    return DepartmentResolver(
        repository=professor_repository,
        cache=InMemoryDepartmentCache(),
        kind=OwnerKind.PROFESSOR,
    )


@pytest.fixture
def container(
    settings: Settings,
    resolver: DepartmentResolver,
    professor_resolver: DepartmentResolver,
    storage_client: FakeStorageClient,
    identity_provider: FakeIdentityProvider,
) -> AppContainer:
    manager = build_manager(storage_client)
    executor = build_executor(storage_client, manager)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        department_resolver=resolver,
        professor_resolver=professor_resolver,
        connection_manager=manager,
        department_image_service=ImageBindingService(
            resolver=resolver,
            connections=manager,
            executor=executor,
            credentials=VALID_CREDENTIALS,
        ),
        professor_image_service=ImageBindingService(
            resolver=professor_resolver,
            connections=manager,
            executor=executor,
            credentials=VALID_CREDENTIALS,
        ),
        image_fetcher=ImageFetcher(
            connections=manager,
            executor=executor,
            credentials=VALID_CREDENTIALS,
            bucket=storage_client.bucket,
        ),
        user_admin_service=UserAdminService(identity_provider),
        close_resources=close_resources,
    )
