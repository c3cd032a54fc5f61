"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from admin_dashboard.adapters.httpx_identity_client import HttpxIdentityClient
from admin_dashboard.adapters.httpx_storage_client import HttpxStorageClient
from admin_dashboard.adapters.supabase_owner_repository import (
    SupabaseImageOwnerRepository,
)
from admin_dashboard.config import Settings, parse_allowed_image_types
from admin_dashboard.domain.models import (
    Department,
    OwnerKind,
    Professor,
    UploadCredentials,
)
from admin_dashboard.services.cache import InMemoryDepartmentCache
from admin_dashboard.services.connections import ConnectionManager
from admin_dashboard.services.departments import DepartmentResolver
from admin_dashboard.services.images import (
    ImageBindingService,
    ImageFetcher,
    ImagePolicy,
)
from admin_dashboard.services.retry import RetryPolicy
from admin_dashboard.services.uploads import UploadExecutor
from admin_dashboard.services.users import UserAdminService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    department_resolver: DepartmentResolver
    professor_resolver: DepartmentResolver
    connection_manager: ConnectionManager
    department_image_service: ImageBindingService
    professor_image_service: ImageBindingService
    image_fetcher: ImageFetcher
    user_admin_service: UserAdminService
    close_resources: Callable[[], Awaitable[None]]


def load_credentials(settings: Settings) -> UploadCredentials:
    """Build the immutable storage credentials from settings."""
    metadata = {}
    if settings.storage_account_id:
        metadata["account_id"] = settings.storage_account_id
    return UploadCredentials(
        identity=settings.storage_email,
        secret=settings.storage_password,
        metadata=metadata,
    )


def build_retry_policies(settings: Settings) -> tuple[RetryPolicy, RetryPolicy]:
    """Return the connection and transfer retry policies."""
    connect_policy = RetryPolicy(
        max_attempts=settings.upload_max_attempts,
        base_delay_seconds=settings.upload_base_delay_seconds,
        max_delay_seconds=settings.upload_max_delay_seconds,
        attempt_timeout_seconds=settings.connect_timeout_seconds,
    )
    upload_policy = RetryPolicy(
        max_attempts=settings.upload_max_attempts,
        base_delay_seconds=settings.upload_base_delay_seconds,
        max_delay_seconds=settings.upload_max_delay_seconds,
        attempt_timeout_seconds=settings.upload_timeout_seconds,
    )
    return connect_policy, upload_policy


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    cache_ttl = resolved_settings.department_cache_ttl_seconds
    department_resolver = DepartmentResolver(
        repository=SupabaseImageOwnerRepository(supabase_client, Department),
        cache=InMemoryDepartmentCache(ttl_seconds=cache_ttl),
    )
    professor_resolver = DepartmentResolver(
        repository=SupabaseImageOwnerRepository(supabase_client, Professor),
        cache=InMemoryDepartmentCache(ttl_seconds=cache_ttl),
        kind=OwnerKind.PROFESSOR,
    )
    storage_client = HttpxStorageClient.create(
        base_url=resolved_settings.storage_url or resolved_settings.supabase_url,
        api_key=resolved_settings.storage_api_key
        or resolved_settings.supabase_service_key,
        bucket=resolved_settings.storage_bucket,
    )
    identity_client = HttpxIdentityClient.create(
        base_url=resolved_settings.supabase_url,
        service_key=resolved_settings.supabase_service_key,
    )
    credentials = load_credentials(resolved_settings)
    connect_policy, upload_policy = build_retry_policies(resolved_settings)
    connection_manager = ConnectionManager(
        connector=storage_client,
        credentials=credentials,
        policy=connect_policy,
    )
    upload_executor = UploadExecutor(
        gateway=storage_client,
        connections=connection_manager,
        policy=upload_policy,
    )
    image_policy = ImagePolicy(
        max_bytes=resolved_settings.max_upload_bytes,
        allowed_types=parse_allowed_image_types(resolved_settings.allowed_image_types),
    )
    department_image_service = ImageBindingService(
        resolver=department_resolver,
        connections=connection_manager,
        executor=upload_executor,
        credentials=credentials,
        policy=image_policy,
    )
    professor_image_service = ImageBindingService(
        resolver=professor_resolver,
        connections=connection_manager,
        executor=upload_executor,
        credentials=credentials,
        policy=image_policy,
    )
    image_fetcher = ImageFetcher(
        connections=connection_manager,
        executor=upload_executor,
        credentials=credentials,
        bucket=resolved_settings.storage_bucket,
    )
    user_admin_service = UserAdminService(identity_client)

    async def close_resources() -> None:
        await storage_client.close()
        await identity_client.close()

    return AppContainer(
        settings=resolved_settings,
        department_resolver=department_resolver,
        professor_resolver=professor_resolver,
        connection_manager=connection_manager,
        department_image_service=department_image_service,
        professor_image_service=professor_image_service,
        image_fetcher=image_fetcher,
        user_admin_service=user_admin_service,
        close_resources=close_resources,
    )
