"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import acreate_client

from wayleave_tracker.adapters.json_file_storage import JsonFileStorage
from wayleave_tracker.adapters.local_record_store import LocalRecordStore
from wayleave_tracker.adapters.supabase_attachment_store import (
    SupabaseAttachmentStore,
)
from wayleave_tracker.adapters.supabase_identity_gateway import (
    SupabaseIdentityGateway,
)
from wayleave_tracker.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from wayleave_tracker.adapters.supabase_record_store import SupabaseRecordStore
from wayleave_tracker.app_logging import configure_logging
from wayleave_tracker.config import Settings
from wayleave_tracker.services.admin import AdminService
from wayleave_tracker.services.auth import AuthSessionManager, ProfileRepository
from wayleave_tracker.services.notifications import NotificationBus
from wayleave_tracker.services.records import (
    AttachmentStore,
    RecordRepository,
    RecordStore,
)

_logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    notification_bus: NotificationBus
    auth_manager: AuthSessionManager
    record_repository: RecordRepository
    admin_service: AdminService
    close_resources: Callable[[], Awaitable[None]]


async def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container and restore any stored session."""
    resolved_settings = settings or Settings()
    configure_logging(resolved_settings.log_level)
    notification_bus = NotificationBus(
        storage=JsonFileStorage(Path(resolved_settings.notification_store_path)),
        toast_ttl_seconds=resolved_settings.toast_ttl_seconds,
    )

    identity: SupabaseIdentityGateway | None = None
    profiles: ProfileRepository | None = None
    record_store: RecordStore | None = None
    attachments: AttachmentStore | None = None
    if resolved_settings.is_backend_configured:
        supabase_client = await acreate_client(
            resolved_settings.supabase_url, resolved_settings.supabase_anon_key
        )
        identity = SupabaseIdentityGateway(
            supabase_client, profile_function=resolved_settings.profile_function
        )
        profiles = SupabaseProfileRepository(supabase_client)
        record_store = SupabaseRecordStore(supabase_client)
        attachments = SupabaseAttachmentStore(
            supabase_client, bucket=resolved_settings.attachments_bucket
        )
    else:
        _logger.warning("Supabase is not configured; backend calls will fail fast")
    if resolved_settings.local_records_path:
        record_store = LocalRecordStore(
            JsonFileStorage(Path(resolved_settings.local_records_path))
        )

    auth_manager = AuthSessionManager(
        identity=identity,
        profiles=profiles,
        notifications=notification_bus,
        login_email_domain=resolved_settings.login_email_domain,
    )
    record_repository = RecordRepository(
        store=record_store,
        attachments=attachments,
        auth=auth_manager,
        notifications=notification_bus,
    )
    admin_service = AdminService(profiles=profiles, notifications=notification_bus)

    if identity is not None:
        identity.on_session_change(auth_manager.handle_session_change)
        await auth_manager.restore()

    async def close_resources() -> None:
        if identity is not None:
            await identity.close()

    return AppContainer(
        settings=resolved_settings,
        notification_bus=notification_bus,
        auth_manager=auth_manager,
        record_repository=record_repository,
        admin_service=admin_service,
        close_resources=close_resources,
    )
