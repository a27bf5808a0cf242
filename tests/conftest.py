"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta

import pytest

from wayleave_tracker.config import Settings
from wayleave_tracker.domain.backend import (
    AuthUser,
    BackendResult,
    SignInResult,
    SignUpResult,
)
from wayleave_tracker.domain.users import UserProfile, UserRole
from wayleave_tracker.domain.wayleaves import WayleaveRecord
from wayleave_tracker.services.auth import (
    AuthSessionManager,
    IdentityGateway,
    ProfileRepository,
    SessionChangeHandler,
)
from wayleave_tracker.services.notifications import KeyValueStorage, NotificationBus
from wayleave_tracker.services.records import (
    AttachmentStore,
    RecordRepository,
    RecordStore,
)


@dataclass
class InMemoryStorage(KeyValueStorage):
    """Dictionary-backed key-value storage for tests."""

    values: dict[str, str] = field(default_factory=dict)
    writes: int = 0
    fail_writes: bool = False

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise PermissionError(f"read-only storage: {key}")
        self.values[key] = value
        self.writes += 1


@dataclass
class FakeClock:
    """Manually advanced monotonic clock."""

    now: float = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class FakeIdentityGateway(IdentityGateway):
    """Identity service double with scripted results."""

    sign_in_result: SignInResult = field(default_factory=SignInResult)
    sign_up_result: SignUpResult = field(default_factory=SignUpResult)
    provision_result: BackendResult[UserProfile] = field(
        default_factory=BackendResult
    )
    sign_out_result: BackendResult[None] = field(default_factory=BackendResult)
    stored_user: AuthUser | None = None
    event_during_sign_in: tuple[str, AuthUser | None] | None = None
    raise_on_sign_in: Exception | None = None
    calls: list[str] = field(default_factory=list)
    handler: SessionChangeHandler | None = None

    async def sign_in(self, email: str, password: str) -> SignInResult:
        self.calls.append(f"sign_in:{email}")
        if self.event_during_sign_in and self.handler:
            await self.handler(*self.event_during_sign_in)
        if self.raise_on_sign_in:
            raise self.raise_on_sign_in
        return self.sign_in_result

    async def sign_up(self, email: str, password: str) -> SignUpResult:
        self.calls.append(f"sign_up:{email}")
        return self.sign_up_result

    async def provision_profile(self, cpr: str) -> BackendResult[UserProfile]:
        self.calls.append(f"provision:{cpr}")
        return self.provision_result

    async def sign_out(self) -> BackendResult[None]:
        self.calls.append("sign_out")
        return self.sign_out_result

    async def current_user(self) -> AuthUser | None:
        return self.stored_user

    def on_session_change(self, handler: SessionChangeHandler) -> None:
        self.handler = handler


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profiles table."""

    profiles: dict[str, UserProfile] = field(default_factory=dict)
    error: str | None = None
    lookups: int = 0

    async def get_profile(self, user_id: str) -> BackendResult[UserProfile]:
        self.lookups += 1
        if self.error:
            return BackendResult(error=self.error)
        return BackendResult(data=self.profiles.get(user_id))

    async def list_profiles(self) -> BackendResult[list[UserProfile]]:
        if self.error:
            return BackendResult(error=self.error)
        return BackendResult(
            data=sorted(self.profiles.values(), key=lambda profile: profile.name)
        )

    async def update_role(
        self, user_id: str, role: str | None
    ) -> BackendResult[UserProfile]:
        if self.error:
            return BackendResult(error=self.error)
        current = self.profiles[user_id]
        updated = replace(current, role=UserRole(role) if role else None)
        self.profiles[user_id] = updated
        return BackendResult(data=updated)


@dataclass
class InMemoryRecordStore(RecordStore):
    """In-memory record table that assigns creation times like the backend."""

    rows: dict[str, WayleaveRecord] = field(default_factory=dict)
    error: str | None = None
    calls: list[str] = field(default_factory=list)
    clock_start: datetime = field(
        default_factory=lambda: datetime(2024, 1, 1, tzinfo=UTC)
    )

    async def select_all(self) -> BackendResult[list[WayleaveRecord]]:
        self.calls.append("select")
        if self.error:
            return BackendResult(error=self.error)
        records = sorted(
            self.rows.values(),
            key=lambda record: record.created_at or self.clock_start,
            reverse=True,
        )
        return BackendResult(data=records)

    async def insert(self, record: WayleaveRecord) -> BackendResult[WayleaveRecord]:
        self.calls.append(f"insert:{record.id}")
        if self.error:
            return BackendResult(error=self.error)
        created_at = self.clock_start + timedelta(minutes=len(self.rows))
        stored = replace(record, created_at=created_at)
        self.rows[stored.id] = stored
        return BackendResult(data=stored)

    async def update(self, record: WayleaveRecord) -> BackendResult[WayleaveRecord]:
        self.calls.append(f"update:{record.id}")
        if self.error:
            return BackendResult(error=self.error)
        stored = replace(record, created_at=self.rows[record.id].created_at)
        self.rows[record.id] = stored
        return BackendResult(data=stored)

    async def delete(self, record_id: str) -> BackendResult[None]:
        self.calls.append(f"delete:{record_id}")
        if self.error:
            return BackendResult(error=self.error)
        self.rows.pop(record_id, None)
        return BackendResult()


@dataclass
class FakeAttachmentStore(AttachmentStore):
    """Attachment bucket double."""

    files: dict[str, bytes] = field(default_factory=dict)
    removed: list[list[str]] = field(default_factory=list)
    remove_error: str | None = None
    upload_error: str | None = None

    async def upload(self, path: str, content: bytes) -> BackendResult[None]:
        if self.upload_error:
            return BackendResult(error=self.upload_error)
        self.files[path] = content
        return BackendResult()

    async def public_uri(self, path: str) -> str:
        return f"https://example.supabase.co/storage/v1/object/public/files/{path}"

    async def remove(self, uris: list[str]) -> BackendResult[None]:
        self.removed.append(list(uris))
        if self.remove_error:
            return BackendResult(error=self.remove_error)
        return BackendResult()


ADMIN_USER = AuthUser(id="user-admin", email="123456789@wayleave.local")
PLANNER_USER = AuthUser(id="user-planner", email="987654321@wayleave.local")


def make_profiles() -> InMemoryProfileRepository:
    return InMemoryProfileRepository(
        profiles={
            ADMIN_USER.id: UserProfile(
                id=ADMIN_USER.id,
                cpr="123456789",
                name="Admin User",
                role=UserRole.ADMIN,
            ),
            PLANNER_USER.id: UserProfile(
                id=PLANNER_USER.id,
                cpr="987654321",
                name="EDD Planner",
                role=UserRole.EDD_PLANNING,
            ),
        }
    )


def make_bus(clock: FakeClock | None = None) -> NotificationBus:
    if clock is None:
        return NotificationBus(storage=InMemoryStorage())
    return NotificationBus(storage=InMemoryStorage(), clock=clock)


def make_auth(
    identity: FakeIdentityGateway | None = None,
    profiles: InMemoryProfileRepository | None = None,
    bus: NotificationBus | None = None,
) -> AuthSessionManager:
    resolved_identity = identity or FakeIdentityGateway()
    manager = AuthSessionManager(
        identity=resolved_identity,
        profiles=profiles if profiles is not None else make_profiles(),
        notifications=bus or make_bus(),
    )
    resolved_identity.on_session_change(manager.handle_session_change)
    return manager


def make_repository(
    store: InMemoryRecordStore | None = None,
    attachments: FakeAttachmentStore | None = None,
    auth: AuthSessionManager | None = None,
) -> RecordRepository:
    resolved_auth = auth or make_auth()
    return RecordRepository(
        store=store if store is not None else InMemoryRecordStore(),
        attachments=attachments if attachments is not None else FakeAttachmentStore(),
        auth=resolved_auth,
        notifications=resolved_auth.notifications,
    )


async def sign_in_as(repository: RecordRepository, user: AuthUser) -> None:
    """Install a session for ``user`` through the background restore path."""
    await repository.auth.handle_session_change("SIGNED_IN", user)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        supabase_url="",
        supabase_anon_key="",
        notification_store_path=str(tmp_path / "notifications.json"),
    )
