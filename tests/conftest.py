from collections import Counter
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from app.auth.verify import auth_dependency
from app.config import settings
from app.db.helpers import DuplicateRecordError, MissingReferenceError
from app.models.domain.appointment_domain import (
    Appointment,
    AppointmentAstrologer,
    AppointmentUser,
)
from app.models.domain.astrologer_domain import Astrologer, CurrentConnection
from app.models.domain.user_domain import AssignedAstrologer, User
from app.services.appointment_service import AppointmentService
from app.services.astrologer_service import AstrologerService
from app.services.cache import EntityCache
from app.services.user_service import UserService

TEST_JWT_SECRET = "test-secret-with-enough-length"


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch):
    monkeypatch.setattr(settings, "PASSWORD_HASH_ROUNDS", 4)
    monkeypatch.setattr(settings, "JWT_SECRET", TEST_JWT_SECRET)


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123", "role": "user"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


class FakeRedis:
    """In-memory stand-in for CacheClient with TTL bookkeeping and an outage switch."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.available = True
        self.calls: Counter = Counter()

    @property
    def is_connected(self) -> bool:
        return self.available

    async def ping(self) -> bool:
        return self.available

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        self.calls["set"] += 1
        if not self.available:
            return False
        self.store[key] = value
        self.ttls[key] = ttl_s
        return True

    async def get(self, key: str) -> str | None:
        self.calls["get"] += 1
        if not self.available:
            return None
        return self.store.get(key)

    async def delete(self, key: str) -> bool:
        self.calls["delete"] += 1
        if not self.available:
            return False
        self.store.pop(key, None)
        self.ttls.pop(key, None)
        return True


class InMemoryStore:
    """Three tables of raw rows with unique emails and ON DELETE SET NULL references."""

    # (table, column) -> referenced table
    REFERENCES = {
        ("users", "assigned_astrologer_id"): "astrologers",
        ("astrologers", "curr_connection_id"): "appointments",
        ("appointments", "user_id"): "users",
        ("appointments", "astro_id"): "astrologers",
    }
    UNIQUE = {"users": ("email",), "astrologers": ("email",), "appointments": ()}

    def __init__(self):
        self.users: dict[str, dict] = {}
        self.astrologers: dict[str, dict] = {}
        self.appointments: dict[str, dict] = {}

    def table(self, name: str) -> dict[str, dict]:
        return getattr(self, name)

    def check_constraints(self, name: str, row: dict) -> None:
        for column in self.UNIQUE[name]:
            for other in self.table(name).values():
                if other["id"] != row["id"] and other[column] == row[column]:
                    raise DuplicateRecordError(
                        f"duplicate key value violates unique constraint on {column}",
                        operation="execute",
                        recoverable=False,
                    )
        for (table, column), target in self.REFERENCES.items():
            value = row.get(column) if table == name else None
            if value is not None and value not in self.table(target):
                raise MissingReferenceError(
                    f"insert or update on {name} violates foreign key {column}",
                    operation="execute",
                    recoverable=False,
                )

    def delete(self, name: str, record_id: str) -> dict | None:
        row = self.table(name).pop(record_id, None)
        if row is None:
            return None
        for (table, column), target in self.REFERENCES.items():
            if target == name:
                for other in self.table(table).values():
                    if other.get(column) == record_id:
                        other[column] = None
        return row


class FakeRepository:
    """Store capability over InMemoryStore; ``calls`` counts every store access."""

    table: str
    defaults: dict = {}

    def __init__(self, store: InMemoryStore):
        self.store = store
        self.calls = 0

    @property
    def rows(self) -> dict[str, dict]:
        return self.store.table(self.table)

    def populate(self, row: dict):
        raise NotImplementedError

    def _matches(self, row: dict, filters: dict | None) -> bool:
        return all(row.get(field) == value for field, value in (filters or {}).items())

    async def create(self, fields: dict):
        self.calls += 1
        now = datetime.now(UTC)
        row = {**self.defaults, **fields, "id": str(uuid4()), "created_at": now, "updated_at": now}
        self.store.check_constraints(self.table, row)
        self.rows[row["id"]] = row
        return self.populate(row)

    async def find_one(self, filters: dict):
        self.calls += 1
        for row in self.rows.values():
            if self._matches(row, filters):
                return self.populate(row)
        return None

    async def find(self, filters: dict | None = None):
        self.calls += 1
        return [self.populate(row) for row in self.rows.values() if self._matches(row, filters)]

    async def find_by_id(self, record_id: str):
        self.calls += 1
        row = self.rows.get(record_id)
        return self.populate(row) if row else None

    async def find_by_id_and_update(self, record_id: str, fields: dict):
        self.calls += 1
        row = self.rows.get(record_id)
        if row is None:
            return None
        candidate = {**row, **fields, "updated_at": datetime.now(UTC)}
        self.store.check_constraints(self.table, candidate)
        row.update(candidate)
        return self.populate(row)

    async def find_by_id_and_delete(self, record_id: str):
        self.calls += 1
        # Populate before the row disappears, as the RETURNING projection does
        row = self.rows.get(record_id)
        if row is None:
            return None
        record = self.populate(row)
        self.store.delete(self.table, record_id)
        return record


class FakeUserRepository(FakeRepository):
    table = "users"
    defaults = {"role": "user", "assigned_astrologer_id": None}

    def populate(self, row: dict) -> User:
        astrologer = self.store.astrologers.get(row.get("assigned_astrologer_id"))
        assigned = None
        if astrologer:
            assigned = AssignedAstrologer(
                id=astrologer["id"],
                name=astrologer["name"],
                email=astrologer["email"],
                specialization=astrologer.get("specialization"),
                is_top_astro=astrologer["is_top_astro"],
                availability=astrologer["availability"],
            )
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            role=row["role"],
            assigned_astrologer=assigned,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def find_credentials(self, email: str):
        self.calls += 1
        for row in self.rows.values():
            if row["email"] == email:
                return self.populate(row), row["password_hash"]
        return None


class FakeAstrologerRepository(FakeRepository):
    table = "astrologers"
    defaults = {
        "specialization": None,
        "experience": 0,
        "is_top_astro": False,
        "availability": True,
        "flow_multiplier": 1.0,
        "curr_connection_id": None,
    }

    def populate(self, row: dict) -> Astrologer:
        appointment = self.store.appointments.get(row.get("curr_connection_id"))
        connection = None
        if appointment:
            connection = CurrentConnection(
                id=appointment["id"],
                appointment_date=appointment["appointment_date"],
                status=appointment["status"],
            )
        return Astrologer(
            **{key: row[key] for key in ("id", "name", "email", "created_at", "updated_at")},
            specialization=row["specialization"],
            experience=row["experience"],
            is_top_astro=row["is_top_astro"],
            availability=row["availability"],
            flow_multiplier=row["flow_multiplier"],
            curr_connection=connection,
        )


class FakeAppointmentRepository(FakeRepository):
    table = "appointments"
    defaults = {"status": "pending"}

    def populate(self, row: dict) -> Appointment:
        user = self.store.users.get(row.get("user_id"))
        astrologer = self.store.astrologers.get(row.get("astro_id"))
        return Appointment(
            id=row["id"],
            user=AppointmentUser(id=user["id"], name=user["name"], email=user["email"])
            if user
            else None,
            astrologer=AppointmentAstrologer(
                id=astrologer["id"],
                name=astrologer["name"],
                specialization=astrologer.get("specialization"),
            )
            if astrologer
            else None,
            appointment_date=row["appointment_date"],
            status=row["status"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def entity_cache(fake_redis):
    return EntityCache(client=fake_redis)


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def user_repo(memory_store):
    return FakeUserRepository(memory_store)


@pytest.fixture
def astrologer_repo(memory_store):
    return FakeAstrologerRepository(memory_store)


@pytest.fixture
def appointment_repo(memory_store):
    return FakeAppointmentRepository(memory_store)


@pytest.fixture
def user_service(user_repo, entity_cache):
    return UserService(repository=user_repo, cache=entity_cache)


@pytest.fixture
def astrologer_service(astrologer_repo, entity_cache):
    return AstrologerService(repository=astrologer_repo, cache=entity_cache)


@pytest.fixture
def appointment_service(appointment_repo, entity_cache):
    return AppointmentService(repository=appointment_repo, cache=entity_cache)
