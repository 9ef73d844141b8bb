"""
User service.

Cache-aside reads over UserRepository and invalidate-on-write. Updates
refresh the single-user key with the stored result; creates and deletes
drop it. Every write also drops the user list and the appointment list,
whose entries embed user names and emails.
"""

from typing import Any

from app.db.helpers import DuplicateRecordError, MissingReferenceError
from app.infrastructure.observability.logging import get_logger
from app.models.api.user_request import RegisterUserRequest, check_password_bytes
from app.models.domain.batch_domain import BatchOutcome
from app.models.domain.user_domain import User
from app.repositories.user_repository import UserRepository
from app.security.passwords import hash_password, verify_password
from app.services.batch_registration import register_batch
from app.services.cache import USER, EntityCache, entity_key, list_key, write_invalidation_keys
from app.services.errors import (
    EntityConflictError,
    EntityNotFoundError,
    EntityValidationError,
    InvalidCredentialsError,
)

logger = get_logger(__name__)


class UserService:
    def __init__(self, repository: Any = UserRepository, cache: EntityCache | None = None):
        self.repository = repository
        self.cache = cache if cache is not None else EntityCache()

    async def _hash(self, password: str) -> str:
        try:
            check_password_bytes(password)
        except ValueError as e:
            raise EntityValidationError(str(e)) from e
        return await hash_password(password)

    async def _persist(self, candidate: RegisterUserRequest) -> User:
        password_hash = await self._hash(candidate.password)
        return await self.repository.create(
            {
                "name": candidate.name,
                "email": candidate.email,
                "password_hash": password_hash,
                "role": candidate.role,
            }
        )

    async def register_user(self, candidate: RegisterUserRequest) -> User:
        """Create one user; an existing email is a conflict."""
        if await self.repository.find_one({"email": candidate.email}) is not None:
            raise EntityConflictError("User already exists")

        try:
            user = await self._persist(candidate)
        except DuplicateRecordError as e:
            raise EntityConflictError("User already exists") from e

        await self.cache.invalidate(*write_invalidation_keys(USER))
        logger.info("User registered", user_id=user.id, role=user.role)
        return user

    async def generate_users(self, candidates: list[RegisterUserRequest]) -> BatchOutcome:
        try:
            return await register_batch(
                candidates,
                entity="User",
                find_existing=lambda email: self.repository.find_one({"email": email}),
                create=self._persist,
            )
        finally:
            await self.cache.invalidate(*write_invalidation_keys(USER))

    async def authenticate(self, email: str, password: str) -> User:
        found = await self.repository.find_credentials(email)
        if found is None:
            raise EntityNotFoundError("user", email)

        user, password_hash = found
        if not await verify_password(password, password_hash):
            logger.info("Login rejected", user_id=user.id)
            raise InvalidCredentialsError()

        return user

    async def list_users(self) -> list[User]:
        async def load() -> list[dict]:
            users = await self.repository.find()
            return [user.model_dump(mode="json") for user in users]

        payload = await self.cache.read_through(list_key(USER), load)
        return [User.model_validate(item) for item in payload]

    async def get_user(self, user_id: str) -> User:
        async def load() -> dict | None:
            user = await self.repository.find_by_id(user_id)
            return user.model_dump(mode="json") if user else None

        payload = await self.cache.read_through(entity_key(USER, user_id), load)
        if payload is None:
            raise EntityNotFoundError("user", user_id)
        return User.model_validate(payload)

    async def update_user(self, user_id: str, changes: dict[str, Any]) -> User:
        """Apply only the supplied fields; a new password is re-hashed."""
        fields = dict(changes)

        if "email" in fields:
            owner = await self.repository.find_one({"email": fields["email"]})
            if owner is not None and owner.id != user_id:
                raise EntityConflictError("Email is already in use")

        if "password" in fields:
            fields["password_hash"] = await self._hash(fields.pop("password"))

        try:
            user = await self.repository.find_by_id_and_update(user_id, fields)
        except DuplicateRecordError as e:
            raise EntityConflictError("Email is already in use") from e
        except MissingReferenceError as e:
            raise EntityValidationError("Assigned astrologer does not exist") from e

        if user is None:
            raise EntityNotFoundError("user", user_id)

        # Drop first so a failed refresh cannot leave the pre-update snapshot behind
        await self.cache.invalidate(*write_invalidation_keys(USER, user_id))
        await self.cache.write(entity_key(USER, user_id), user.model_dump(mode="json"))

        logger.info("User updated", user_id=user_id, fields=sorted(changes))
        return user

    async def delete_user(self, user_id: str) -> User:
        user = await self.repository.find_by_id_and_delete(user_id)
        if user is None:
            raise EntityNotFoundError("user", user_id)

        await self.cache.invalidate(*write_invalidation_keys(USER, user_id))
        logger.info("User deleted", user_id=user_id)
        return user


user_service = UserService()


def get_user_service() -> UserService:
    return user_service
