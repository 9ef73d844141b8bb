"""
Astrologer service.

List reads are cached per filter combination; every write drops all of
those variants together with the single-astrologer key, and the user and
appointment lists that embed astrologer projections.
"""

from typing import Any

from app.db.helpers import DuplicateRecordError, MissingReferenceError
from app.infrastructure.observability.logging import get_logger
from app.models.api.astrologer_request import CreateAstrologerRequest
from app.models.domain.astrologer_domain import Astrologer
from app.models.domain.batch_domain import BatchOutcome
from app.repositories.astrologer_repository import AstrologerRepository
from app.services.batch_registration import register_batch
from app.services.cache import (
    ASTROLOGER,
    EntityCache,
    entity_key,
    list_key,
    write_invalidation_keys,
)
from app.services.errors import EntityConflictError, EntityNotFoundError, EntityValidationError

logger = get_logger(__name__)


class AstrologerService:
    def __init__(self, repository: Any = AstrologerRepository, cache: EntityCache | None = None):
        self.repository = repository
        self.cache = cache if cache is not None else EntityCache()

    async def _persist(self, candidate: CreateAstrologerRequest) -> Astrologer:
        return await self.repository.create(candidate.model_dump())

    async def create_astrologer(self, candidate: CreateAstrologerRequest) -> Astrologer:
        if await self.repository.find_one({"email": candidate.email}) is not None:
            raise EntityConflictError("Astrologer already exists")

        try:
            astrologer = await self._persist(candidate)
        except DuplicateRecordError as e:
            raise EntityConflictError("Astrologer already exists") from e

        await self.cache.invalidate(*write_invalidation_keys(ASTROLOGER))
        logger.info("Astrologer created", astrologer_id=astrologer.id)
        return astrologer

    async def generate_astrologers(
        self, candidates: list[CreateAstrologerRequest]
    ) -> BatchOutcome:
        try:
            return await register_batch(
                candidates,
                entity="Astrologer",
                find_existing=lambda email: self.repository.find_one({"email": email}),
                create=self._persist,
            )
        finally:
            await self.cache.invalidate(*write_invalidation_keys(ASTROLOGER))

    async def list_astrologers(self, is_top_astro: bool | None = None) -> list[Astrologer]:
        filters = {"is_top_astro": is_top_astro} if is_top_astro is not None else {}

        async def load() -> list[dict]:
            astrologers = await self.repository.find(filters)
            return [astrologer.model_dump(mode="json") for astrologer in astrologers]

        payload = await self.cache.read_through(list_key(ASTROLOGER, filters), load)
        return [Astrologer.model_validate(item) for item in payload]

    async def get_astrologer(self, astrologer_id: str) -> Astrologer:
        async def load() -> dict | None:
            astrologer = await self.repository.find_by_id(astrologer_id)
            return astrologer.model_dump(mode="json") if astrologer else None

        payload = await self.cache.read_through(entity_key(ASTROLOGER, astrologer_id), load)
        if payload is None:
            raise EntityNotFoundError("astrologer", astrologer_id)
        return Astrologer.model_validate(payload)

    async def update_astrologer(self, astrologer_id: str, changes: dict[str, Any]) -> Astrologer:
        if "email" in changes:
            owner = await self.repository.find_one({"email": changes["email"]})
            if owner is not None and owner.id != astrologer_id:
                raise EntityConflictError("Email is already in use")

        try:
            astrologer = await self.repository.find_by_id_and_update(astrologer_id, changes)
        except DuplicateRecordError as e:
            raise EntityConflictError("Email is already in use") from e
        except MissingReferenceError as e:
            raise EntityValidationError("Current connection appointment does not exist") from e

        if astrologer is None:
            raise EntityNotFoundError("astrologer", astrologer_id)

        # Next read of this astrologer recomputes from the store
        await self.cache.invalidate(*write_invalidation_keys(ASTROLOGER, astrologer_id))
        logger.info("Astrologer updated", astrologer_id=astrologer_id, fields=sorted(changes))
        return astrologer

    async def delete_astrologer(self, astrologer_id: str) -> Astrologer:
        astrologer = await self.repository.find_by_id_and_delete(astrologer_id)
        if astrologer is None:
            raise EntityNotFoundError("astrologer", astrologer_id)

        await self.cache.invalidate(*write_invalidation_keys(ASTROLOGER, astrologer_id))
        logger.info("Astrologer deleted", astrologer_id=astrologer_id)
        return astrologer


astrologer_service = AstrologerService()


def get_astrologer_service() -> AstrologerService:
    return astrologer_service
