"""
Bulk creation with per-item outcomes.

Every candidate is processed independently: an email already in the store,
an email repeated earlier in the same batch (compared exactly, like the
unique constraint), a store-level rejection or any other error
fails only that item. Successful items are never rolled back because a
sibling failed. Cache invalidation is left to the caller so it happens
once per batch.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from app.config import settings
from app.db.helpers import DatabaseError, DuplicateRecordError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.batch_domain import (
    BatchItemCreated,
    BatchItemFailed,
    BatchItemResult,
    BatchOutcome,
)
from app.services.errors import BookingServiceError, EntityValidationError

logger = get_logger(__name__)


class BatchCandidate(Protocol):
    email: str


async def register_batch(
    candidates: Sequence[BatchCandidate],
    *,
    entity: str,
    find_existing: Callable[[str], Awaitable[Any | None]],
    create: Callable[[Any], Awaitable[Any]],
    concurrency: int | None = None,
) -> BatchOutcome:
    """
    Create each candidate unless its email is already taken.

    Args:
        candidates: Structurally validated records, each with an ``email``
        entity: Display name used in failure reasons ("User", "Astrologer")
        find_existing: Looks up a conflicting record by email
        create: Persists one candidate and returns the stored record
        concurrency: Maximum items in flight at once

    Returns:
        BatchOutcome with one result per candidate, in input order
    """
    if not candidates:
        raise EntityValidationError(
            f"Invalid input, expected a non-empty list of {entity.lower()} records"
        )

    semaphore = asyncio.Semaphore(concurrency or settings.BATCH_CONCURRENCY)
    seen: set[str] = set()
    repeated: set[int] = set()
    # Exact match, the same rule as the unique constraint on email
    for index, candidate in enumerate(candidates):
        if candidate.email in seen:
            repeated.add(index)
        seen.add(candidate.email)

    async def process(index: int, candidate: BatchCandidate) -> BatchItemResult:
        email = candidate.email
        if index in repeated:
            return BatchItemFailed(index, email, f"Duplicate email {email} in batch.")

        already_exists = f"{entity} with email {email} already exists."
        async with semaphore:
            try:
                if await find_existing(email) is not None:
                    return BatchItemFailed(index, email, already_exists)
                record = await create(candidate)
            except DuplicateRecordError:
                # Lost a race with a concurrent registration of the same email
                return BatchItemFailed(index, email, already_exists)
            except (DatabaseError, BookingServiceError) as e:
                logger.warning(
                    "Batch item failed", entity=entity, index=index, email=email, error=str(e)
                )
                return BatchItemFailed(index, email, f"{entity} with email {email} failed: {e}")
            except Exception as e:
                # Any other failure stays confined to its own item
                logger.error(
                    "Batch item crashed",
                    entity=entity,
                    index=index,
                    email=email,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return BatchItemFailed(index, email, f"{entity} with email {email} failed: {e}")

        return BatchItemCreated(index, email, record)

    results = await asyncio.gather(
        *(process(index, candidate) for index, candidate in enumerate(candidates))
    )
    outcome = BatchOutcome(results=list(results))

    logger.info(
        "Batch registration finished",
        entity=entity,
        requested=len(candidates),
        created=outcome.success_count,
        failed=len(outcome.failures),
    )
    return outcome
