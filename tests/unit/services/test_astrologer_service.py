import pytest

from app.models.api.astrologer_request import CreateAstrologerRequest
from app.services.errors import EntityConflictError, EntityNotFoundError, EntityValidationError


def _astrologer(email: str, **overrides) -> CreateAstrologerRequest:
    fields = {"name": "Vedika", "email": email, "specialization": "Vedic", "experience": 7}
    fields.update(overrides)
    return CreateAstrologerRequest(**fields)


@pytest.mark.asyncio
async def test_filtered_lists_are_cached_separately(astrologer_service, fake_redis):
    await astrologer_service.create_astrologer(_astrologer("top@example.com", isTopAstro=True))
    await astrologer_service.create_astrologer(_astrologer("regular@example.com"))

    everyone = await astrologer_service.list_astrologers()
    top = await astrologer_service.list_astrologers(is_top_astro=True)
    regular = await astrologer_service.list_astrologers(is_top_astro=False)

    assert len(everyone) == 2
    assert [a.email for a in top] == ["top@example.com"]
    assert [a.email for a in regular] == ["regular@example.com"]
    assert {
        "allAstrologers",
        "allAstrologers:is_top_astro:true",
        "allAstrologers:is_top_astro:false",
    } <= set(fake_redis.store)


@pytest.mark.asyncio
async def test_create_invalidates_every_filtered_list(astrologer_service, fake_redis):
    await astrologer_service.create_astrologer(_astrologer("top@example.com", isTopAstro=True))
    await astrologer_service.list_astrologers()
    await astrologer_service.list_astrologers(is_top_astro=True)

    await astrologer_service.create_astrologer(_astrologer("next@example.com", isTopAstro=True))

    assert not any(key.startswith("allAstrologers") for key in fake_redis.store)
    assert len(await astrologer_service.list_astrologers(is_top_astro=True)) == 2


@pytest.mark.asyncio
async def test_list_hit_bypasses_store(astrologer_service, astrologer_repo):
    await astrologer_service.create_astrologer(_astrologer("a@example.com"))
    await astrologer_service.list_astrologers(is_top_astro=False)
    calls = astrologer_repo.calls

    await astrologer_service.list_astrologers(is_top_astro=False)

    assert astrologer_repo.calls == calls


@pytest.mark.asyncio
async def test_create_duplicate_email_is_conflict(astrologer_service):
    await astrologer_service.create_astrologer(_astrologer("a@example.com"))

    with pytest.raises(EntityConflictError):
        await astrologer_service.create_astrologer(_astrologer("a@example.com"))


@pytest.mark.asyncio
async def test_update_drops_entity_key_and_next_read_is_fresh(astrologer_service, fake_redis):
    created = await astrologer_service.create_astrologer(_astrologer("a@example.com"))
    await astrologer_service.get_astrologer(created.id)
    fake_redis.store["allUsers"] = "[]"

    updated = await astrologer_service.update_astrologer(created.id, {"availability": False})

    assert updated.availability is False
    assert f"astrologer:{created.id}" not in fake_redis.store
    assert "allUsers" not in fake_redis.store
    assert (await astrologer_service.get_astrologer(created.id)).availability is False


@pytest.mark.asyncio
async def test_toggling_top_flag_moves_astrologer_between_filters(astrologer_service):
    created = await astrologer_service.create_astrologer(_astrologer("a@example.com"))
    assert await astrologer_service.list_astrologers(is_top_astro=True) == []

    await astrologer_service.update_astrologer(created.id, {"is_top_astro": True})

    assert [a.id for a in await astrologer_service.list_astrologers(is_top_astro=True)] == [
        created.id
    ]
    assert await astrologer_service.list_astrologers(is_top_astro=False) == []


@pytest.mark.asyncio
async def test_current_connection_must_exist(astrologer_service):
    created = await astrologer_service.create_astrologer(_astrologer("a@example.com"))

    with pytest.raises(EntityValidationError):
        await astrologer_service.update_astrologer(created.id, {"curr_connection_id": "missing"})


@pytest.mark.asyncio
async def test_delete_removes_from_get_and_list(astrologer_service):
    created = await astrologer_service.create_astrologer(_astrologer("a@example.com"))
    await astrologer_service.get_astrologer(created.id)
    await astrologer_service.list_astrologers()

    deleted = await astrologer_service.delete_astrologer(created.id)

    assert deleted.id == created.id
    with pytest.raises(EntityNotFoundError, match="Astrologer not found"):
        await astrologer_service.get_astrologer(created.id)
    assert await astrologer_service.list_astrologers() == []


@pytest.mark.asyncio
async def test_delete_missing_astrologer(astrologer_service, fake_redis):
    with pytest.raises(EntityNotFoundError):
        await astrologer_service.delete_astrologer("missing")

    assert fake_redis.calls["delete"] == 0


@pytest.mark.asyncio
async def test_generate_astrologers_counts_successes(astrologer_service, fake_redis):
    await astrologer_service.create_astrologer(_astrologer("taken@example.com"))
    await astrologer_service.list_astrologers()

    outcome = await astrologer_service.generate_astrologers(
        [
            _astrologer("one@example.com"),
            _astrologer("taken@example.com"),
            _astrologer("one@example.com"),
        ]
    )

    assert outcome.success_count == 1
    reasons = sorted(f.reason for f in outcome.failures)
    assert reasons == [
        "Astrologer with email taken@example.com already exists.",
        "Duplicate email one@example.com in batch.",
    ]
    assert len(await astrologer_service.list_astrologers()) == 2
