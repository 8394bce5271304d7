import pytest
from sqlalchemy import select

from facecast.models import Generation
from facecast.services import lifecycle


async def _new(db, user_id="anon_owner", **kwargs):
    return await lifecycle.create_generation(db, user_id=user_id, character_name="Django", **kwargs)


def _assert_result_error_exclusive(generation):
    assert (generation.video_url is not None) == (generation.status == "completed")
    assert (generation.error_message is not None) == (generation.status == "failed")


@pytest.mark.asyncio
async def test_create_generation_is_pending(db_session):
    generation = await _new(db_session, aspect_ratio="9:16")
    assert generation.id is not None
    assert generation.status == "pending"
    assert generation.aspect_ratio == "9:16"
    assert generation.source_video_aspect_ratio == "fill"
    _assert_result_error_exclusive(generation)


@pytest.mark.asyncio
async def test_begin_records_run_id_and_assets(db_session):
    generation = await _new(db_session)
    begun = await lifecycle.begin_generation(
        db_session,
        generation.id,
        f"direct-{generation.id}",
        source_video_url="https://cdn.test/videos/clip.webm",
        user_email="owner@example.com",
    )
    assert begun.status == "processing"
    assert begun.run_id == f"direct-{generation.id}"
    assert begun.source_video_url == "https://cdn.test/videos/clip.webm"
    assert begun.user_email == "owner@example.com"


@pytest.mark.asyncio
async def test_complete_then_nothing_regresses(db_session):
    generation = await _new(db_session)
    await lifecycle.begin_generation(db_session, generation.id, "run-1")
    completed = await lifecycle.complete_generation(db_session, generation.id, "https://cdn.test/out.mp4")
    assert completed.status == "completed"
    assert completed.completed_at is not None

    after_fail = await lifecycle.fail_generation(db_session, generation.id, "late failure")
    assert after_fail.status == "completed"
    assert after_fail.video_url == "https://cdn.test/out.mp4"
    assert after_fail.error_message is None

    after_begin = await lifecycle.begin_generation(db_session, generation.id, "run-2")
    assert after_begin.status == "completed"
    assert after_begin.run_id == "run-1"
    _assert_result_error_exclusive(after_begin)


@pytest.mark.asyncio
async def test_failed_generation_cannot_complete(db_session):
    generation = await _new(db_session)
    failed = await lifecycle.fail_generation(db_session, generation.id, "face not detected")
    assert failed.status == "failed"
    assert failed.error_message == "face not detected"

    refused = await lifecycle.complete_generation(db_session, generation.id, "https://cdn.test/out.mp4")
    assert refused.status == "failed"
    assert refused.video_url is None
    _assert_result_error_exclusive(refused)


@pytest.mark.asyncio
async def test_complete_twice_is_idempotent(db_session):
    generation = await _new(db_session)
    first = await lifecycle.complete_generation(db_session, generation.id, "https://cdn.test/out.mp4")
    second = await lifecycle.complete_generation(db_session, generation.id, "https://cdn.test/out.mp4")
    assert second.status == first.status == "completed"
    assert second.video_url == first.video_url
    assert second.completed_at == first.completed_at


@pytest.mark.asyncio
async def test_fail_without_message_uses_default(db_session):
    generation = await _new(db_session)
    failed = await lifecycle.fail_generation(db_session, generation.id)
    assert failed.error_message == lifecycle.DEFAULT_FAILURE_MESSAGE


@pytest.mark.asyncio
async def test_missing_generation_returns_none(db_session):
    assert await lifecycle.begin_generation(db_session, 999, "run") is None
    assert await lifecycle.complete_generation(db_session, 999, "https://cdn.test/x.mp4") is None
    assert await lifecycle.fail_generation(db_session, 999, "boom") is None


@pytest.mark.asyncio
async def test_list_is_scoped_newest_first_and_limited(db_session):
    ids = [(await _new(db_session)).id for _ in range(3)]
    await _new(db_session, user_id="anon_other")

    listed = await lifecycle.list_generations(db_session, "anon_owner", limit=2)
    assert [g.id for g in listed] == sorted(ids, reverse=True)[:2]
    assert all(g.user_id == "anon_owner" for g in listed)


@pytest.mark.asyncio
async def test_delete_requires_owner(db_session):
    generation = await _new(db_session)
    assert await lifecycle.delete_generation(db_session, generation.id, "anon_intruder") is False
    assert await lifecycle.get_owned_generation(db_session, generation.id, "anon_owner") is not None

    assert await lifecycle.delete_generation(db_session, generation.id, "anon_owner") is True
    assert await lifecycle.get_generation(db_session, generation.id) is None


@pytest.mark.asyncio
async def test_result_and_error_exclusive_across_mixed_sequences(db_session):
    a = await _new(db_session)
    b = await _new(db_session)
    c = await _new(db_session)

    await lifecycle.begin_generation(db_session, a.id, "run-a")
    await lifecycle.complete_generation(db_session, a.id, "https://cdn.test/a.mp4")
    await lifecycle.fail_generation(db_session, a.id, "ignored")

    await lifecycle.begin_generation(db_session, b.id, "run-b")
    await lifecycle.fail_generation(db_session, b.id, "provider down")
    await lifecycle.complete_generation(db_session, b.id, "https://cdn.test/b.mp4")

    await lifecycle.begin_generation(db_session, c.id, "run-c")

    result = await db_session.execute(select(Generation).execution_options(populate_existing=True))
    rows = {g.id: g for g in result.scalars().all()}
    assert rows[a.id].status == "completed"
    assert rows[b.id].status == "failed"
    assert rows[c.id].status == "processing"
    for generation in rows.values():
        _assert_result_error_exclusive(generation)
