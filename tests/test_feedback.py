from __future__ import annotations

import pytest
from sqlalchemy import select

from theater_app.domain.feedback.service import feedback_update_values, parse_feedback_id
from theater_app.models import Feedback

OBJECT_ID = "65f1c2a9e4b0a1b2c3d4e5f6"


def _feedback(**overrides) -> dict:
    record = {
        "_id": {"$oid": OBJECT_ID},
        "feedbackId": 1001,
        "name": "Meera",
        "email": "meera@example.com",
        "message": "Loved the decor",
        "rating": "5",
        "socialHandle": "@meera",
        "submittedAt": "2026-06-01T12:00:00Z",
        "isTestimonial": True,
    }
    record.update(overrides)
    return record


async def _rows(database) -> list[dict]:
    async with database.connection() as conn:
        result = await conn.execute(select(Feedback.__table__))
        return [dict(row) for row in result.mappings().all()]


def test_parse_feedback_id() -> None:
    assert parse_feedback_id(12) == 12
    assert parse_feedback_id("12") == 12
    assert parse_feedback_id(" 12 ") == 12
    assert parse_feedback_id("12.5") is None
    assert parse_feedback_id("abc") is None
    assert parse_feedback_id("") is None
    assert parse_feedback_id(True) is None
    assert parse_feedback_id(None) is None


def test_update_values_only_include_present_keys() -> None:
    values = feedback_update_values({"message": "Edited", "isTestimonial": "yes"})

    assert values["message"] == "Edited"
    assert values["is_testimonial"] is False
    assert "name" not in values
    assert "rating" not in values
    assert values["updated_at_source"] is not None
    assert "updated_at" in values


@pytest.mark.asyncio
async def test_upsert_feedback_is_idempotent(feedback_service, database) -> None:
    first = await feedback_service.upsert_feedback(_feedback())
    second = await feedback_service.upsert_feedback(_feedback(message="Loved it even more"))

    assert first.success and second.success
    assert second.mongo_id == OBJECT_ID
    rows = await _rows(database)
    assert len(rows) == 1
    assert rows[0]["message"] == "Loved it even more"
    assert rows[0]["rating"] == 5
    assert rows[0]["feedback_id"] == 1001
    assert rows[0]["is_testimonial"] is True
    assert rows[0]["social_handle"] == "@meera"
    assert rows[0]["created_at_source"] == rows[0]["submitted_at"]


@pytest.mark.asyncio
async def test_upsert_without_mongo_id_is_keyed_on_feedback_id(feedback_service, database) -> None:
    first = await feedback_service.upsert_feedback({"feedbackId": 7, "message": "Great screen"})
    second = await feedback_service.upsert_feedback({"feedbackId": "7", "message": "Great sound too"})

    assert first.success and second.success
    assert second.rows_affected == 1
    rows = await _rows(database)
    assert len(rows) == 1
    assert rows[0]["mongo_id"] is None
    assert rows[0]["feedback_id"] == 7
    assert rows[0]["message"] == "Great sound too"


@pytest.mark.asyncio
async def test_update_feedback_by_feedback_id(feedback_service, database) -> None:
    await feedback_service.upsert_feedback(_feedback())

    result = await feedback_service.update_feedback(
        feedback_id="1001", updates={"status": "approved", "rating": 4}
    )

    assert result.success
    assert result.rows_affected == 1
    row = (await _rows(database))[0]
    assert row["status"] == "approved"
    assert row["rating"] == 4
    assert row["message"] == "Loved the decor"


@pytest.mark.asyncio
async def test_update_feedback_requires_identifier(feedback_service) -> None:
    result = await feedback_service.update_feedback(updates={"status": "approved"})

    assert not result.success
    assert "Missing identifier" in result.error


@pytest.mark.asyncio
async def test_delete_feedback(feedback_service, database) -> None:
    await feedback_service.upsert_feedback(_feedback())
    await feedback_service.upsert_feedback(_feedback(_id="other-id", feedbackId="2002"))

    by_mongo_id = await feedback_service.delete_feedback(mongo_id={"$oid": OBJECT_ID})
    by_feedback_id = await feedback_service.delete_feedback(feedback_id=2002)

    assert by_mongo_id.rows_affected == 1
    assert by_feedback_id.rows_affected == 1
    assert await _rows(database) == []


@pytest.mark.asyncio
async def test_delete_feedback_requires_identifier(feedback_service) -> None:
    result = await feedback_service.delete_feedback(feedback_id="not-a-number")

    assert not result.success
    assert "Missing identifier" in result.error


@pytest.mark.asyncio
async def test_list_feedback(feedback_service) -> None:
    await feedback_service.upsert_feedback(_feedback())
    await feedback_service.upsert_feedback(
        _feedback(_id="second", feedbackId=1002, submittedAt="2026-06-02T12:00:00Z", isTestimonial=False)
    )

    everything = await feedback_service.list_feedback()
    testimonials = await feedback_service.list_feedback(testimonials_only=True)
    limited = await feedback_service.list_feedback(limit=1)

    assert [f["mongoId"] for f in everything.feedback] == ["second", OBJECT_ID]
    assert [f["mongoId"] for f in testimonials.feedback] == [OBJECT_ID]
    assert limited.total == 1
    item = testimonials.feedback[0]
    assert item["_id"] == OBJECT_ID
    assert item["isTestimonial"] is True
    assert item["submittedAt"] == "2026-06-01T12:00:00"
    assert item["socialHandle"] == "@meera"
