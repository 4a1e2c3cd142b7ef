from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from theater_app.database import ArchiveDatabase
from theater_app.domain.archive.service import ArchiveService
from theater_app.domain.feedback.service import FeedbackService

# First deployed version of cancelled_bookings, before the newer columns existed
LEGACY_CANCELLED_DDL = """
CREATE TABLE cancelled_bookings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    booking_id VARCHAR(255) NOT NULL UNIQUE,
    name VARCHAR(255) NOT NULL,
    email VARCHAR(255) NOT NULL,
    phone VARCHAR(20),
    theater_name VARCHAR(255),
    booking_date DATE,
    booking_time VARCHAR(50),
    occasion VARCHAR(255),
    number_of_people INTEGER,
    total_amount NUMERIC(10, 2),
    cancelled_at DATETIME,
    cancellation_reason TEXT,
    refund_amount NUMERIC(10, 2),
    refund_status VARCHAR(50),
    original_booking_data TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
)
"""


@pytest_asyncio.fixture
async def database(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'archive.sqlite'}")
    db = ArchiveDatabase(engine)
    yield db
    await engine.dispose()


@pytest_asyncio.fixture
async def legacy_cancelled_table(database):
    async with database.connection() as conn:
        await conn.execute(text(LEGACY_CANCELLED_DDL))
        await conn.commit()
    return "cancelled_bookings"


@pytest.fixture
def archive_service(database) -> ArchiveService:
    return ArchiveService(database)


@pytest.fixture
def feedback_service(database) -> FeedbackService:
    return FeedbackService(database)


@pytest.fixture
def cancelled_booking() -> dict:
    return {
        "bookingId": "B100",
        "name": "Asha",
        "email": "asha@example.com",
        "phone": "9876543210",
        "theaterName": "Royal Screen",
        "date": "2026-03-14",
        "time": "6:00 PM - 9:00 PM",
        "occasion": "Birthday",
        "numberOfPeople": 4,
        "totalAmount": 5000,
        "advancePayment": 1000,
        "cancelledAt": "2026-03-10T15:30:00Z",
        "cancellationReason": "Customer requested",
        "refundAmount": 1000,
        "refundStatus": "pending",
    }
