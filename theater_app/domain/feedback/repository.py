"""Feedback repository - Statements against the feedback mirror table"""

from typing import Any, Optional

from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ...models import Feedback
from ..archive.repository import build_upsert


class FeedbackRepository:
    """Repository for feedback table statements"""

    @staticmethod
    async def upsert_feedback(conn: AsyncConnection, values: dict[str, Any]) -> int:
        """
        Insert or refresh one feedback row.

        Keyed by mongo_id when present. Without one, a NULL mongo_id never
        conflicts, so the row matching feedback_id is updated instead and a
        new row is inserted only when none matched.
        """
        table = Feedback.__table__
        if values.get("mongo_id") is None and values.get("feedback_id") is not None:
            changes = {name: value for name, value in values.items() if name != "mongo_id"}
            changes["updated_at"] = func.now()
            result = await conn.execute(
                update(table).where(table.c.feedback_id == values["feedback_id"]).values(**changes)
            )
            if result.rowcount:
                return result.rowcount
            result = await conn.execute(insert(table).values(**values))
            return result.rowcount

        stmt = build_upsert(conn.dialect.name, table, values, key="mongo_id")
        result = await conn.execute(stmt)
        return result.rowcount

    @staticmethod
    async def delete_by_mongo_id(conn: AsyncConnection, mongo_id: str) -> int:
        table = Feedback.__table__
        result = await conn.execute(delete(table).where(table.c.mongo_id == mongo_id))
        return result.rowcount

    @staticmethod
    async def delete_by_feedback_id(conn: AsyncConnection, feedback_id: int) -> int:
        table = Feedback.__table__
        result = await conn.execute(delete(table).where(table.c.feedback_id == feedback_id))
        return result.rowcount

    @staticmethod
    async def update_feedback(
        conn: AsyncConnection,
        mongo_id: Optional[str],
        feedback_id: Optional[int],
        values: dict[str, Any],
    ) -> int:
        """Apply ``values`` to rows matching either identifier"""
        table = Feedback.__table__
        conditions = []
        if mongo_id:
            conditions.append(table.c.mongo_id == mongo_id)
        if feedback_id is not None:
            conditions.append(table.c.feedback_id == feedback_id)
        result = await conn.execute(update(table).where(or_(*conditions)).values(**values))
        return result.rowcount

    @staticmethod
    async def list_feedback(conn: AsyncConnection, limit: int, testimonials_only: bool) -> list:
        """Most recently submitted feedback first"""
        table = Feedback.__table__
        stmt = select(table)
        if testimonials_only:
            stmt = stmt.where(table.c.is_testimonial.is_(True))
        stmt = stmt.order_by(table.c.submitted_at.desc(), table.c.id.desc()).limit(limit)
        result = await conn.execute(stmt)
        return [dict(row) for row in result.mappings().all()]
