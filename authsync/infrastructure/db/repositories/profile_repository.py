from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy import text

from authsync.domain.entities.profile import ProfileRecord
from authsync.infrastructure.db.mappers.profile_mapper import map_row_to_profile_record
from authsync.infrastructure.db.models.profiles import EDITABLE_PROFILE_COLUMNS


class SqlProfileRepository:
    def __init__(self, engine):
        self._engine = engine

    def get_profile(self, *, user_id: str) -> ProfileRecord | None:
        sql = """
            SELECT
                u.id,
                u.email,
                u.name,
                c.id AS customer_row_id,
                c.stripe_customer_id,
                c.stripe_subscription_id,
                c.stripe_price_id,
                c.stripe_subscription_status
            FROM users u
            LEFT JOIN customers c ON c.id = u.id
            WHERE u.id = :user_id
            LIMIT 1
        """
        with self._engine.connect() as conn:
            row = conn.execute(text(sql), {"user_id": user_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_profile_record(row)

    def update_profile(self, *, user_id: str, fields: Mapping[str, Any]) -> None:
        unknown = sorted(set(fields) - EDITABLE_PROFILE_COLUMNS)
        if unknown:
            raise ValueError(f"Profile fields cannot be updated: {', '.join(unknown)}.")
        if not fields:
            return

        assignments = ", ".join(f"{column} = :{column}" for column in sorted(fields))
        sql = f"""
            UPDATE users
            SET {assignments}
            WHERE id = :user_id
        """
        with self._engine.begin() as conn:
            conn.execute(text(sql), {**fields, "user_id": user_id})
