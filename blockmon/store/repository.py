"""High-level database operations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select

from .db import Setting


class Repository:
    """CRUD utilities wrapping SQLModel sessions."""

    def __init__(self, session) -> None:
        self.session = session

    async def get_setting(self, key: str) -> Optional[str]:
        result = await self.session.execute(select(Setting).where(Setting.key == key))
        row = result.scalar_one_or_none()
        return row.value if row else None

    async def set_setting(self, key: str, value: str) -> None:
        """Insert or overwrite a key-value record."""
        result = await self.session.execute(select(Setting).where(Setting.key == key))
        existing = result.scalar_one_or_none()
        if existing:
            existing.value = value
            existing.updated_at = datetime.now(timezone.utc)
        else:
            self.session.add(Setting(key=key, value=value))
        await self.session.commit()

    async def delete_setting(self, key: str) -> bool:
        """Delete a record, returning whether one existed."""
        result = await self.session.execute(
            Setting.__table__.delete().where(Setting.key == key)
        )
        await self.session.commit()
        return bool(result.rowcount)
