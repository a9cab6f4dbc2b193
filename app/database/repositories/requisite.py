from __future__ import annotations

from collections.abc import Sequence

from app.database.models import Requisite
from app.database.repositories.base import BaseRepository


class RequisiteRepository(BaseRepository[Requisite]):
    """Реквизиты для оплаты. Натуральный ключ - link."""

    model_class = Requisite
    key_columns = ('link',)

    async def select_by_name(self, names: Sequence[str]) -> list[Requisite]:
        return await self._select_in('select_by_name', 'name', names)

    async def select_by_link(self, links: Sequence[str]) -> list[Requisite]:
        return await self._select_in('select_by_link', 'link', links)
