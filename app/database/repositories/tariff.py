from __future__ import annotations

from collections.abc import Sequence

from app.database.models import Tariff
from app.database.repositories.base import BaseRepository


class TariffRepository(BaseRepository[Tariff]):
    """Тарифы. Натуральный ключ - name."""

    model_class = Tariff
    key_columns = ('name',)

    async def select_by_name(self, names: Sequence[str]) -> list[Tariff]:
        return await self._select_in('select_by_name', 'name', names)

    async def select_by_id(self, ids: Sequence[int]) -> list[Tariff]:
        return await self._select_in('select_by_id', 'id', ids)
