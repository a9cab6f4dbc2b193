from __future__ import annotations

from collections.abc import Sequence

from app.database.models import Promocode
from app.database.repositories.base import BaseRepository


class PromocodeRepository(BaseRepository[Promocode]):
    """
    Промокоды. Натуральный ключ - code.

    Скидка вне 0..100 отклоняется CHECK-ограничением БД,
    репозиторий её не валидирует.
    """

    model_class = Promocode
    key_columns = ('code',)

    async def select_by_code(self, codes: Sequence[str]) -> list[Promocode]:
        return await self._select_in('select_by_code', 'code', codes)

    async def select_by_id(self, ids: Sequence[int]) -> list[Promocode]:
        return await self._select_in('select_by_id', 'id', ids)
