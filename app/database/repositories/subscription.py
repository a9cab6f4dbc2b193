"""
Репозиторий подписок.

Не делает commit - это ответственность UnitOfWork.
"""
from __future__ import annotations

from collections.abc import Sequence

from app.database.models import Subscription
from app.database.repositories.base import BaseRepository


class SubscriptionRepository(BaseRepository[Subscription]):
    """
    Репозиторий для работы с подписками.

    У пользователя одна подписка: upsert и delete по user_tg_id.
    """

    model_class = Subscription
    key_columns = ('user_tg_id',)

    async def select_by_user_tg_id(self, user_tg_ids: Sequence[int]) -> list[Subscription]:
        """Подписки пользователей."""
        return await self._select_in('select_by_user_tg_id', 'user_tg_id', user_tg_ids)

    async def select_by_tariff_id(self, tariff_ids: Sequence[int]) -> list[Subscription]:
        """Подписки, оформленные на тарифы."""
        return await self._select_in('select_by_tariff_id', 'tariff_id', tariff_ids)
