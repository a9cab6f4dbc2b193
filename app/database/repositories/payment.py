"""
Репозиторий платежей (чеки, ожидающие ручной проверки).

Не делает commit - это ответственность UnitOfWork.
"""
from __future__ import annotations

from collections.abc import Sequence

from app.database.models import Payment
from app.database.repositories.base import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    """
    Репозиторий для работы с платежами.

    Ключ - user_tg_id: новый чек пользователя перезаписывает предыдущий.
    Платёж на несуществующего пользователя отклоняется внешним ключом.
    """

    model_class = Payment
    key_columns = ('user_tg_id',)

    async def select_by_user_tg_id(self, user_tg_ids: Sequence[int]) -> list[Payment]:
        return await self._select_in('select_by_user_tg_id', 'user_tg_id', user_tg_ids)
