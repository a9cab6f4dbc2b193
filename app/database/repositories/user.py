"""
Репозиторий пользователей.

Не делает commit - это ответственность UnitOfWork.
"""
from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select

from app.database.errors import StatementBuildError
from app.database.models import Subscription, User
from app.database.repositories.base import STATEMENT_BUILD_ERRORS, BaseRepository


class UserRepository(BaseRepository[User]):
    """Репозиторий для работы с пользователями. Натуральный ключ - tg_id."""

    model_class = User
    key_columns = ('tg_id',)

    async def select_by_tg_id(self, tg_ids: Sequence[int]) -> list[User]:
        """Пользователи по Telegram ID."""
        return await self._select_in('select_by_tg_id', 'tg_id', tg_ids)

    async def select_by_username(self, usernames: Sequence[str]) -> list[User]:
        return await self._select_in('select_by_username', 'username', usernames)

    async def select_by_promocode_id(self, promocode_ids: Sequence[int]) -> list[User]:
        """Пользователи, пришедшие по промокодам."""
        return await self._select_in('select_by_promocode_id', 'promocode_id', promocode_ids)

    async def select_by_subscription_status(self, has_subscription: bool) -> list[User]:
        """Пользователи с активной подпиской (или без неё)."""
        return await self._select('select_by_subscription_status', User.contains_sub.is_(has_subscription))

    async def select_by_tariff_id(self, tariff_ids: Sequence[int]) -> list[User]:
        """Пользователи, чья подписка оформлена на один из тарифов."""
        if not tariff_ids:
            return []

        operation = self._operation('select_by_tariff_id')
        self._ensure_active(operation)

        try:
            statement = (
                select(User)
                .join(Subscription, Subscription.user_tg_id == User.tg_id)
                .where(Subscription.tariff_id.in_(list(tariff_ids)))
                .distinct()
            )
        except STATEMENT_BUILD_ERRORS as exc:
            raise StatementBuildError(operation, exc) from exc

        return await self._scalars(operation, statement)
