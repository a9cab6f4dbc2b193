"""
Проверка доступа пользователя к платному ресурсу.

Доступ есть, если у пользователя активная неистёкшая подписка
на тариф, который открывает этот канал/группу.
"""
from __future__ import annotations

from datetime import UTC, datetime

import structlog

from app.database.models import SubscriptionStatus
from app.database.uow import IsolationLevel, UnitOfWork, UnitOfWorkFactory


logger = structlog.get_logger(__name__)


class AccessService:
    """Сервис проверки заявок на вступление."""

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    async def is_access_allowed(
        self,
        tg_id: int,
        chat_id: int,
        *,
        now: datetime | None = None,
    ) -> bool:
        """
        Есть ли у пользователя tg_id право вступить в чат chat_id.

        Выполняется в SERIALIZABLE транзакции; ошибки БД пробрасываются
        (DatabaseError), решение об отказе принимает вызывающий.
        """
        now = now or datetime.now(UTC)

        async def check(uow: UnitOfWork) -> bool:
            users = await uow.users.select_by_tg_id([tg_id])
            if not users:
                return False

            subscriptions = await uow.subscriptions.select_by_user_tg_id([tg_id])
            tariff_ids = [
                subscription.tariff_id
                for subscription in subscriptions
                if subscription.status == SubscriptionStatus.ACTIVE.value and subscription.end_date > now
            ]
            if not tariff_ids:
                return False

            resources = await uow.tariff_resources.select_resources_by_tariff_id(tariff_ids)
            return any(resource.chat_id == chat_id for resource in resources)

        allowed = await self.uow_factory.new(IsolationLevel.SERIALIZABLE, check)

        logger.info(
            'Проверка доступа к ресурсу',
            tg_id=tg_id,
            chat_id=chat_id,
            allowed=allowed,
        )
        return allowed
