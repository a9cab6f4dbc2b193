"""
Unit of Work pattern для атомарных транзакций.

Основной способ - через фабрику, она сама делает commit или rollback:

    async def register(uow: UnitOfWork) -> User:
        [user] = await uow.users.upsert([User(tg_id=tg_id, first_time=now)])
        await uow.payments.upsert([Payment(user_tg_id=tg_id, ...)])
        return user

    user = await uow_factory.new(IsolationLevel.SERIALIZABLE, register)

Если register бросает исключение - rollback, и ни одна запись не видна.

Для ручного управления остаётся контекстный менеджер:

    async with UnitOfWork() as uow:
        await uow.tariffs.upsert([...])
        await uow.commit()  # Один commit на всю операцию

    # Если что-то падает - автоматический rollback
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING, Self, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.database.database import AsyncSessionLocal
from app.database.errors import (
    CommitError,
    RollbackError,
    TransactionBeginError,
    WorkFunctionError,
    is_serialization_failure,
)

if TYPE_CHECKING:
    from app.database.repositories.base import SessionRepository
    from app.database.repositories.payment import PaymentRepository
    from app.database.repositories.promocode import PromocodeRepository
    from app.database.repositories.promocode_tariff import PromocodeTariffRepository
    from app.database.repositories.requisite import RequisiteRepository
    from app.database.repositories.resource import ResourceRepository
    from app.database.repositories.subscription import SubscriptionRepository
    from app.database.repositories.tariff import TariffRepository
    from app.database.repositories.tariff_resource import TariffResourceRepository
    from app.database.repositories.user import UserRepository


logger = logging.getLogger(__name__)

T = TypeVar('T')


class IsolationLevel(str, Enum):
    READ_COMMITTED = 'READ COMMITTED'
    REPEATABLE_READ = 'REPEATABLE READ'
    SERIALIZABLE = 'SERIALIZABLE'


class UnitOfWork:
    """
    Unit of Work - управляет транзакцией и репозиториями.

    Гарантирует атомарность: либо все операции успешны, либо ни одна.
    После commit/rollback объект отработал: репозитории из него
    больше не выполняют запросы.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        *,
        isolation_level: IsolationLevel | None = None,
    ):
        self._session_factory = session_factory
        self._isolation_level = isolation_level
        self._session: AsyncSession | None = None
        self._finished = False
        self._repositories: dict[str, SessionRepository] = {}

    @property
    def session(self) -> AsyncSession:
        """Текущая сессия. Доступна только внутри транзакции."""
        if self._session is None:
            raise RuntimeError('UnitOfWork not started. Use `async with UnitOfWork() as uow:`')
        if self._finished:
            raise RuntimeError('UnitOfWork is already committed or rolled back')
        return self._session

    @property
    def is_finished(self) -> bool:
        return self._finished

    async def begin(self) -> None:
        """
        Открыть сессию и начать транзакцию.

        Соединение берётся из пула сразу, чтобы уровень изоляции
        применился до первого запроса.
        """
        if self._session is not None:
            raise RuntimeError('UnitOfWork already started')

        session = self._session_factory()
        try:
            if self._isolation_level is not None:
                await session.connection(execution_options={'isolation_level': self._isolation_level.value})
            else:
                await session.connection()
        except (SQLAlchemyError, OSError) as exc:
            # Отказ в соединении asyncpg не переводит в DBAPIError
            await session.close()
            raise TransactionBeginError(exc) from exc

        self._session = session
        self._finished = False

    async def __aenter__(self) -> Self:
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            if exc_type is not None and not self._finished:
                await self.rollback()
                logger.warning('UoW: rollback due to %s: %s', exc_type.__name__, exc_val)
        finally:
            await self.close()

    async def commit(self) -> None:
        """Зафиксировать все изменения."""
        session = self.session
        self._finished = True
        try:
            await session.commit()
        except SQLAlchemyError as exc:
            raise CommitError(exc) from exc

    async def rollback(self) -> None:
        """Откатить все изменения."""
        session = self.session
        self._finished = True
        try:
            await session.rollback()
        except SQLAlchemyError as exc:
            raise RollbackError(exc) from exc

    async def flush(self) -> None:
        """
        Отправить изменения в БД без коммита.

        Полезно когда нужно получить ID созданного объекта
        до финального коммита.
        """
        await self.session.flush()

    async def close(self) -> None:
        """Вернуть соединение в пул. Незакоммиченная транзакция откатывается."""
        if self._session is None:
            return
        try:
            await self._session.close()
        finally:
            self._session = None
            self._finished = True
            self._repositories.clear()

    def _get_repository(self, repo_class: type[SessionRepository], name: str) -> SessionRepository:
        """Ленивая инициализация репозитория."""
        if name not in self._repositories:
            self._repositories[name] = repo_class(self.session)
        return self._repositories[name]

    # =========================================================================
    # Репозитории
    # =========================================================================

    @property
    def users(self) -> UserRepository:
        """Репозиторий пользователей."""
        from app.database.repositories.user import UserRepository
        return self._get_repository(UserRepository, 'users')

    @property
    def payments(self) -> PaymentRepository:
        """Репозиторий платежей."""
        from app.database.repositories.payment import PaymentRepository
        return self._get_repository(PaymentRepository, 'payments')

    @property
    def subscriptions(self) -> SubscriptionRepository:
        """Репозиторий подписок."""
        from app.database.repositories.subscription import SubscriptionRepository
        return self._get_repository(SubscriptionRepository, 'subscriptions')

    @property
    def tariffs(self) -> TariffRepository:
        from app.database.repositories.tariff import TariffRepository
        return self._get_repository(TariffRepository, 'tariffs')

    @property
    def resources(self) -> ResourceRepository:
        from app.database.repositories.resource import ResourceRepository
        return self._get_repository(ResourceRepository, 'resources')

    @property
    def promocodes(self) -> PromocodeRepository:
        from app.database.repositories.promocode import PromocodeRepository
        return self._get_repository(PromocodeRepository, 'promocodes')

    @property
    def requisites(self) -> RequisiteRepository:
        """Репозиторий реквизитов для оплаты."""
        from app.database.repositories.requisite import RequisiteRepository
        return self._get_repository(RequisiteRepository, 'requisites')

    @property
    def tariff_resources(self) -> TariffResourceRepository:
        """Связи тариф - ресурс."""
        from app.database.repositories.tariff_resource import TariffResourceRepository
        return self._get_repository(TariffResourceRepository, 'tariff_resources')

    @property
    def promocode_tariffs(self) -> PromocodeTariffRepository:
        """Связи промокод - тариф."""
        from app.database.repositories.promocode_tariff import PromocodeTariffRepository
        return self._get_repository(PromocodeTariffRepository, 'promocode_tariffs')


# =============================================================================
# Фабрика: begin -> work_fn -> commit или rollback
# =============================================================================


class UnitOfWorkFactory:
    """
    Запускает функцию внутри одной транзакции.

    Ровно один из commit/rollback на каждую попытку. При serialization
    failure или deadlock в цепочке __cause__ ошибки вся транзакция повторяется
    (не больше max_retries раз), поэтому work_fn должна быть безопасна
    для повторного запуска.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        *,
        max_retries: int | None = None,
        retry_base_delay: float | None = None,
    ):
        self._session_factory = session_factory
        self._max_retries = settings.UOW_MAX_RETRIES if max_retries is None else max_retries
        self._retry_base_delay = settings.UOW_RETRY_BASE_DELAY if retry_base_delay is None else retry_base_delay

    async def new(
        self,
        isolation_level: IsolationLevel,
        work_fn: Callable[[UnitOfWork], Awaitable[T]],
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
    ) -> T:
        """
        Выполнить work_fn(uow) в транзакции с уровнем изоляции isolation_level.

        Возвращает результат work_fn.

        Raises:
            TransactionBeginError: Не удалось начать транзакцию.
            WorkFunctionError: work_fn упала, транзакция откачена.
            RollbackError: work_fn упала и откат тоже не удался;
                исходная ошибка в original_error.
            CommitError: Не удалось зафиксировать транзакцию.
        """
        retries = self._max_retries if max_retries is None else max_retries
        attempt = 0

        while True:
            try:
                return await self._run_once(isolation_level, work_fn, timeout)
            except (WorkFunctionError, CommitError) as exc:
                if attempt >= retries or not is_serialization_failure(exc):
                    raise
                attempt += 1
                delay = self._retry_base_delay * (2 ** (attempt - 1))
                logger.warning(
                    'UoW: serialization failure, повтор %s/%s через %.3f сек: %s',
                    attempt,
                    retries,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)

    async def _run_once(
        self,
        isolation_level: IsolationLevel,
        work_fn: Callable[[UnitOfWork], Awaitable[T]],
        timeout: float | None,
    ) -> T:
        uow = UnitOfWork(self._session_factory, isolation_level=isolation_level)
        await uow.begin()

        try:
            try:
                async with asyncio.timeout(timeout):
                    result = await work_fn(uow)
            except asyncio.CancelledError:
                await self._rollback_on_cancel(uow)
                raise
            except Exception as exc:
                try:
                    await uow.rollback()
                except RollbackError as rollback_exc:
                    raise RollbackError(rollback_exc.cause, original_error=exc) from rollback_exc.cause
                raise WorkFunctionError(exc) from exc

            await uow.commit()
            return result
        finally:
            await uow.close()

    @staticmethod
    async def _rollback_on_cancel(uow: UnitOfWork) -> None:
        if uow.is_finished:
            return
        try:
            await uow.rollback()
        except RollbackError as exc:
            # Отмену не подменяем, соединение закроется в close()
            logger.error('UoW: rollback after cancellation failed: %s', exc)
