"""
Базовый класс репозитория.

Репозитории:
- Инкапсулируют SQL логику
- НЕ делают commit (это задача UoW)
- Работают с одной сущностью (или с таблицей связей)

Все сущности устроены одинаково: суррогатный id плюс натуральный ключ
с UNIQUE-ограничением. Поэтому upsert/select/delete реализованы здесь один раз,
а наследник задаёт только model_class, key_columns и, если отличается,
delete_columns.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import Column, ColumnElement, Delete, Executable, Select, delete, select, tuple_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.errors import RowMappingError, StatementBuildError, StatementExecutionError
from app.database.models import Base


logger = logging.getLogger(__name__)

ModelType = TypeVar('ModelType', bound=Base)

# Ошибки, которые означают кривой запрос, а не проблему БД
STATEMENT_BUILD_ERRORS = (SQLAlchemyError, TypeError, ValueError, AttributeError)


class SessionRepository:
    """Общая часть всех репозиториев: сессия, проверка транзакции, выполнение запросов."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    def _operation(self, name: str) -> str:
        return f'{type(self).__name__}.{name}'

    def _ensure_active(self, operation: str) -> None:
        """Репозиторий живёт ровно столько, сколько транзакция его UnitOfWork."""
        if not self._session.in_transaction():
            raise RuntimeError(f'{operation}: transaction is already finished')

    async def _execute(self, operation: str, statement: Executable, **kwargs: Any) -> Any:
        try:
            return await self._session.execute(statement, **kwargs)
        except SQLAlchemyError as exc:
            raise StatementExecutionError(operation, exc) from exc

    async def _scalars(self, operation: str, statement: Executable, **kwargs: Any) -> list[Any]:
        try:
            result = await self._session.scalars(statement, **kwargs)
        except SQLAlchemyError as exc:
            raise StatementExecutionError(operation, exc) from exc

        try:
            return list(result.all())
        except SQLAlchemyError as exc:
            raise RowMappingError(operation, exc) from exc


class BaseRepository(SessionRepository, Generic[ModelType]):
    """
    Базовый репозиторий сущности с upsert по натуральному ключу.

    Наследники переопределяют model_class и key_columns
    и добавляют select_by_* под свои индексы.
    """

    model_class: type[ModelType] = None  # Переопределить в наследнике
    key_columns: tuple[str, ...] = ()
    delete_columns: tuple[str, ...] | None = None  # По умолчанию key_columns

    @classmethod
    def _insert_columns(cls) -> list[Column]:
        """Все колонки кроме суррогатного id - его генерирует БД."""
        return [column for column in cls.model_class.__table__.columns if not column.primary_key]

    def _row_values(self, entity: ModelType) -> dict[str, Any]:
        values = {}
        for column in self._insert_columns():
            value = getattr(entity, column.key)
            if value is None and column.default is not None and column.default.is_scalar:
                value = column.default.arg
            values[column.key] = value
        return values

    def _natural_key(self, entity: ModelType, columns: Sequence[str] | None = None) -> tuple:
        return tuple(getattr(entity, name) for name in (columns or self.key_columns))

    def _build_upsert(self, entities: Sequence[ModelType]):
        statement = pg_insert(self.model_class).values([self._row_values(entity) for entity in entities])
        update_set = {
            column.key: statement.excluded[column.key]
            for column in self._insert_columns()
            if column.key not in self.key_columns
        }
        return statement.on_conflict_do_update(
            index_elements=list(self.key_columns),
            set_=update_set,
        ).returning(self.model_class)

    async def upsert(self, entities: Sequence[ModelType]) -> list[ModelType]:
        """
        Вставить или обновить сущности одним INSERT ... ON CONFLICT DO UPDATE.

        При конфликте по натуральному ключу обновляются все остальные колонки.
        Возвращает строки из БД (с id) в порядке входных сущностей.
        Дубли ключа внутри одного вызова не схлопываются - это ошибка БД.
        """
        if not entities:
            return []

        operation = self._operation('upsert')
        self._ensure_active(operation)

        try:
            statement = self._build_upsert(entities)
        except STATEMENT_BUILD_ERRORS as exc:
            raise StatementBuildError(operation, exc) from exc

        rows = await self._scalars(
            operation,
            statement,
            execution_options={'populate_existing': True},
        )

        by_key = {self._natural_key(row): row for row in rows}
        try:
            upserted = [by_key[self._natural_key(entity)] for entity in entities]
        except KeyError as exc:
            raise RowMappingError(operation, LookupError(f'no returned row for key {exc.args[0]!r}')) from exc

        logger.debug('%s: upserted %s rows', operation, len(upserted))
        return upserted

    def _in_filter(self, column_name: str, values: Iterable[Any]) -> ColumnElement[bool]:
        return getattr(self.model_class, column_name).in_(list(values))

    async def _select(self, name: str, *criteria: ColumnElement[bool]) -> list[ModelType]:
        operation = self._operation(name)
        self._ensure_active(operation)

        try:
            statement: Select = select(self.model_class)
            if criteria:
                statement = statement.where(*criteria)
        except STATEMENT_BUILD_ERRORS as exc:
            raise StatementBuildError(operation, exc) from exc

        return await self._scalars(operation, statement)

    async def _select_in(self, name: str, column_name: str, values: Sequence[Any]) -> list[ModelType]:
        """SELECT ... WHERE column IN (values). Пустой список - без запроса."""
        if not values:
            return []

        operation = self._operation(name)
        try:
            criterion = self._in_filter(column_name, values)
        except STATEMENT_BUILD_ERRORS as exc:
            raise StatementBuildError(operation, exc) from exc

        return await self._select(name, criterion)

    async def select_all(self) -> list[ModelType]:
        """Вся таблица, без сортировки."""
        return await self._select('select_all')

    def _build_delete(self, entities: Sequence[ModelType]) -> Delete:
        columns = self.delete_columns or self.key_columns
        if len(columns) == 1:
            values = list(dict.fromkeys(getattr(entity, columns[0]) for entity in entities))
            criterion = self._in_filter(columns[0], values)
        else:
            keys = list(dict.fromkeys(self._natural_key(entity, columns) for entity in entities))
            criterion = tuple_(*(getattr(self.model_class, name) for name in columns)).in_(keys)

        return (
            delete(self.model_class)
            .where(criterion)
            .execution_options(synchronize_session=False)
        )

    async def delete(self, entities: Sequence[ModelType]) -> None:
        """
        Удалить строки по натуральному ключу сущностей.

        Отсутствующие строки - не ошибка, число удалённых не проверяется.
        """
        if not entities:
            return None

        operation = self._operation('delete')
        self._ensure_active(operation)

        try:
            statement = self._build_delete(entities)
        except STATEMENT_BUILD_ERRORS as exc:
            raise StatementBuildError(operation, exc) from exc

        await self._execute(operation, statement)
        logger.debug('%s: deleted by %s keys', operation, len(entities))
        return None
