"""
Базовый репозиторий таблицы связей many-to-many.

Связь живёт отдельно от обеих сущностей: assign/unassign не трогают
ни тарифы, ни ресурсы, ни промокоды.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Table, and_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from app.database.errors import StatementBuildError
from app.database.models import Base
from app.database.repositories.base import STATEMENT_BUILD_ERRORS, SessionRepository


logger = logging.getLogger(__name__)


class AssociationRepository(SessionRepository):
    """
    left_column/right_column - колонки таблицы связей,
    left_model/right_model - сущности, на id которых они ссылаются.
    """

    table: Table = None
    left_column: str = None
    right_column: str = None
    left_model: type[Base] = None
    right_model: type[Base] = None

    async def _assign(self, left_ids: Sequence[int], right_ids: Sequence[int]) -> None:
        """
        Связать каждый left с каждым right.

        Уже существующие пары пропускаются (ON CONFLICT DO NOTHING).
        """
        if not left_ids or not right_ids:
            return None

        operation = self._operation('assign')
        self._ensure_active(operation)

        try:
            pairs = [
                {self.left_column: left_id, self.right_column: right_id}
                for left_id in dict.fromkeys(left_ids)
                for right_id in dict.fromkeys(right_ids)
            ]
            statement = (
                pg_insert(self.table)
                .values(pairs)
                .on_conflict_do_nothing(index_elements=[self.left_column, self.right_column])
            )
        except STATEMENT_BUILD_ERRORS as exc:
            raise StatementBuildError(operation, exc) from exc

        await self._execute(operation, statement)
        logger.debug('%s: %s pairs asserted', operation, len(pairs))
        return None

    async def _unassign(self, left_ids: Sequence[int], right_ids: Sequence[int]) -> None:
        """
        Удалить связи left IN (...) AND right IN (...).

        Удаляется всё пересечение, а не только когда-то назначенные пары;
        отсутствующие пары - не ошибка.
        """
        if not left_ids or not right_ids:
            return None

        operation = self._operation('unassign')
        self._ensure_active(operation)

        try:
            statement = self.table.delete().where(
                and_(
                    self.table.c[self.left_column].in_(list(left_ids)),
                    self.table.c[self.right_column].in_(list(right_ids)),
                )
            )
        except STATEMENT_BUILD_ERRORS as exc:
            raise StatementBuildError(operation, exc) from exc

        await self._execute(operation, statement)
        return None

    async def _select_linked(
        self,
        name: str,
        target_model: type[Base],
        target_column: str,
        filter_column: str,
        ids: Sequence[int],
    ) -> list[Any]:
        """Сущности target_model, связанные с любым из ids по filter_column."""
        if not ids:
            return []

        operation = self._operation(name)
        self._ensure_active(operation)

        try:
            statement = (
                select(target_model)
                .join(self.table, target_model.id == self.table.c[target_column])
                .where(self.table.c[filter_column].in_(list(ids)))
                .distinct()
            )
        except STATEMENT_BUILD_ERRORS as exc:
            raise StatementBuildError(operation, exc) from exc

        return await self._scalars(operation, statement)

    async def _select_right_by_left_id(self, name: str, left_ids: Sequence[int]) -> list[Any]:
        return await self._select_linked(name, self.right_model, self.right_column, self.left_column, left_ids)

    async def _select_left_by_right_id(self, name: str, right_ids: Sequence[int]) -> list[Any]:
        return await self._select_linked(name, self.left_model, self.left_column, self.right_column, right_ids)
