from __future__ import annotations

from collections.abc import Sequence

from app.database.models import Resource
from app.database.repositories.base import BaseRepository


class ResourceRepository(BaseRepository[Resource]):
    """
    Каналы и группы, доступ в которые продаётся.

    Upsert по chat_id, а delete - по id: удаляют ресурс,
    выбранный из списка в админке, где id уже известен.
    """

    model_class = Resource
    key_columns = ('chat_id',)
    delete_columns = ('id',)

    async def select_by_chat_id(self, chat_ids: Sequence[int]) -> list[Resource]:
        return await self._select_in('select_by_chat_id', 'chat_id', chat_ids)

    async def select_by_id(self, ids: Sequence[int]) -> list[Resource]:
        return await self._select_in('select_by_id', 'id', ids)
