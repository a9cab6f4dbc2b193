from __future__ import annotations

from collections.abc import Sequence

from app.database.models import Resource, Tariff, tariffs_resources
from app.database.repositories.association import AssociationRepository


class TariffResourceRepository(AssociationRepository):
    """Какие ресурсы открывает тариф."""

    table = tariffs_resources
    left_column = 'tariff_id'
    right_column = 'resource_id'
    left_model = Tariff
    right_model = Resource

    async def assign(self, tariff_ids: Sequence[int], resource_ids: Sequence[int]) -> None:
        await self._assign(tariff_ids, resource_ids)

    async def unassign(self, tariff_ids: Sequence[int], resource_ids: Sequence[int]) -> None:
        await self._unassign(tariff_ids, resource_ids)

    async def select_resources_by_tariff_id(self, tariff_ids: Sequence[int]) -> list[Resource]:
        """Ресурсы, доступные по любому из тарифов."""
        return await self._select_right_by_left_id('select_resources_by_tariff_id', tariff_ids)

    async def select_tariffs_by_resource_id(self, resource_ids: Sequence[int]) -> list[Tariff]:
        """Тарифы, открывающие любой из ресурсов."""
        return await self._select_left_by_right_id('select_tariffs_by_resource_id', resource_ids)
