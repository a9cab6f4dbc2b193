from __future__ import annotations

from collections.abc import Sequence

from app.database.models import Promocode, Tariff, promocodes_tariffs
from app.database.repositories.association import AssociationRepository


class PromocodeTariffRepository(AssociationRepository):
    """На какие тарифы действует промокод."""

    table = promocodes_tariffs
    left_column = 'promocode_id'
    right_column = 'tariff_id'
    left_model = Promocode
    right_model = Tariff

    async def assign(self, promocode_ids: Sequence[int], tariff_ids: Sequence[int]) -> None:
        await self._assign(promocode_ids, tariff_ids)

    async def unassign(self, promocode_ids: Sequence[int], tariff_ids: Sequence[int]) -> None:
        await self._unassign(promocode_ids, tariff_ids)

    async def select_tariffs_by_promocode_id(self, promocode_ids: Sequence[int]) -> list[Tariff]:
        return await self._select_right_by_left_id('select_tariffs_by_promocode_id', promocode_ids)

    async def select_promocodes_by_tariff_id(self, tariff_ids: Sequence[int]) -> list[Promocode]:
        return await self._select_left_by_right_id('select_promocodes_by_tariff_id', tariff_ids)
