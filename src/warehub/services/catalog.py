"""Read-only lookup over the warehouse catalog tables.

Turns ORM rows into the frozen catalog values the allocation calculator
consumes; the booking engine never writes to these tables.
"""

from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from warehub.domain.models import (
    Inquiry,
    SpaceType,
    Warehouse,
    WarehouseService,
    WarehouseSpace,
)
from warehub.services.allocation_calculator import (
    CatalogService,
    CatalogSpace,
    PricingContext,
    SpaceRequest,
)


def _catalog_space(row: WarehouseSpace) -> CatalogSpace:
    return CatalogSpace(
        id=row.id,
        warehouse_id=row.warehouse_id,
        space_type_id=row.space_type_id,
        price_per_m2_cents=row.price_per_m2_cents,
    )


class CatalogLookup:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_spaces(self, space_ids: Iterable[str]) -> dict[str, CatalogSpace]:
        ids = {i for i in space_ids if i}
        if not ids:
            return {}
        result = await self.db.execute(select(WarehouseSpace).where(WarehouseSpace.id.in_(ids)))
        return {row.id: _catalog_space(row) for row in result.scalars().all()}

    async def load_services(self, service_ids: Iterable[str]) -> dict[str, CatalogService]:
        ids = {i for i in service_ids if i}
        if not ids:
            return {}
        result = await self.db.execute(
            select(WarehouseService).where(WarehouseService.id.in_(ids))
        )
        return {
            row.id: CatalogService(id=row.id, warehouse_id=row.warehouse_id)
            for row in result.scalars().all()
        }

    async def candidate_spaces(
        self, space_type_ids: Iterable[str], warehouse_ids: Iterable[str] = ()
    ) -> list[CatalogSpace]:
        """Spaces of the given types, narrowed to the given warehouses when any."""
        type_ids = set(space_type_ids)
        if not type_ids:
            return []
        query = select(WarehouseSpace).where(WarehouseSpace.space_type_id.in_(type_ids))
        warehouse_ids = set(warehouse_ids)
        if warehouse_ids:
            query = query.where(WarehouseSpace.warehouse_id.in_(warehouse_ids))
        result = await self.db.execute(query)
        return [_catalog_space(row) for row in result.scalars().all()]

    async def missing_space_types(self, space_type_ids: Iterable[str]) -> set[str]:
        ids = set(space_type_ids)
        if not ids:
            return set()
        result = await self.db.execute(select(SpaceType.id).where(SpaceType.id.in_(ids)))
        return ids - set(result.scalars().all())

    async def missing_warehouses(self, warehouse_ids: Iterable[str]) -> set[str]:
        ids = set(warehouse_ids)
        if not ids:
            return set()
        result = await self.db.execute(select(Warehouse.id).where(Warehouse.id.in_(ids)))
        return ids - set(result.scalars().all())

    async def missing_services(self, service_ids: Iterable[str]) -> set[str]:
        ids = set(service_ids)
        found = await self.load_services(ids)
        return ids - set(found)

    async def pricing_context(
        self,
        inquiry: Inquiry,
        space_ids: Iterable[str],
        service_ids: Iterable[str],
    ) -> PricingContext:
        """Build the calculator context for an inquiry.

        The inquiry's space_requests and selected_warehouses must already be
        loaded.
        """
        return PricingContext(
            start=inquiry.start_date,
            end=inquiry.end_date,
            space_requests=tuple(
                SpaceRequest(space_type_id=r.space_type_id, size_m2=Decimal(r.size_m2))
                for r in inquiry.space_requests
            ),
            spaces=await self.load_spaces(space_ids),
            services=await self.load_services(service_ids),
            warehouse_ids=frozenset(w.warehouse_id for w in inquiry.selected_warehouses),
        )
