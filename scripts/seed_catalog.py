"""Seed script: load a small demo catalog (warehouses, space types, spaces, services).

The booking engine only reads the catalog, so local setups need this to have
anything to allocate against. Re-running is safe: rows are upserted by id.

Usage:
    python scripts/seed_catalog.py
"""

import asyncio
import logging
from decimal import Decimal

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger(__name__)

HARBOUR_ID = "bbbbbbbb-0000-0000-0000-000000000001"
INLAND_ID = "bbbbbbbb-0000-0000-0000-000000000002"
DRY_ID = "cccccccc-0000-0000-0000-000000000001"
COLD_ID = "cccccccc-0000-0000-0000-000000000002"


async def seed():
    from warehub.domain.models import SpaceType, Warehouse, WarehouseService, WarehouseSpace
    from warehub.infra.database import async_session, init_db

    await init_db()

    rows = [
        Warehouse(id=HARBOUR_ID, name="Harbour DC", city="Rotterdam", address="Waalhaven 12"),
        Warehouse(id=INLAND_ID, name="Inland Hub", city="Venlo", address="Trade Port Noord 4"),
        SpaceType(id=DRY_ID, name="Dry Storage", description="Ambient racked or floor storage"),
        SpaceType(id=COLD_ID, name="Cold Storage", description="Chilled, 2-8 C"),
        WarehouseSpace(
            id="dddddddd-0000-0000-0000-000000000001", warehouse_id=HARBOUR_ID,
            space_type_id=DRY_ID, size_m2=Decimal("2500"), price_per_m2_cents=300,
        ),
        WarehouseSpace(
            id="dddddddd-0000-0000-0000-000000000002", warehouse_id=HARBOUR_ID,
            space_type_id=COLD_ID, size_m2=Decimal("400"), price_per_m2_cents=800,
        ),
        WarehouseSpace(
            id="dddddddd-0000-0000-0000-000000000003", warehouse_id=INLAND_ID,
            space_type_id=DRY_ID, size_m2=Decimal("6000"), price_per_m2_cents=250,
        ),
        WarehouseService(
            id="eeeeeeee-0000-0000-0000-000000000001", warehouse_id=HARBOUR_ID,
            name="Handling", description="Inbound and outbound pallet handling",
            hourly_rate_cents=4500,
        ),
        WarehouseService(
            id="eeeeeeee-0000-0000-0000-000000000002", warehouse_id=HARBOUR_ID,
            name="Labelling", unit_rate_cents=15, unit_type="label",
        ),
        WarehouseService(
            id="eeeeeeee-0000-0000-0000-000000000003", warehouse_id=INLAND_ID,
            name="Customs clearance", description="Priced per shipment on request",
        ),
    ]

    async with async_session() as session:
        for row in rows:
            await session.merge(row)
        await session.commit()

    logger.info("Seeded %d catalog rows.", len(rows))


if __name__ == "__main__":
    asyncio.run(seed())
