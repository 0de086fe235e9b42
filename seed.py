"""
Seed script -- populates the database with sample shipments for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 3 shipments between Mumbai and Pune, one with two checkpoints
  - location history so that one shipment is in transit and one delivered
"""

import asyncio

from sqlalchemy import text

from src.config import settings
from src.domain.entities import Checkpoint, Customer, Item, Location, Shipment
from src.domain.enums import ShipmentStatus
from src.domain.tracking import generate_tracking_number
from src.infrastructure.database import StoreConnection
from src.infrastructure.repositories import ShipmentRepository

# (longitude, latitude)
MUMBAI = Location((72.8777, 19.0760), "Mumbai Central Warehouse")
LONAVALA = Location((73.4074, 18.7546), "Lonavala Hub")
KHOPOLI = Location((73.3405, 18.7894), "Khopoli Transit Point")
PUNE = Location((73.8567, 18.5204), "Pune Distribution Centre")

CUSTOMERS = [
    Customer("Aarav Sharma", "aarav@example.com", "+91 98200 00001"),
    Customer("Priya Patel", "priya@example.com"),
    Customer("Rohan Mehta", "rohan@example.com", "+91 98200 00003"),
]


def build_shipments() -> list[Shipment]:
    pending = Shipment.create(
        tracking_number=generate_tracking_number(),
        origin=MUMBAI,
        destination=PUNE,
        customer=CUSTOMERS[0],
        items=[Item("Laptop", 1, 2.5)],
    )

    in_transit = Shipment.create(
        tracking_number=generate_tracking_number(),
        origin=MUMBAI,
        destination=PUNE,
        customer=CUSTOMERS[1],
        checkpoints=[
            Checkpoint(location=KHOPOLI, name="Khopoli"),
            Checkpoint(location=LONAVALA, name="Lonavala"),
        ],
        items=[Item("Books", 12, 8.0)],
    )
    in_transit.update_location(
        KHOPOLI.coordinates, KHOPOLI.address, status=ShipmentStatus.IN_TRANSIT
    )

    delivered = Shipment.create(
        tracking_number=generate_tracking_number(),
        origin=MUMBAI,
        destination=PUNE,
        customer=CUSTOMERS[2],
    )
    delivered.update_location(
        PUNE.coordinates, PUNE.address, status=ShipmentStatus.OUT_FOR_DELIVERY
    )
    delivered.update_status(ShipmentStatus.DELIVERED)

    return [pending, in_transit, delivered]


async def seed(store: StoreConnection) -> None:
    async with store.session() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM shipments"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        repo = ShipmentRepository(session)
        for shipment in build_shipments():
            await repo.add(shipment)
            print(f"  Created {shipment.tracking_number} ({shipment.status.value})")

    print("\nSeed complete!")


async def main():
    print("Seeding database...")
    store = StoreConnection.from_settings(settings)
    try:
        await seed(store)
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
