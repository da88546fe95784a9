#!/usr/bin/env python3
"""
Recompute every vehicle's availability from its reservations
Run with: python sync_vehicle_statuses.py  (e.g. daily just after midnight)
"""
import asyncio
from app.database import async_session_maker, close_db
from app.services.vehicle_status import VehicleStatusService

async def main():
    async with async_session_maker() as session:
        changed = await VehicleStatusService(session).sync_all()

    if changed:
        print(f"✓ Updated {len(changed)} vehicle(s):")
        for vehicle in changed:
            print(f"  {vehicle.license_plate:<12} -> {vehicle.availability_status.value}")
    else:
        print("✓ All vehicle statuses already correct")

    await close_db()

if __name__ == "__main__":
    asyncio.run(main())
