"""Script to initialize the database and seed demo reference data."""

import argparse
import asyncio
from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import insert

from clinic_scheduling.database import engine
from clinic_scheduling.models import doctors, metadata, patients


async def init_db(seed: bool) -> None:
    """Create all tables, optionally inserting one demo doctor and patient."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        print("✓ Database initialized successfully!")

        if seed:
            now = datetime.now(UTC)
            doctor_id, patient_id = uuid4(), uuid4()
            await conn.execute(
                insert(doctors).values(
                    id=doctor_id,
                    full_name="Dr. Demo Doctor",
                    specialty="General Practice",
                    created_at=now,
                )
            )
            await conn.execute(
                insert(patients).values(
                    id=patient_id,
                    full_name="Demo Patient",
                    email="patient@example.com",
                    created_at=now,
                )
            )
            print(f"✓ Seeded doctor {doctor_id} and patient {patient_id}")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", action="store_true", help="insert a demo doctor and patient")
    args = parser.parse_args()
    asyncio.run(init_db(seed=args.seed))
