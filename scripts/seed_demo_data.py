#!/usr/bin/env python3
"""
Seed Demo Data Script
Creates a location, a place, a trip and one account per role.
Every demo account uses the password `password123`.
"""

import asyncio
from datetime import datetime, timezone

from sqlalchemy import select

from wayfarer.config import settings
from wayfarer.database import Database
from wayfarer.models import Location, Place, Trip, User
from wayfarer.roles import Role
from wayfarer.security import hash_password

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    ("superadmin@example.com", "Super Admin", Role.super_admin),
    ("admin@example.com", "Admin User", Role.admin),
    ("user@example.com", "Regular User", Role.user),
]


async def seed_demo_data():
    print("🚀 Seeding demo data")
    print("=" * 40)

    database = Database(settings.database_url)
    await database.connect()
    await database.create_tables()

    try:
        async with database.session() as db:
            existing = await db.scalar(select(Location).where(Location.name == "Siem Reap"))
            if existing is not None:
                print(f"✅ Demo data already present (location id {existing.id})")
                return

            location = Location(
                name="Siem Reap",
                country="Cambodia",
                description="Home to Angkor Wat",
                lat=13.4125,
                long=103.867,
            )
            db.add(location)
            await db.flush()

            db.add(Place(
                name="Angkor Wat",
                description="Iconic temple complex",
                location_id=location.id,
                category="temple",
                image_url="https://res.cloudinary.com/demo/image/upload/sample.jpg",
            ))
            db.add(Trip(
                title="Siem Reap Hotel Stay",
                description="3-night stay in Siem Reap",
                location_id=location.id,
                type="hotel",
                start_date=datetime(2025, 6, 1, tzinfo=timezone.utc),
                end_date=datetime(2025, 6, 4, tzinfo=timezone.utc),
                price=150.0,
            ))

            for email, name, role in DEMO_USERS:
                if await db.scalar(select(User).where(User.email == email)) is None:
                    db.add(User(
                        email=email,
                        password_hash=hash_password(DEMO_PASSWORD),
                        name=name,
                        role=role.value,
                        provider="email",
                    ))

            await db.commit()
            print("✅ Created location, place, trip and demo users:")
            for email, _, role in DEMO_USERS:
                print(f"   • {role.value}: {email}")
    finally:
        await database.disconnect()


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
