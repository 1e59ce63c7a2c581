#!/usr/bin/env python3
"""
seed_db.py — Populate MongoDB with sample coastal hazard reports for local development.

Inserts:
  - Sample geo-tagged reports along the Indian coastline (map + analytics demo)
  - Creates the report indexes

Reports go through ReportLifecycle, so priorities are derived and resolved
reports get a real resolved_at / response_time.

Usage:
    python scripts/seed_db.py

Requires:
    pip install -e .
    MongoDB running locally (or set MONGO_URI / MONGO_DB_NAME env vars)

Safe to re-run: deletes previous seed reports first, then re-inserts.
"""

import asyncio

from motor.motor_asyncio import AsyncIOMotorClient

from resq.core.config import settings
from resq.services.lifecycle import ReportLifecycle
from resq.services.report_store import ReportStore

SEED_SOURCE = "API"

# (submission, final status, verified_by or None)
SAMPLE_REPORTS = [
    (
        {
            "location": {"lat": 19.0760, "lng": 72.8777, "details": "Marine Drive, Mumbai, Maharashtra, India"},
            "hazardType": "High Waves",
            "severity": "High Risk",
            "description": "Extremely high waves observed near Marine Drive. Strong undertow currents detected. "
                           "Public advised to avoid water activities.",
            "contact": {"name": "Coastal Guard Mumbai", "phone": "+91-22-1234567",
                        "email": "guard.mumbai@coastguard.gov.in"},
        },
        "Active",
        "Mumbai Coastal Authority",
    ),
    (
        {
            "location": {"lat": 15.2993, "lng": 74.1240, "details": "Calangute Beach, Goa, India"},
            "hazardType": "Rip Current",
            "severity": "Critical Emergency",
            "description": "Dangerous rip current spotted at Calangute Beach. Several rescue operations ongoing. "
                           "Beach temporarily closed to swimmers.",
            "contact": {"name": "Goa Lifeguard Service", "phone": "+91-832-9876543",
                        "email": "lifeguard@goa.gov.in"},
        },
        "Active",
        "Goa Tourism Department",
    ),
    (
        {
            "location": {"lat": 13.0827, "lng": 80.2707, "details": "Marina Beach, Chennai, Tamil Nadu, India"},
            "hazardType": "Marine Debris",
            "severity": "Moderate Risk",
            "description": "Significant amount of plastic debris and fishing nets washed ashore. "
                           "Cleanup operations in progress. Swimming not recommended.",
            "contact": {"name": "Chennai Municipal Corporation", "phone": "+91-44-1234567",
                        "email": "marine@chennai.gov.in"},
        },
        "Under Review",
        None,
    ),
    (
        {
            "location": {"lat": 11.9416, "lng": 79.8083, "details": "Promenade Beach, Puducherry, India"},
            "hazardType": "Weather Events",
            "severity": "Low Risk",
            "description": "Light rain and mild winds expected. Sea conditions are generally calm. "
                           "Normal precautions advised for water activities.",
            "contact": {"name": "Puducherry Port Authority", "phone": "+91-413-1234567",
                        "email": "port@puducherry.gov.in"},
        },
        "Resolved",
        "Puducherry Maritime Department",
    ),
    (
        {
            "location": {"lat": 8.0883, "lng": 77.0644, "details": "Kovalam Beach, Kerala, India"},
            "hazardType": "Storm Surge",
            "severity": "High Risk",
            "description": "Storm surge warning issued for Kovalam Beach area. Water levels rising rapidly. "
                           "Immediate evacuation of low-lying areas recommended.",
            "contact": {"name": "Kerala State Disaster Management", "phone": "+91-471-9876543",
                        "email": "disaster@kerala.gov.in"},
        },
        "Active",
        "Kerala Coastal Authority",
    ),
    (
        {
            "location": {"lat": 17.6868, "lng": 83.2185, "details": "Visakhapatnam Beach, Andhra Pradesh, India"},
            "hazardType": "Coastal Erosion",
            "severity": "Moderate Risk",
            "description": "Ongoing coastal erosion observed along the shoreline. Infrastructure assessment in "
                           "progress. Public access restricted in affected areas.",
            "contact": {"name": "Andhra Pradesh Coastal Management", "phone": "+91-891-1234567",
                        "email": "coastal@ap.gov.in"},
        },
        "Under Review",
        None,
    ),
    (
        {
            "location": {"lat": 20.2961, "lng": 85.8245, "details": "Puri Beach, Odisha, India"},
            "hazardType": "High Waves",
            "severity": "Moderate Risk",
            "description": "Moderate to high wave activity at Puri Beach. Lifeguards on high alert. "
                           "Swimmers advised to stay close to shore and follow safety guidelines.",
            "contact": {"name": "Puri Beach Management", "phone": "+91-6752-123456",
                        "email": "beach@puri.gov.in"},
        },
        "Active",
        "Odisha Coastal Police",
    ),
]


async def seed() -> None:
    print("Connecting to MongoDB...")
    client = AsyncIOMotorClient(settings.mongo_uri, tz_aware=True)
    db = client[settings.mongo_db_name]

    try:
        await client.admin.command("ping")
        print("Connected.")

        store = ReportStore(db)
        lifecycle = ReportLifecycle(store)

        # ─── Clean up previous seed data ──────────────────────────────────────
        seed_places = [submission["location"]["details"] for submission, _, _ in SAMPLE_REPORTS]
        deleted = await db[settings.reports_collection].delete_many(
            {"source": SEED_SOURCE, "location.details": {"$in": seed_places}}
        )
        print(f"Removed {deleted.deleted_count} existing seed reports.")

        # ─── Insert sample reports ────────────────────────────────────────────
        for submission, status, verified_by in SAMPLE_REPORTS:
            report = await lifecycle.submit({**submission, "source": SEED_SOURCE})
            if verified_by:
                await lifecycle.verify(report.id, verified_by)
            if status != report.status:
                await lifecycle.change_status(report.id, status, actor="seed")
            print(f"  {report.hazard_type} at {report.location.details} "
                  f"({report.severity}, priority {report.priority})")

        # ─── Ensure indexes exist ─────────────────────────────────────────────
        await store.ensure_indexes()
        print("Indexes ensured.")

        print("\nSeed complete! Reports per hazard type:")
        pipeline = [{"$group": {"_id": "$hazard_type", "count": {"$sum": 1}}}]
        async for doc in db[settings.reports_collection].aggregate(pipeline):
            print(f"  {doc['_id']}: {doc['count']} reports")

    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(seed())
