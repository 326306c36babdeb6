"""
Master Database Seeding Script
Creates database tables and populates them with the Rollout Ready demo data
"""

import os

from dotenv import load_dotenv

from rollout_ready.database import SessionLocal
from rollout_ready.seed import DEMO_PROJECT, DEMO_USERS, seed_demo_data
from create_tables import create_tables

# Load environment variables
load_dotenv()


def banner(title: str):
    print(f"\n{'='*60}")
    print(f"🚀 {title}")
    print(f"{'='*60}")


def seed():
    banner("Creating Database Tables")
    if not create_tables():
        return False

    banner("Loading Demo Data")
    db = SessionLocal()
    try:
        summary = seed_demo_data(db)
    except Exception as e:
        print(f"[ERROR] Error seeding demo data: {e}")
        return False
    finally:
        db.close()

    print("\n📊 Seed Summary:")
    print(f"   Users: {summary['users']}")
    print(f"   Roles: {summary['roles']}")
    print(f"   Templates created: {summary['templates']}")
    print(f"   Tasks generated: {summary['tasks']}")
    print(f"   Sample project: {DEMO_PROJECT['name']} (starts {DEMO_PROJECT['start_date']})")

    print("\n🔑 Demo logins:")
    for user in DEMO_USERS:
        print(f"   {user['username']:<10} / {user['password']:<12} ({user['system_role'].value})")
    return True


if __name__ == "__main__":
    print(f"Database: {os.getenv('DATABASE_URL', 'sqlite:///./rollout_ready.db')}")
    raise SystemExit(0 if seed() else 1)
