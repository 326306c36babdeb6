# create_tables.py
import argparse

from rollout_ready.database import Base, SessionLocal, engine, init_db
from rollout_ready.seed import ensure_admin
from rollout_ready.config.security import SecurityConfig


def create_tables(drop_existing: bool = False):
    """Create all tables and the default admin user"""
    try:
        if drop_existing:
            from rollout_ready import models  # noqa: F401
            Base.metadata.drop_all(bind=engine)
            print("🗑️  Existing tables dropped")

        init_db()
        print("✅ All tables created successfully!")

        create_default_admin()
        return True
    except Exception as e:
        print(f"❌ Error creating tables: {e}")
        return False


def create_default_admin():
    """Create a default admin user"""
    db = SessionLocal()
    try:
        admin = ensure_admin(db)
        print("✅ Default admin user ready!")
        print(f"   Username: {admin.username}")
        print(f"   Password: {SecurityConfig.DEFAULT_ADMIN['password']} (unless changed since)")
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the Rollout Ready database schema")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args()
    raise SystemExit(0 if create_tables(drop_existing=args.drop) else 1)
