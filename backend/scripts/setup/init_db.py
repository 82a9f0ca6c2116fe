#!/usr/bin/env python3
"""
Create the storefront tables and optionally seed them

Purpose: Bootstrap a fresh database (products, orders, users) from the
SQLAlchemy models, insert the sample catalog and create an admin account.

Usage:
    export DATABASE_URL="postgresql://..."
    python3 backend/scripts/setup/init_db.py --seed \
        --admin-email admin@example.com --admin-password secret123
"""

import argparse
import sys
from pathlib import Path

# Allow running from the repository root
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from app.core.auth import hash_password
from app.core.database import Base, get_engine
from app.domain.user import UserRole
from app.repositories.user_repository import UserRepository
from app.services.product_catalog_service import ProductCatalogService
import app.models  # noqa: F401  (registers tables on Base.metadata)


def create_tables():
    print("🔧 Creating tables...")
    Base.metadata.create_all(get_engine())
    for table in Base.metadata.sorted_tables:
        print(f"   ✓ {table.name}")


def seed_products():
    created = ProductCatalogService().seed_sample_products()
    if created:
        print(f"🌱 Seeded {len(created)} sample products")
    else:
        print("ℹ️  Products table not empty, skipping seed")


def create_admin(email: str, password: str, name: str):
    repo = UserRepository()
    if repo.exists_by_email(email.lower()):
        print(f"ℹ️  Admin {email} already exists")
        return

    user = repo.create(
        name=name,
        email=email.lower(),
        password_hash=hash_password(password),
        role=UserRole.ADMIN.value
    )
    print(f"👤 Created admin user {user.email} (id={user.id})")


def main():
    parser = argparse.ArgumentParser(description="Initialize the storefront database")
    parser.add_argument("--seed", action="store_true", help="Insert the sample catalog if empty")
    parser.add_argument("--admin-email", help="Create an admin account with this email")
    parser.add_argument("--admin-password", help="Password for the admin account")
    parser.add_argument("--admin-name", default="Admin", help="Display name for the admin account")
    args = parser.parse_args()

    if args.admin_email and not args.admin_password:
        parser.error("--admin-password is required with --admin-email")

    create_tables()

    if args.seed:
        seed_products()

    if args.admin_email:
        create_admin(args.admin_email, args.admin_password, args.admin_name)

    print("✅ Database ready")


if __name__ == "__main__":
    main()
