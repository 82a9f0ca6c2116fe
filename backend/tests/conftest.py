"""
Pytest fixtures and configuration for the storefront backend tests

This file provides shared fixtures that can be used across all test modules.
"""
import os

# Must be set before app.core.config is imported: relaxed environment
# disables rate limiting and load shedding for the HTTP tests
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
import psycopg2
from dotenv import load_dotenv
from psycopg2.extras import RealDictCursor

# Load environment variables for tests
load_dotenv()


@pytest.fixture(scope="session")
def database_url():
    """
    Provides the database URL for integration tests

    Scope: session (created once per test session)
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL not configured")
    return url


@pytest.fixture(scope="function")
def db_connection(database_url):
    """
    Provides a fresh database connection for each test

    Automatically closes connection after test
    """
    conn = psycopg2.connect(database_url)
    yield conn
    conn.close()


@pytest.fixture(scope="function")
def db_cursor(db_connection):
    """Database cursor returning dictionaries instead of tuples"""
    cursor = db_connection.cursor(cursor_factory=RealDictCursor)
    yield cursor
    cursor.close()


@pytest.fixture
def product_row():
    """A products table row as returned by RealDictCursor"""
    return {
        'id': 1,
        'name': 'EcoBottle Classic 500ml',
        'description': 'Recycled stainless steel bottle',
        'price': Decimal('24.99'),
        'original_price': Decimal('34.99'),
        'image_url': 'https://example.com/classic.jpg',
        'category': 'standard',
        'features': ['BPA-Free', 'Leak-Proof'],
        'capacity': '500ml',
        'material': 'Recycled Stainless Steel',
        'colors': ['Ocean Blue'],
        'rating': Decimal('4.8'),
        'review_count': 124,
        'stock': 50,
        'is_active': True,
        'created_at': datetime(2025, 1, 1, tzinfo=timezone.utc),
        'updated_at': None
    }


@pytest.fixture
def order_row():
    """An orders table row as returned by RealDictCursor"""
    now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    return {
        'id': uuid.UUID('6b1f4c8e-2f7a-4d0a-9a51-3f6f1c2d9e10'),
        'name': 'Jane Doe',
        'email': 'jane@example.com',
        'product_id': 1,
        'quantity': 3,
        'address': {'street': '1 Main St', 'city': 'Springfield', 'state': 'IL',
                    'zip_code': '62701', 'country': 'USA'},
        'phone_number': '+1 555-0100',
        'notes': None,
        'total_amount': Decimal('30.00'),
        'status': 'pending',
        'created_at': now,
        'updated_at': now,
        'processed_at': None,
        'completed_at': None,
        'product_name': 'EcoBottle Classic 500ml'
    }


@pytest.fixture
def sample_order_data():
    """Valid intake payload for POST /api/v1/orders"""
    return {
        "name": "Jane Doe",
        "email": "Jane@Example.com",
        "product_id": 1,
        "quantity": 3,
        "address": {"street": "1 Main St", "city": "Springfield", "state": "IL", "zip_code": "62701"},
        "phone_number": "+1 555-0100"
    }
