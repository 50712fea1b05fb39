"""Shared fixtures: an in-memory database, row factories and an API client."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

# Configure the app before importing it so module-level settings pick these up.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
for _key in ("WA_API_URL", "WA_API_KEY", "OWNER_EMAIL"):
    os.environ.pop(_key, None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from laundrypos.database import get_db, get_session_factory
from laundrypos.models import Base, Customer, License, Order
from laundrypos.utils.dates import utcnow

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
TENANT = "tenant-a"
ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}
STAFF_HEADERS = {"X-Actor-Id": "user-1", "X-Actor-Role": "staff"}
VIEWER_HEADERS = {"X-Actor-Id": "user-2", "X-Actor-Role": "viewer"}


def day(n: float) -> datetime:
    """Day ``n`` of the test calendar."""
    return NOW + timedelta(days=n)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    from laundrypos.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def add_license(db, tenant_id=TENANT, end_at=None, grace_days=3, active=True, package="monthly"):
    end_at = end_at or utcnow() + timedelta(days=10)
    lic = License(
        tenant_id=tenant_id,
        package=package,
        start_at=end_at - timedelta(days=30),
        end_at=end_at,
        grace_days=grace_days,
        active=active,
        status="active",
    )
    db.add(lic)
    db.commit()
    db.refresh(lic)
    return lic


def add_customer(db, tenant_id=TENANT, name="Budi", phone="081234567890", points=0):
    customer = Customer(tenant_id=tenant_id, name=name, phone=phone, points_balance=points)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


def add_order(db, tenant_id=TENANT, status="received", code="LND-1", customer=None, total=35_000):
    order = Order(
        tenant_id=tenant_id,
        code=code,
        barcode_value=code,
        customer_id=customer.id if customer else None,
        total_idr=total,
        status=status,
        payment_status="unpaid",
        paid_idr=0,
        advance_idr=0,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    return order
