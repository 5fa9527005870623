"""Shared setup for the test modules: environment, in-memory engines and reference rows."""

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("API_KEY", "test-api-key")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("SEED_ON_STARTUP", "false")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from asset_tracker.core.lifecycle import UserRole
from asset_tracker.crud import locations as locations_crud
from asset_tracker.crud import users as users_crud
from asset_tracker.crud.sequences import ensure_sequences
from asset_tracker.db.session import Base
from asset_tracker import models  # noqa: F401

API_KEY = os.environ["API_KEY"]


def make_sessionmaker():
    # StaticPool keeps a single connection so the in-memory database is shared
    # with the threads TestClient dispatches sync endpoints on.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def seed_reference(db):
    """Sequences, two locations, one department, an admin and a regular user."""

    ensure_sequences(db)
    db.commit()
    store = locations_crud.create_location(db, "Warehouse - Main", "Primary storage")
    office = locations_crud.create_location(db, "Headquarters - Floor 1")
    department = locations_crud.get_or_create_department(db, "IT", store)
    admin = users_crud.create_user(
        db,
        name="Ada Admin",
        email="ada@example.com",
        location_id=store.id,
        department_id=department.id,
        role=UserRole.ADMIN,
        password="Sup3r-Secret-Pass!",
    )
    user = users_crud.create_user(
        db,
        name="Uma User",
        email="uma@example.com",
        location_id=office.id,
        department_id=department.id,
        role=UserRole.USER,
        password="Another-Secret-9?",
    )
    return {"store": store, "office": office, "department": department, "admin": admin, "user": user}
