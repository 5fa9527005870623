import support

import pytest
from sqlalchemy import create_engine, func, inspect, select, text
from sqlalchemy.pool import StaticPool

from asset_tracker.core.config import AppSettings
from asset_tracker.core.passwords import verify_password
from asset_tracker.crud import users as users_crud
from asset_tracker.db.migrate import run_migrations
from asset_tracker.db.seed import INITIAL_LOCATIONS, seed_database
from asset_tracker.models.asset import AssetSequence
from asset_tracker.models.location import Department, Location
from asset_tracker.services import tenant_config


@pytest.fixture()
def db_session():
    SessionLocal = support.make_sessionmaker()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _settings(**overrides):
    values = {
        "ADMIN_NAME": "Root Admin",
        "ADMIN_EMAIL": "root@example.com",
        "ADMIN_PASSWORD": "Bootstrap-Pass-123!",
        "DEFAULT_TENANT_ID": "default",
    }
    values.update(overrides)
    return AppSettings(**values)


def test_seed_is_idempotent(db_session):
    settings = _settings()
    seed_database(db_session, settings)
    seed_database(db_session, settings)

    assert db_session.execute(select(func.count(AssetSequence.asset_type))).scalar_one() == 5
    assert db_session.execute(select(func.count(Location.id))).scalar_one() == len(INITIAL_LOCATIONS)
    assert db_session.execute(select(func.count(Department.id))).scalar_one() == 1

    admin = users_crud.get_user_by_email(db_session, "root@example.com")
    assert admin.is_admin
    assert admin.employee_id == "ADMIN001"
    assert admin.location_name == "IT Department"
    assert verify_password("Bootstrap-Pass-123!", admin.password_hash)

    assert tenant_config.get_tenant_config(db_session, "default") is not None
    assert len(tenant_config.list_asset_states(db_session, "default")) == 5


def test_seed_without_password_leaves_admin_unable_to_log_in(db_session):
    seed_database(db_session, _settings(ADMIN_PASSWORD=""))

    admin = users_crud.get_user_by_email(db_session, "root@example.com")
    assert admin.password_hash is None
    assert not verify_password("anything", admin.password_hash)


def test_migrations_add_missing_columns_and_indexes():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE assets (id INTEGER PRIMARY KEY, asset_number VARCHAR(8), "
                "type VARCHAR(32), state VARCHAR(32))"
            )
        )
        conn.execute(text("CREATE TABLE asset_history (id INTEGER PRIMARY KEY, asset_id INTEGER, timestamp TIMESTAMP)"))

    run_migrations(engine)
    run_migrations(engine)

    inspector = inspect(engine)
    columns = {column["name"] for column in inspector.get_columns("assets")}
    assert {"status", "department", "deleted_at"} <= columns
    assert "details" in {column["name"] for column in inspector.get_columns("asset_history")}
    assert "ix_assets_type_state" in {index["name"] for index in inspector.get_indexes("assets")}
    assert not inspector.has_table("settings")
