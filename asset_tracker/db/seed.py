"""Reference data every fresh database needs before the API is usable."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..core.config import AppSettings
from ..core.lifecycle import UserRole
from ..crud import locations as locations_crud
from ..crud import settings as settings_crud
from ..crud import users as users_crud
from ..crud.sequences import ensure_sequences
from ..services.tenant_config import ensure_tenant

logger = logging.getLogger(__name__)

INITIAL_LOCATIONS: list[tuple[str, str]] = [
    ("Headquarters - Floor 1", "Main floor with reception and meeting rooms"),
    ("Headquarters - Floor 2", "Engineering and development teams"),
    ("Headquarters - Floor 3", "Management and administrative offices"),
    ("Branch Office - North", "Northern branch location"),
    ("Branch Office - South", "Southern branch location"),
    ("Warehouse - Main", "Primary storage and distribution center"),
    ("IT Department", "IT support and asset management office"),
    ("Reception Area", "Main building reception"),
    ("Conference Room A", "Large conference room"),
    ("Storage Room", "General storage facility"),
]

IT_LOCATION = "IT Department"
IT_DEPARTMENT = "IT"
ADMIN_EMPLOYEE_ID = "ADMIN001"


def seed_database(db: Session, settings: AppSettings) -> None:
    """Idempotently insert sequences, settings, locations, the admin and the default tenant."""

    created = ensure_sequences(db)
    db.commit()
    settings_crud.get_settings_row(db)

    for name, description in INITIAL_LOCATIONS:
        locations_crud.get_or_create_location(db, name, description)
    it_location = locations_crud.get_or_create_location(db, IT_LOCATION)
    it_department = locations_crud.get_or_create_department(db, IT_DEPARTMENT, it_location)

    if users_crud.get_user_by_email(db, settings.ADMIN_EMAIL) is None:
        users_crud.create_user(
            db,
            name=settings.ADMIN_NAME,
            email=settings.ADMIN_EMAIL,
            employee_id=ADMIN_EMPLOYEE_ID,
            location_id=it_location.id,
            department_id=it_department.id,
            role=UserRole.ADMIN,
            password=settings.ADMIN_PASSWORD or None,
        )
        if not settings.ADMIN_PASSWORD:
            logger.warning(
                "seed.admin_without_password",
                extra={"extra_data": {"email": settings.ADMIN_EMAIL}},
            )

    ensure_tenant(db, settings.DEFAULT_TENANT_ID)
    logger.info(
        "seed.completed",
        extra={"extra_data": {"sequences_created": [kind.value for kind in created]}},
    )
