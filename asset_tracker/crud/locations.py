from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models.location import Department, Location


def get_location(db: Session, location_id: int) -> Location | None:
    return db.get(Location, location_id)


def get_location_by_name(db: Session, name: str) -> Location | None:
    stmt = select(Location).where(func.lower(Location.name) == name.strip().lower())
    return db.execute(stmt).scalars().first()


def create_location(db: Session, name: str, description: str | None = None) -> Location:
    location = Location(name=name.strip(), description=description, is_active=True)
    db.add(location)
    db.commit()
    db.refresh(location)
    return location


def get_or_create_location(db: Session, name: str, description: str | None = None) -> Location:
    return get_location_by_name(db, name) or create_location(db, name, description)


def get_or_create_department(db: Session, name: str, location: Location) -> Department:
    stmt = select(Department).where(
        func.lower(Department.name) == name.strip().lower(),
        Department.location_id == location.id,
    )
    department = db.execute(stmt).scalars().first()
    if department is None:
        department = Department(name=name.strip(), location_id=location.id)
        db.add(department)
        db.commit()
        db.refresh(department)
    return department


def list_locations(db: Session, *, active_only: bool = False) -> list[Location]:
    stmt = select(Location).order_by(Location.name)
    if active_only:
        stmt = stmt.where(Location.is_active.is_(True))
    return list(db.execute(stmt).scalars().all())


def count_active_locations(db: Session) -> int:
    return db.execute(select(func.count(Location.id)).where(Location.is_active.is_(True))).scalar_one()
