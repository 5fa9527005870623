from __future__ import annotations

import re

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.lifecycle import UserRole
from ..core.passwords import hash_password
from ..models.user import User

_EMPLOYEE_ID_RE = re.compile(r"^EMP(\d+)$")


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    stmt = select(User).where(func.lower(User.email) == email.strip().lower())
    return db.execute(stmt).scalars().first()


def next_employee_id(db: Session) -> str:
    """Return ``EMPnnnnn`` one past the highest generated id, ``EMP00001`` when none."""

    highest = 0
    for employee_id in db.execute(select(User.employee_id).where(User.employee_id.like("EMP%"))).scalars():
        match = _EMPLOYEE_ID_RE.match(employee_id or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"EMP{highest + 1:05d}"


def create_user(
    db: Session,
    *,
    name: str,
    email: str,
    location_id: int,
    department_id: int,
    role: UserRole | str = UserRole.USER,
    employee_id: str | None = None,
    password: str | None = None,
) -> User:
    email = email.strip().lower()
    if get_user_by_email(db, email):
        raise ValueError(f"A user with email {email} already exists")
    user = User(
        name=name.strip(),
        email=email,
        employee_id=employee_id or next_employee_id(db),
        location_id=location_id,
        department_id=department_id,
        role=role.value if isinstance(role, UserRole) else str(role).upper(),
        password_hash=hash_password(password) if password else None,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def set_password(db: Session, user: User, password: str) -> User:
    user.password_hash = hash_password(password)
    db.commit()
    db.refresh(user)
    return user


def count_active_users(db: Session) -> int:
    return db.execute(select(func.count(User.id)).where(User.is_active.is_(True))).scalar_one()


def list_users(db: Session) -> list[User]:
    return list(db.execute(select(User).order_by(User.name)).scalars().unique().all())
