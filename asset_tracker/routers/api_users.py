from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.errors import DomainValidationError, NotFoundError
from ..core.passwords import STRENGTH_LABELS, password_strength, validate_password
from ..crud import assets as assets_crud
from ..crud import users as users_crud
from ..db.session import get_db
from ..deps.auth import AuthContext, require_admin, require_user
from ..schemas.asset import AssetOut
from ..schemas.user import NextEmployeeIdOut, PasswordResetOut, PasswordResetRequest

router = APIRouter(prefix="/api/v1/users", tags=["users"])
logger = logging.getLogger(__name__)


def _user_or_404(db: Session, user_id: int):
    user = users_crud.get_user(db, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})
    return user


@router.get("/next-employee-id", response_model=NextEmployeeIdOut, dependencies=[Depends(require_admin)])
def api_next_employee_id(db: Session = Depends(get_db)):
    return NextEmployeeIdOut(employee_id=users_crud.next_employee_id(db))


@router.get("/{user_id}/assets", response_model=list[AssetOut], dependencies=[Depends(require_user)])
def api_user_assets(user_id: int, db: Session = Depends(get_db)):
    user = _user_or_404(db, user_id)
    return [AssetOut.model_validate(asset) for asset in assets_crud.list_assets_for_user(db, user)]


@router.post("/{user_id}/reset-password", response_model=PasswordResetOut)
def api_reset_password(
    user_id: int,
    payload: PasswordResetRequest,
    context: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _user_or_404(db, user_id)
    check = validate_password(payload.new_password)
    if not check.is_valid:
        raise DomainValidationError(
            "Password does not meet requirements",
            details={"errors": check.errors, "requirements": check.requirements},
        )
    users_crud.set_password(db, user, payload.new_password)
    strength = password_strength(payload.new_password)
    logger.info(
        "user.password_reset",
        extra={"extra_data": {"user_id": user.id, "reset_by": context.principal}},
    )
    return PasswordResetOut(user_id=user.id, strength=strength, strength_label=STRENGTH_LABELS[strength])
