from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.lifecycle import AssetState, AssetType
from ..crud import assets as assets_crud
from ..crud import history as history_crud
from ..crud import holding as holding_crud
from ..crud import locations as locations_crud
from ..crud import settings as settings_crud
from ..crud import users as users_crud
from ..models.asset import Asset

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal(100)
ZERO = Decimal("0")


def _to_decimal(value: Any) -> Decimal:
    """Best-effort conversion of stored prices to Decimal for currency math."""

    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace(",", "")
        if not cleaned:
            return ZERO
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return ZERO
    return ZERO


def _quantize_currency(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP) if value else Decimal("0.00")


def depreciated_value(
    purchase_price: Any,
    purchase_year: int,
    current_year: int,
    method: str = "straight",
    years: int = 4,
    declining_percents: Sequence[float] = (50, 25, 12.5, 12.5),
) -> Decimal:
    """Book value of an asset in ``current_year``.

    ``straight`` writes off ``100 / years`` percent of the purchase price per
    full year of age. ``declining`` reduces the remaining value by the
    per-year percentage in ``declining_percents`` (missing years count as 0).
    Age is capped at ``years`` and the result is never negative.
    """

    price = _to_decimal(purchase_price)
    if current_year < purchase_year:
        return ZERO
    years = max(1, int(years))
    age = min(current_year - purchase_year, years)

    if method == "declining":
        value = price
        for year_index in range(age):
            percent = _to_decimal(declining_percents[year_index]) if year_index < len(declining_percents) else ZERO
            value = value * (1 - percent / HUNDRED)
    else:
        written_off = Decimal(age) * (HUNDRED / Decimal(years))
        value = price * (1 - written_off / HUNDRED)

    return value if value > 0 else ZERO


def _purchase_year(asset: Asset, fallback: int) -> int:
    return asset.created_at.year if asset.created_at else fallback


def financial_summary(db: Session, today: date | None = None) -> Dict[str, Any]:
    """Depreciated value of the active estate by type and by calendar year."""

    today = today or date.today()
    current_year = today.year
    config = settings_crud.effective_depreciation(settings_crud.get_settings_row(db))
    method = config["method"]
    years = config["years"]
    percents = config["declining_percents"]

    assets: Iterable[Asset] = assets_crud.list_all_active(db)
    priced = [(asset, _purchase_year(asset, current_year)) for asset in assets]

    by_type: Dict[str, Decimal] = {kind.value: ZERO for kind in AssetType}
    for asset, purchase_year in priced:
        value = depreciated_value(asset.purchase_price, purchase_year, current_year, method, years, percents)
        by_type[asset.type] = by_type.get(asset.type, ZERO) + value

    first_year = min((year for _asset, year in priced), default=current_year)
    by_year: Dict[str, Decimal] = {}
    for year in range(first_year, current_year + 1):
        total = ZERO
        for asset, purchase_year in priced:
            if purchase_year > year:
                continue
            total += depreciated_value(asset.purchase_price, purchase_year, year, method, years, percents)
        by_year[str(year)] = _quantize_currency(total)

    return {
        "method": method,
        "years": years,
        "declining_percents": percents,
        "by_type": {kind: _quantize_currency(value) for kind, value in by_type.items()},
        "by_year": by_year,
    }


def inventory_summary(db: Session) -> Dict[str, Any]:
    by_type = assets_crud.count_by_type(db)
    by_state = assets_crud.count_by_state(db)
    return {
        "total": sum(by_type.values()),
        "by_type": by_type,
        "by_state": by_state,
    }


def dashboard(db: Session) -> Dict[str, Any]:
    """Headline numbers for the admin landing page."""

    active = Asset.deleted_at.is_(None)
    total_assets = db.execute(select(func.count(Asset.id)).where(active)).scalar_one()
    total_value = db.execute(select(func.coalesce(func.sum(Asset.purchase_price), 0)).where(active)).scalar_one()

    recent = [
        {
            "asset_number": entry.asset_number,
            "previous_state": entry.previous_state,
            "new_state": entry.new_state,
            "change_reason": entry.change_reason,
            "changed_by_name": entry.changed_by_name,
            "timestamp": entry.timestamp,
        }
        for entry in history_crud.recent_history(db, limit=5)
    ]

    return {
        "total_assets": total_assets,
        "total_value": _quantize_currency(_to_decimal(total_value)),
        "total_users": users_crud.count_active_users(db),
        "total_locations": locations_crud.count_active_locations(db),
        "pending_holding": holding_crud.count_pending(db),
        "by_state": assets_crud.count_by_state(db),
        "by_type": assets_crud.count_by_type(db),
        "building_by_type": assets_crud.count_by_type_in_state(db, AssetState.BUILT),
        "ready_to_go_by_type": assets_crud.count_by_type_in_state(db, AssetState.READY_TO_GO),
        "recent_activity": recent,
    }
