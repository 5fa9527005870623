"""CSV and PDF renderings of the asset, user and location registers."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from ..models.asset import Asset
from ..models.location import Location
from ..models.user import User

LOGGER = logging.getLogger(__name__)

PDF_FONT_FAMILY = "Helvetica"


@dataclass(frozen=True)
class Column:
    key: str
    title: str
    weight: float = 1.0


ASSET_COLUMNS: tuple[Column, ...] = (
    Column("asset_number", "Asset Number", 1.1),
    Column("type", "Type", 1.1),
    Column("state", "State", 1.1),
    Column("status", "Status", 0.9),
    Column("serial_number", "Serial Number", 1.4),
    Column("description", "Description", 2.2),
    Column("purchase_price", "Purchase Price", 0.9),
    Column("location", "Location", 1.5),
    Column("assigned_to", "Assigned To", 1.8),
    Column("employee_id", "Employee ID", 1.0),
    Column("department", "Department", 1.2),
    Column("created_at", "Created At", 1.1),
)

USER_COLUMNS: tuple[Column, ...] = (
    Column("name", "Name", 1.5),
    Column("email", "Email", 2.0),
    Column("employee_id", "Employee ID", 1.0),
    Column("role", "Role", 0.7),
    Column("location", "Location", 1.5),
    Column("department", "Department", 1.2),
    Column("is_active", "Active", 0.6),
)

LOCATION_COLUMNS: tuple[Column, ...] = (
    Column("name", "Name", 1.5),
    Column("description", "Description", 2.5),
    Column("is_active", "Active", 0.6),
)


def _fmt(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d")
    return str(value)


def asset_rows(assets: Iterable[Asset]) -> list[dict[str, str]]:
    return [
        {
            "asset_number": _fmt(asset.asset_number),
            "type": asset.type_label,
            "state": asset.state_label,
            "status": _fmt(asset.status),
            "serial_number": _fmt(asset.serial_number),
            "description": _fmt(asset.description),
            "purchase_price": _fmt(asset.purchase_price),
            "location": _fmt(asset.location_name),
            "assigned_to": _fmt(asset.assigned_to),
            "employee_id": _fmt(asset.employee_id),
            "department": _fmt(asset.department),
            "created_at": _fmt(asset.created_at),
        }
        for asset in assets
    ]


def user_rows(users: Iterable[User]) -> list[dict[str, str]]:
    return [
        {
            "name": _fmt(user.name),
            "email": _fmt(user.email),
            "employee_id": _fmt(user.employee_id),
            "role": _fmt(user.role),
            "location": _fmt(user.location_name),
            "department": _fmt(user.department_name),
            "is_active": _fmt(user.is_active),
        }
        for user in users
    ]


def location_rows(locations: Iterable[Location]) -> list[dict[str, str]]:
    return [
        {
            "name": _fmt(location.name),
            "description": _fmt(location.description),
            "is_active": _fmt(location.is_active),
        }
        for location in locations
    ]


def render_csv(columns: Sequence[Column], rows: Iterable[Mapping[str, str]]) -> str:
    """Header row plus one line per record, CRLF terminated, quoted as needed."""

    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=[column.key for column in columns],
        extrasaction="ignore",
        lineterminator="\r\n",
    )
    writer.writerow({column.key: column.title for column in columns})
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def _latin1(text: str) -> str:
    # Core PDF fonts only cover Latin-1.
    return text.encode("latin-1", "replace").decode("latin-1")


def _fit(pdf: FPDF, text: str, width: float) -> str:
    text = _latin1(text)
    limit = width - 2
    if pdf.get_string_width(text) <= limit:
        return text
    while text and pdf.get_string_width(text + "...") > limit:
        text = text[:-1]
    return text + "..."


def render_pdf(
    title: str,
    columns: Sequence[Column],
    rows: Sequence[Mapping[str, str]],
    filters: Mapping[str, Any] | None = None,
) -> bytes:
    """Render a landscape A4 table with a title, filter summary and timestamp."""

    pdf = FPDF(orientation="L", unit="mm", format="A4")
    pdf.set_auto_page_break(auto=True, margin=12)
    pdf.add_page()

    effective_width = pdf.w - pdf.l_margin - pdf.r_margin

    pdf.set_font(PDF_FONT_FAMILY, "B", 16)
    pdf.cell(effective_width, 10, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    generated_at = datetime.now(timezone.utc)
    pdf.set_font(PDF_FONT_FAMILY, size=9)
    pdf.cell(
        effective_width,
        5,
        f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M UTC')}  |  Records: {len(rows)}",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    active_filters = {key: value for key, value in (filters or {}).items() if value not in (None, "")}
    if active_filters:
        summary = ", ".join(f"{key}={value}" for key, value in active_filters.items())
        pdf.multi_cell(effective_width, 5, _latin1(f"Filters: {summary}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)

    total_weight = sum(column.weight for column in columns) or 1
    widths = [effective_width * column.weight / total_weight for column in columns]

    def header() -> None:
        pdf.set_font(PDF_FONT_FAMILY, "B", 8)
        pdf.set_fill_color(230, 230, 230)
        for column, width in zip(columns, widths):
            pdf.cell(width, 6, _fit(pdf, column.title, width), border=1, fill=True, new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.ln()
        pdf.set_font(PDF_FONT_FAMILY, size=7)

    header()
    for row in rows:
        if pdf.get_y() + 5 > pdf.h - pdf.b_margin:
            pdf.add_page()
            header()
        for column, width in zip(columns, widths):
            pdf.cell(width, 5, _fit(pdf, row.get(column.key, ""), width), border=1, new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.ln()

    if not rows:
        pdf.set_font(PDF_FONT_FAMILY, "I", 9)
        pdf.cell(effective_width, 6, "No records match the selected filters.", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    LOGGER.info("export.pdf_rendered", extra={"extra_data": {"title": title, "rows": len(rows)}})
    return bytes(pdf.output())
