# Overview: Service-layer operations for the tray planning sheet; encapsulates business logic and database work.

"""
Main Table

One saved row per SKU, overwritten in place. Unsaved SKUs start from the
tray size and the previous day's remark carry.

total_quantity = tray * tray_quantity + previous_quantity
"""

from __future__ import annotations

from typing import Iterable, Mapping

from ..extensions import db
from ..models import MainTableRow
from ..time_utils import normalize_day, previous_day
from ..validation import coerce_number, require_text
from .catalog_service import ordered_sku_names, trays_per_unit
from .concurrency import atomic
from .reconciliation_service import remark_carry_for


def total_quantity(tray: float, tray_quantity: float, previous_quantity: float) -> float:
    return tray * tray_quantity + previous_quantity


def get_main_table(for_date) -> list[dict]:
    day = normalize_day(for_date)
    saved = {row.sku_name: row for row in db.session.query(MainTableRow).all()}
    carries = remark_carry_for(previous_day(day))

    rows = []
    for name in ordered_sku_names():
        row = saved.get(name)
        if row is not None:
            rows.append(row.to_dict())
            continue
        tray_quantity = float(trays_per_unit(name))
        previous_quantity = carries.get(name, 0.0)
        rows.append({
            "sku_name": name,
            "tray": 0.0,
            "tray_quantity": tray_quantity,
            "previous_quantity": previous_quantity,
            "total_quantity": total_quantity(0.0, tray_quantity, previous_quantity),
            "updated_at": None,
        })
    return rows


def _upsert_row(session, sku_name: str, tray, tray_quantity, previous_quantity) -> MainTableRow:
    tray_value = coerce_number(tray, "tray", default=0)
    qty_value = coerce_number(tray_quantity, "tray_quantity", default=0)
    prev_value = coerce_number(previous_quantity, "previous_quantity", default=0)

    row = session.query(MainTableRow).filter_by(sku_name=sku_name).first()
    if row is None:
        row = MainTableRow(sku_name=sku_name)
        session.add(row)
    row.tray = tray_value
    row.tray_quantity = qty_value
    row.previous_quantity = prev_value
    row.total_quantity = total_quantity(tray_value, qty_value, prev_value)
    return row


def save_main_table_row(sku: str, tray=0, tray_quantity=0, previous_quantity=0) -> MainTableRow:
    sku_name = require_text(sku, "sku")
    row = _upsert_row(db.session, sku_name, tray, tray_quantity, previous_quantity)
    db.session.commit()
    return row


def save_main_table(rows: Iterable[Mapping]) -> int:
    """Save every row in one transaction. Returns the number of rows saved."""
    saved = 0
    with atomic() as session:
        for item in rows:
            _upsert_row(
                session,
                require_text(item.get("sku_name"), "sku_name"),
                item.get("tray"),
                item.get("tray_quantity"),
                item.get("previous_quantity"),
            )
            saved += 1
    return saved
