# Overview: Service-layer operations for order reconciliation; encapsulates business logic and database work.

"""
Order Reconciliation Engine

WHY: Admins enter each location's order per SKU per day. The day's total is
converted into whole trays; whatever does not fill a tray is carried into the
next calendar day.

RULES (per date, per SKU):
1. location_sum = sum of the ten location columns (previous balance excluded)
2. total_quantity = location_sum
3. tray_order_count = floor(total_quantity / tpu); tpu 0 -> 0 trays
4. extra_remaining = total_quantity mod tpu (0 when tpu is 0)
5. remark = "+<extra>" and/or "-<abs(previous_balance)>", or "0"

PROJECTIONS (one trigger point each, never calling each other):
- record_location_order -> project_location_order: admin edit writes the
  mapped workers' pending sale-sheet quantity
- submission insert -> sync_worker_orders: worker "ordering" values write the
  worker's location column

Projections are best-effort. A failed projection is logged as a warning and
never fails the edit or submission that triggered it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable

from flask import current_app

from ..extensions import db
from ..locations import LOCATION_COLUMNS, Location, normalize_location
from ..models import (
    User,
    LocationOrder,
    ExtraOrder,
    RemarkCarry,
    Submission,
    SubmissionLine,
)
from ..models.auth import ROLE_WORKER
from ..models.submissions import STATUS_PENDING
from ..time_utils import day_of_week, normalize_day, previous_day
from ..validation import ValidationError, coerce_number, format_quantity, parse_order_value, require_text
from .catalog_service import ordered_sku_names, trays_per_unit
from .concurrency import atomic, best_effort


class SyncError(Exception):
    """Raised by a projection step; caught and logged at its trigger point."""
    pass


# =============================================================================
# REMARK TONES (CONSTANTS)
# =============================================================================

TONE_EXTRA = "extra"
TONE_CREDIT = "credit"
TONE_DEBIT = "debit"


@dataclass(frozen=True)
class ReconciledRow:
    sku_name: str
    quantities: dict[str, float] = field(default_factory=dict)
    previous_balance: float = 0.0
    location_sum: float = 0.0
    total_quantity: float = 0.0
    tray_order_count: int = 0
    extra_remaining: float = 0.0
    remark: str = "0"
    remark_tone: str | None = None

    def to_dict(self) -> dict:
        return {
            "sku_name": self.sku_name,
            **self.quantities,
            "previous_balance": self.previous_balance,
            "location_sum": self.location_sum,
            "total_quantity": self.total_quantity,
            "tray_order_count": self.tray_order_count,
            "extra_remaining": self.extra_remaining,
            "remark": self.remark,
            "remark_tone": self.remark_tone,
        }


# =============================================================================
# PURE COMPUTATION
# =============================================================================

def tray_split(quantity: float, tpu: int) -> tuple[int, float]:
    """(whole trays, remainder). A zero tray size never divides."""
    if tpu <= 0:
        return 0, 0.0
    return int(math.floor(quantity / tpu)), float(quantity % tpu)


def build_remark(extra_remaining: float, previous_balance: float) -> tuple[str, str | None]:
    parts = []
    if extra_remaining > 0:
        parts.append(f"+{format_quantity(extra_remaining)}")
    if previous_balance != 0:
        parts.append(f"-{format_quantity(abs(previous_balance))}")
    if not parts:
        return "0", None

    if extra_remaining > 0:
        tone = TONE_EXTRA
    elif previous_balance > 0:
        tone = TONE_CREDIT
    else:
        tone = TONE_DEBIT
    return " ".join(parts), tone


def compute_row(
    sku_name: str,
    quantities: dict[str, float],
    previous_balance: float = 0.0,
    tpu: int | None = None,
) -> ReconciledRow:
    """Apply the five reconciliation rules to one (date, SKU)."""
    if tpu is None:
        tpu = trays_per_unit(sku_name)
    quantities = {col: float(quantities.get(col) or 0) for col in LOCATION_COLUMNS}

    location_sum = sum(quantities.values())
    total_quantity = location_sum
    trays, extra = tray_split(total_quantity, tpu)
    remark, tone = build_remark(extra, previous_balance)

    return ReconciledRow(
        sku_name=sku_name,
        quantities=quantities,
        previous_balance=float(previous_balance),
        location_sum=location_sum,
        total_quantity=total_quantity,
        tray_order_count=trays,
        extra_remaining=extra,
        remark=remark,
        remark_tone=tone,
    )


# =============================================================================
# READS
# =============================================================================

def _order_rows(for_date: str) -> dict[str, LocationOrder]:
    rows = db.session.query(LocationOrder).filter_by(for_date=for_date).all()
    return {row.sku_name: row for row in rows}


def carry_for(for_date: str) -> dict[str, float]:
    """extra_orders stored for one date, keyed by SKU."""
    rows = db.session.query(ExtraOrder).filter_by(for_date=for_date).all()
    return {row.sku_name: float(row.extra_order or 0) for row in rows}


def remark_carry_for(for_date: str) -> dict[str, float]:
    rows = db.session.query(RemarkCarry).filter_by(for_date=for_date).all()
    return {row.sku_name: float(row.remark_plus_value or 0) for row in rows}


def _resolve_previous_balance(row: LocationOrder | None, carried: float | None) -> float:
    # Explicit value on the day's row wins over the carry
    if row is not None and row.previous_balance is not None:
        return float(row.previous_balance)
    if carried is not None and carried > 0:
        return carried
    return 0.0


def get_reconciliation_view(for_date) -> dict[str, ReconciledRow]:
    """
    Every ordered SKU's reconciled row for a date, in display order.

    Recomputed from stored columns on every call; nothing is written.
    """
    day = normalize_day(for_date)
    rows = _order_rows(day)
    carries = carry_for(previous_day(day))

    names = ordered_sku_names()
    # Rows for names outside the catalog (old data) still show, after the catalog
    names.extend(name for name in sorted(rows) if name not in names)

    view: dict[str, ReconciledRow] = {}
    for name in names:
        row = rows.get(name)
        view[name] = compute_row(
            name,
            row.quantities() if row else {},
            _resolve_previous_balance(row, carries.get(name)),
        )
    return view


def get_reconciled_row(for_date, sku: str) -> ReconciledRow:
    day = normalize_day(for_date)
    sku_name = require_text(sku, "sku")
    row = db.session.query(LocationOrder).filter_by(for_date=day, sku_name=sku_name).first()
    carried = db.session.query(ExtraOrder).filter_by(for_date=previous_day(day), sku_name=sku_name).first()
    return compute_row(
        sku_name,
        row.quantities() if row else {},
        _resolve_previous_balance(row, float(carried.extra_order) if carried else None),
    )


def get_location_orders_for(for_date, location_label) -> dict[str, float]:
    """One location's column for a date as {sku: quantity}; unmapped labels give {}."""
    day = normalize_day(for_date)
    location = normalize_location(location_label)
    if location is Location.UNMAPPED:
        return {}
    return {
        name: float(getattr(row, location.column) or 0)
        for name, row in _order_rows(day).items()
    }


def day_location_total(for_date) -> float:
    """Sum of every location column across every SKU for a date."""
    return sum(row.location_sum() for row in _order_rows(normalize_day(for_date)).values())


# =============================================================================
# WRITES
# =============================================================================

def _get_or_create_order_row(session, day: str, sku_name: str) -> LocationOrder:
    row = session.query(LocationOrder).filter_by(for_date=day, sku_name=sku_name).first()
    if row is None:
        row = LocationOrder(for_date=day, sku_name=sku_name)
        for column in LOCATION_COLUMNS:
            setattr(row, column, 0.0)
        session.add(row)
    row.day_of_week = day_of_week(day)
    return row


def _store_carries(session, day: str, sku_name: str, computed: ReconciledRow) -> None:
    tpu = trays_per_unit(sku_name)

    extra = session.query(ExtraOrder).filter_by(for_date=day, sku_name=sku_name).first()
    if extra is None:
        extra = ExtraOrder(for_date=day, sku_name=sku_name)
        session.add(extra)
    extra.day_of_week = day_of_week(day)
    extra.extra_order = tray_split(computed.total_quantity, tpu)[1]

    # Same value as extra_order today; kept separate for the main table
    remark_plus = tray_split(computed.location_sum, tpu)[1]
    carry = session.query(RemarkCarry).filter_by(for_date=day, sku_name=sku_name).first()
    if remark_plus > 0:
        if carry is None:
            carry = RemarkCarry(for_date=day, sku_name=sku_name)
            session.add(carry)
        carry.day_of_week = day_of_week(day)
        carry.remark_plus_value = remark_plus
    elif carry is not None:
        session.delete(carry)


def record_location_order(for_date, sku: str, location, quantity) -> ReconciledRow:
    """
    Admin edit of one location's order for one (date, SKU).

    Persists the value, recomputes the row, stores both next-day carries, and
    then projects the quantity onto the location's workers' pending sheets.

    Raises:
        ValidationError: bad date, unknown location or non-numeric quantity
    """
    day = normalize_day(for_date)
    sku_name = require_text(sku, "sku")
    loc = normalize_location(location)
    if loc is Location.UNMAPPED:
        raise ValidationError(f"Unknown location: {location}")
    qty = coerce_number(quantity, "quantity")

    with atomic() as session:
        row = _get_or_create_order_row(session, day, sku_name)
        setattr(row, loc.column, qty)
        session.flush()
        _store_carries(session, day, sku_name, compute_row(sku_name, row.quantities()))

    with best_effort(current_app.logger, f"Order projection failed for {sku_name} at {loc.value} on {day}"):
        project_location_order(day, sku_name, loc, qty)

    return get_reconciled_row(day, sku_name)


def set_previous_balance(for_date, sku: str, value) -> ReconciledRow:
    """
    Explicit previous balance for one (date, SKU). Once set it is never
    replaced by the carry. Passing None clears it back to the carry.
    """
    day = normalize_day(for_date)
    sku_name = require_text(sku, "sku")
    balance = None if value is None else coerce_number(value, "previous_balance")

    with atomic() as session:
        row = _get_or_create_order_row(session, day, sku_name)
        row.previous_balance = balance
    return get_reconciled_row(day, sku_name)


# =============================================================================
# PROJECTIONS
# =============================================================================

def workers_for_location(location: Location) -> list[User]:
    workers = db.session.query(User).filter_by(role=ROLE_WORKER).all()
    return [w for w in workers if normalize_location(w.label) is location]


def project_location_order(for_date: str, sku_name: str, location: Location, quantity: float) -> int:
    """
    Write an admin location order into the mapped workers' pending lines.

    Only positive quantities are projected. Each touched line's sale and
    amount are recomputed along with its submission totals.

    Returns the number of lines written.

    Raises:
        SyncError: no worker is mapped to the location
    """
    from .submission_service import apply_line_quantities, recompute_totals

    workers = workers_for_location(location)
    if not workers:
        raise SyncError(f"No worker mapped to location {location.value}")
    if quantity <= 0:
        return 0

    touched = 0
    submissions = db.session.query(Submission).filter(
        Submission.user_id.in_([w.id for w in workers]),
        Submission.for_date == for_date,
        Submission.status == STATUS_PENDING,
    ).all()
    for submission in submissions:
        changed = False
        for line in submission.lines:
            if line.name != sku_name:
                continue
            apply_line_quantities(line, sku=quantity, mr=line.mr, fr=line.fr, rate=line.delivery_rate)
            changed = True
            touched += 1
        if changed:
            recompute_totals(submission)
    db.session.commit()
    return touched


def sync_worker_orders(for_date, location_label, lines: Iterable) -> int:
    """
    Copy a worker's positive "ordering" values into their location column.

    Lines may be dicts or SubmissionLine rows. An unmapped or blank location
    logs a warning and writes nothing. Returns the number of SKUs written.
    """
    day = normalize_day(for_date)
    location = normalize_location(location_label)
    if location is Location.UNMAPPED:
        current_app.logger.warning(
            "Location %r does not map to an order column; ordering not synced", location_label
        )
        return 0

    written = 0
    for line in lines:
        name = line.get("name") if isinstance(line, dict) else line.name
        ordering = line.get("ordering") if isinstance(line, dict) else line.ordering
        value = parse_order_value(ordering)
        if not name or value is None:
            continue
        row = _get_or_create_order_row(db.session, day, name.strip())
        setattr(row, location.column, value)
        written += 1
    db.session.commit()
    return written
