# Overview: Service-layer operations for worker submissions; encapsulates business logic and database work.

"""
Submission Ledger

WHY: Each worker sends one sale sheet per day: quantities taken (sku),
returns (mr, fr), and how the day was paid. Admins and supervisors review
and approve.

DESIGN PRINCIPLES:
- sale = sku - mr - fr and amount = sale * buyback rate, never clamped
- The buyback rate is captured on the line at submit time
- A later send for the same day is a new row; readers keep the newest
- Status moves pending -> approved only
- Header + lines are one transaction; the order sync afterwards is best-effort
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from flask import current_app

from ..extensions import db
from ..models import User, Submission, SubmissionLine, LocationOrder
from ..models.submissions import STATUS_PENDING, STATUS_APPROVED
from ..locations import Location, normalize_location
from ..time_utils import day_of_week, normalize_day, previous_day
from ..validation import ValidationError, coerce_number, format_quantity, parse_order_value, require_text
from .concurrency import atomic, best_effort
from .rate_service import get_buyback_rate, get_buyback_rates, get_rates
from .catalog_service import ordered_sku_names


# =============================================================================
# LINE ARITHMETIC
# =============================================================================

def compute_line(sku: float, mr: float, fr: float, rate: float) -> tuple[float, float]:
    """(sale, amount). Returns above the quantity taken give a negative sale."""
    sale = sku - mr - fr
    return sale, sale * rate


def apply_line_quantities(line: SubmissionLine, *, sku, mr, fr, rate) -> SubmissionLine:
    """Set a line's inputs and recompute its sale and amount in place."""
    line.sku = float(sku or 0)
    line.mr = float(mr or 0)
    line.fr = float(fr or 0)
    line.delivery_rate = float(rate or 0)
    line.sale, line.amount = compute_line(line.sku, line.mr, line.fr, line.delivery_rate)
    return line


def recompute_totals(submission: Submission) -> Submission:
    """
    Re-sum a submission's lines into its header (in session, no commit).

    total_due and remaining_due follow the new total_amount; cash, online and
    previous_balance are kept.
    """
    lines = list(submission.lines)
    submission.total_sku = sum(float(l.sku or 0) for l in lines)
    submission.total_mr = sum(float(l.mr or 0) for l in lines)
    submission.total_fr = sum(float(l.fr or 0) for l in lines)
    submission.total_sale = sum(float(l.sale or 0) for l in lines)
    submission.total_amount = sum(float(l.amount or 0) for l in lines)
    submission.total_due = float(submission.previous_balance or 0) + submission.total_amount
    submission.remaining_due = (
        submission.total_due - float(submission.cash or 0) - float(submission.online or 0)
    )
    return submission


def _normalize_ordering(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return format_quantity(value)
    text = str(value).strip()
    return text or None


def _field(line: Any, key: str, default=None):
    if isinstance(line, Mapping):
        return line.get(key, default)
    return getattr(line, key, default)


# =============================================================================
# SUBMIT
# =============================================================================

def submit_daily_entry(
    worker_id: int,
    for_date,
    lines: Iterable,
    payments: Mapping[str, Any] | None = None,
) -> int | None:
    """
    Record a worker's daily sale sheet.

    WHY one transaction: the header totals are sums over the lines, so a
    header without its lines is never persisted.

    Args:
        lines: dicts (or objects) with name, sku, mr, fr and optional ordering
        payments: optional cash, online and previous_balance

    Returns:
        The new submission id, or None when the worker does not exist

    Raises:
        ValidationError: bad date, empty line name or non-numeric value
            (before any write)
    """
    day = normalize_day(for_date)
    payments = payments or {}

    # Validate everything before touching the database
    parsed = []
    for line in lines:
        parsed.append({
            "name": require_text(_field(line, "name"), "line name"),
            "sku": coerce_number(_field(line, "sku"), "sku", default=0),
            "mr": coerce_number(_field(line, "mr"), "mr", default=0),
            "fr": coerce_number(_field(line, "fr"), "fr", default=0),
            "ordering": _normalize_ordering(_field(line, "ordering")),
        })
    cash = coerce_number(payments.get("cash"), "cash", default=0)
    online = coerce_number(payments.get("online"), "online", default=0)
    previous_balance = coerce_number(payments.get("previous_balance"), "previous_balance", default=0)

    worker = db.session.get(User, worker_id)
    if worker is None:
        return None

    rates = get_buyback_rates(worker_id)

    with atomic() as session:
        submission = Submission(
            user_id=worker.id,
            location=worker.label,
            for_date=day,
            day_of_week=day_of_week(day),
            status=STATUS_PENDING,
            cash=cash,
            online=online,
            previous_balance=previous_balance,
        )
        session.add(submission)
        for item in parsed:
            line = SubmissionLine(name=item["name"], ordering=item["ordering"])
            apply_line_quantities(
                line, sku=item["sku"], mr=item["mr"], fr=item["fr"], rate=rates.get(item["name"], 0.0)
            )
            submission.lines.append(line)
        recompute_totals(submission)
        session.flush()
        submission_id = submission.id

    current_app.logger.info(
        "Submission %d recorded for %s on %s (%d lines)", submission_id, worker.label, day, len(parsed)
    )

    from .reconciliation_service import sync_worker_orders

    with best_effort(current_app.logger, f"Order sync failed for submission {submission_id}"):
        sync_worker_orders(day, worker.label, parsed)

    return submission_id


def create_empty_submission(worker_id: int, for_date) -> int | None:
    """Pending header with no lines; lines are added with the upsert helpers."""
    day = normalize_day(for_date)
    worker = db.session.get(User, worker_id)
    if worker is None:
        return None
    submission = Submission(
        user_id=worker.id,
        location=worker.label,
        for_date=day,
        day_of_week=day_of_week(day),
        status=STATUS_PENDING,
    )
    db.session.add(submission)
    db.session.commit()
    return submission.id


def find_submission_id(worker_id: int, for_date) -> int | None:
    """Newest submission id for a worker and date."""
    day = normalize_day(for_date)
    row = (
        db.session.query(Submission.id)
        .filter_by(user_id=worker_id, for_date=day)
        .order_by(Submission.created_at.desc(), Submission.id.desc())
        .first()
    )
    return row[0] if row else None


# =============================================================================
# READS
# =============================================================================

def get_submission(submission_id: int) -> Submission | None:
    return db.session.get(Submission, submission_id)


def list_lines(submission_id: int) -> list[SubmissionLine]:
    return (
        db.session.query(SubmissionLine)
        .filter_by(submission_id=submission_id)
        .order_by(SubmissionLine.id.asc())
        .all()
    )


def latest_per_location(submissions: Iterable[Submission]) -> list[Submission]:
    """Keep the most recently created row per (date, location), newest first."""
    newest: dict[tuple[str, str | None], Submission] = {}
    for s in submissions:
        key = (s.for_date, s.location)
        current = newest.get(key)
        if current is None or (s.created_at, s.id) > (current.created_at, current.id):
            newest[key] = s
    return sorted(newest.values(), key=lambda s: (s.created_at, s.id), reverse=True)


def list_pending_submissions(for_date=None, latest_only: bool = False) -> list[Submission]:
    """Pending submissions newest first, optionally for one date only."""
    query = db.session.query(Submission).filter(Submission.status == STATUS_PENDING)
    if for_date is not None:
        query = query.filter(Submission.for_date == normalize_day(for_date))
    rows = query.order_by(Submission.created_at.desc(), Submission.id.desc()).all()
    if latest_only:
        return latest_per_location(rows)
    return rows


def pending_count() -> int:
    return db.session.query(Submission).filter_by(status=STATUS_PENDING).count()


def get_worker_sheet(worker_id: int, for_date) -> list[dict] | None:
    """
    A worker's blank sale sheet for a date, one row per ordered SKU.

    sku is prefilled from the worker's positive "ordering" of the previous
    day; a positive admin order for the worker's location overrides it.
    Returns None for an unknown worker.
    """
    day = normalize_day(for_date)
    worker = db.session.get(User, worker_id)
    if worker is None:
        return None

    prefill: dict[str, float] = {}
    prev_lines = (
        db.session.query(SubmissionLine)
        .join(Submission, Submission.id == SubmissionLine.submission_id)
        .filter(Submission.user_id == worker_id, Submission.for_date == previous_day(day))
        .order_by(Submission.created_at.asc(), Submission.id.asc())
        .all()
    )
    for line in prev_lines:
        value = parse_order_value(line.ordering)
        if value is not None:
            prefill[line.name] = value

    location = normalize_location(worker.label)
    if location is not Location.UNMAPPED:
        for row in db.session.query(LocationOrder).filter_by(for_date=day).all():
            value = float(getattr(row, location.column) or 0)
            if value > 0:
                prefill[row.sku_name] = value

    retail = get_rates(worker_id)
    buyback = get_buyback_rates(worker_id)

    sheet = []
    for name in ordered_sku_names():
        sku = prefill.get(name, 0.0)
        rate = buyback.get(name, 0.0)
        sale, amount = compute_line(sku, 0.0, 0.0, rate)
        sheet.append({
            "name": name,
            "sku": sku,
            "mr": 0.0,
            "fr": 0.0,
            "retail_rate": retail.get(name, 0.0),
            "buyback_rate": rate,
            "sale": sale,
            "amount": amount,
            "ordering": None,
        })
    return sheet


# =============================================================================
# REVIEW & APPROVAL
# =============================================================================

def approve_submission(submission_id: int) -> Submission | None:
    """pending -> approved. Already approved is a no-op; unknown id returns None."""
    submission = db.session.get(Submission, submission_id)
    if submission is None:
        return None
    if submission.status != STATUS_APPROVED:
        submission.status = STATUS_APPROVED
        db.session.commit()
        current_app.logger.info("Submission %d approved", submission_id)
    return submission


def update_submission_payments(submission_id: int, cash, online, remaining=None) -> Submission | None:
    """
    Overwrite the payment split. When remaining is not given it is derived as
    total_due - cash - online (negative means overpaid).
    """
    cash_value = coerce_number(cash, "cash", default=0)
    online_value = coerce_number(online, "online", default=0)
    submission = db.session.get(Submission, submission_id)
    if submission is None:
        return None

    submission.cash = cash_value
    submission.online = online_value
    if remaining is None:
        submission.remaining_due = float(submission.total_due or 0) - cash_value - online_value
    else:
        submission.remaining_due = coerce_number(remaining, "remaining")
    db.session.commit()
    return submission


def _find_line(submission_id: int, name: str) -> SubmissionLine | None:
    return (
        db.session.query(SubmissionLine)
        .filter_by(submission_id=submission_id, name=name)
        .order_by(SubmissionLine.id.asc())
        .first()
    )


def upsert_submission_line(
    submission_id: int,
    name: str,
    *,
    sku=0,
    mr=0,
    fr=0,
    rate=None,
    ordering=None,
) -> SubmissionLine | None:
    """
    Full-row upsert keyed by (submission, name).

    sale and amount are recomputed from the given fields. With no rate the
    line keeps its stored rate (or the worker's current buyback rate for a
    new line). Header totals are not touched; call
    recompute_submission_totals when the edit is done.
    """
    line_name = require_text(name, "name")
    sku_value = coerce_number(sku, "sku", default=0)
    mr_value = coerce_number(mr, "mr", default=0)
    fr_value = coerce_number(fr, "fr", default=0)
    rate_value = None if rate is None else coerce_number(rate, "rate")

    submission = db.session.get(Submission, submission_id)
    if submission is None:
        return None

    line = _find_line(submission_id, line_name)
    if line is None:
        line = SubmissionLine(submission_id=submission_id, name=line_name)
        db.session.add(line)
    if rate_value is None:
        if line.delivery_rate is not None:
            rate_value = line.delivery_rate
        else:
            rate_value = get_buyback_rate(submission.user_id, line_name)

    apply_line_quantities(line, sku=sku_value, mr=mr_value, fr=fr_value, rate=rate_value)
    line.ordering = _normalize_ordering(ordering)
    db.session.commit()
    return line


def upsert_line_ordering(submission_id: int, name: str, ordering) -> SubmissionLine | None:
    """Set only the ordering cell of a line, creating the line if needed."""
    line_name = require_text(name, "name")
    if db.session.get(Submission, submission_id) is None:
        return None
    line = _find_line(submission_id, line_name)
    if line is None:
        line = SubmissionLine(submission_id=submission_id, name=line_name)
        db.session.add(line)
    line.ordering = _normalize_ordering(ordering)
    db.session.commit()
    return line


def recompute_submission_totals(submission_id: int) -> Submission | None:
    submission = db.session.get(Submission, submission_id)
    if submission is None:
        return None
    db.session.refresh(submission)
    recompute_totals(submission)
    db.session.commit()
    return submission


# =============================================================================
# RETENTION
# =============================================================================

def _delete_submissions(session, query) -> int:
    ids = [row[0] for row in query.with_entities(Submission.id).all()]
    if not ids:
        return 0
    # Lines first: SQLite does not enforce the FK cascade by default
    session.query(SubmissionLine).filter(SubmissionLine.submission_id.in_(ids)).delete(synchronize_session=False)
    session.query(Submission).filter(Submission.id.in_(ids)).delete(synchronize_session=False)
    return len(ids)


def expire_pending_before(cutoff) -> int:
    """
    Permanently delete pending submissions dated strictly before cutoff,
    with their lines. Approved rows are never touched.
    """
    day = normalize_day(cutoff)
    with atomic() as session:
        deleted = _delete_submissions(
            session,
            session.query(Submission).filter(
                Submission.status == STATUS_PENDING,
                Submission.for_date < day,
            ),
        )
    session.expire_all()
    if deleted:
        current_app.logger.info("Expired %d pending submission(s) before %s", deleted, day)
    return deleted
