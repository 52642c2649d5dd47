# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import User, Submission, SubmissionLine
from ..models.auth import ROLE_WORKER
from ..models.submissions import STATUS_APPROVED, STATUS_PENDING
from ..time_utils import normalize_day
from ..validation import ValidationError, parse_order_value
from .catalog_service import ordered_sku_names
from .reconciliation_service import day_location_total
from .submission_service import list_pending_submissions
from .user_service import list_workers


# Column order of each exported table
SUBMISSION_COLUMNS = (
    "id", "for_date", "worker", "status",
    "total_sku", "total_mr", "total_fr", "total_sale", "total_amount",
    "cash", "online", "previous_balance", "total_due", "remaining_due",
)
LINE_COLUMNS = ("submission_id", "name", "sku", "mr", "fr", "delb_rate", "sale", "amount", "ordering")
TOTALS_COLUMNS = ("name", "t_sku", "t_mr", "t_fr", "t_sale", "amount")
SUMMARY_COLUMNS = ("range_start", "range_end", "num_submissions")


def _worker_label_expr():
    return func.coalesce(User.location, User.username)


def _display_rank():
    order = {name: index for index, name in enumerate(ordered_sku_names())}
    return lambda name: (order.get(name, len(order)), name)


def _parse_range(start, end) -> tuple[str, str]:
    start_day = normalize_day(start)
    end_day = normalize_day(end)
    if start_day > end_day:
        raise ValidationError("start must not be after end")
    return start_day, end_day


def approved_totals_by_sku(for_date=None, *, start=None, end=None) -> list[dict]:
    """Sums over approved lines grouped by SKU, in display order."""
    query = db.session.query(
        SubmissionLine.name.label("name"),
        func.coalesce(func.sum(SubmissionLine.sku), 0).label("t_sku"),
        func.coalesce(func.sum(SubmissionLine.mr), 0).label("t_mr"),
        func.coalesce(func.sum(SubmissionLine.fr), 0).label("t_fr"),
        func.coalesce(func.sum(SubmissionLine.sale), 0).label("t_sale"),
        func.coalesce(func.sum(SubmissionLine.amount), 0).label("amount"),
    ).join(Submission, Submission.id == SubmissionLine.submission_id).filter(
        Submission.status == STATUS_APPROVED,
    )
    if for_date is not None:
        query = query.filter(Submission.for_date == normalize_day(for_date))
    if start is not None and end is not None:
        start_day, end_day = _parse_range(start, end)
        query = query.filter(Submission.for_date >= start_day, Submission.for_date <= end_day)

    rows = query.group_by(SubmissionLine.name).all()
    rank = _display_rank()
    return sorted(
        (
            {
                "name": row.name,
                "t_sku": float(row.t_sku or 0),
                "t_mr": float(row.t_mr or 0),
                "t_fr": float(row.t_fr or 0),
                "t_sale": float(row.t_sale or 0),
                "amount": float(row.amount or 0),
            }
            for row in rows
        ),
        key=lambda r: rank(r["name"]),
    )


def mr_ranking(for_date=None) -> list[dict]:
    """
    Workers ranked by market-return share of quantity taken, lowest first.

    mr_percent = mr_total / sku_total * 100, and 0 when sku_total is 0.
    Ties sort by worker label.
    """
    worker = _worker_label_expr().label("worker")
    query = db.session.query(
        User.id.label("user_id"),
        worker,
        func.coalesce(func.sum(SubmissionLine.mr), 0).label("mr_total"),
        func.coalesce(func.sum(SubmissionLine.sku), 0).label("sku_total"),
    ).join(Submission, Submission.user_id == User.id).join(
        SubmissionLine, SubmissionLine.submission_id == Submission.id
    ).filter(Submission.status == STATUS_APPROVED)
    if for_date is not None:
        query = query.filter(Submission.for_date == normalize_day(for_date))

    ranking = []
    for row in query.group_by(User.id, worker).all():
        mr_total = float(row.mr_total or 0)
        sku_total = float(row.sku_total or 0)
        ranking.append({
            "user_id": row.user_id,
            "worker": row.worker,
            "mr_total": mr_total,
            "sku_total": sku_total,
            "mr_percent": (mr_total / sku_total * 100.0) if sku_total else 0.0,
        })
    ranking.sort(key=lambda r: (r["mr_percent"], r["worker"]))
    return ranking


def submissions_in_range(start, end) -> list[dict]:
    """Every submission (any status) dated within [start, end], oldest first."""
    start_day, end_day = _parse_range(start, end)
    worker = _worker_label_expr().label("worker")
    rows = (
        db.session.query(Submission, worker)
        .join(User, User.id == Submission.user_id)
        .filter(Submission.for_date >= start_day, Submission.for_date <= end_day)
        .order_by(Submission.for_date.asc(), worker.asc(), Submission.id.asc())
        .all()
    )
    result = []
    for submission, label in rows:
        data = submission.to_dict()
        data["worker"] = label
        result.append(data)
    return result


def export_range(start, end) -> dict[str, list[dict]]:
    """
    Tabular rows for a date range: submissions, their lines, approved totals
    by SKU and a one-row summary. Writing files is left to the caller.
    """
    start_day, end_day = _parse_range(start, end)
    submissions = submissions_in_range(start_day, end_day)

    submission_rows = []
    line_rows = []
    ids = [s["id"] for s in submissions]
    lines_by_submission: dict[int, list[SubmissionLine]] = {}
    if ids:
        for line in (
            db.session.query(SubmissionLine)
            .filter(SubmissionLine.submission_id.in_(ids))
            .order_by(SubmissionLine.submission_id.asc(), SubmissionLine.id.asc())
            .all()
        ):
            lines_by_submission.setdefault(line.submission_id, []).append(line)

    for s in submissions:
        submission_rows.append({col: (s[col] if s[col] is not None else 0) for col in SUBMISSION_COLUMNS})
        for line in lines_by_submission.get(s["id"], []):
            line_rows.append({
                "submission_id": s["id"],
                "name": line.name,
                "sku": line.sku or 0,
                "mr": line.mr or 0,
                "fr": line.fr or 0,
                "delb_rate": line.delivery_rate or 0,
                "sale": line.sale or 0,
                "amount": line.amount or 0,
                "ordering": line.ordering or "",
            })

    return {
        "submissions": submission_rows,
        "lines": line_rows,
        "totals": approved_totals_by_sku(start=start_day, end=end_day),
        "summary": [{
            "range_start": start_day,
            "range_end": end_day,
            "num_submissions": len(submissions),
        }],
    }


def submission_status_for_date(for_date) -> list[dict]:
    """Every worker with whether they have sent anything for the date."""
    day = normalize_day(for_date)
    submitted = {
        row[0]
        for row in db.session.query(Submission.user_id).filter(Submission.for_date == day).distinct().all()
    }
    return [
        {"id": w.id, "worker": w.label, "submitted": w.id in submitted}
        for w in list_workers()
    ]


def approval_detail(submission_id: int) -> list[dict] | None:
    """
    Per-line review figures for one submission.

    mr_value = mr * sku, fr_value = fr * sku, and percentage =
    amount / sale * 100 rounded to 2 places (0 unless sale is positive).
    """
    if db.session.get(Submission, submission_id) is None:
        return None
    lines = (
        db.session.query(SubmissionLine)
        .filter_by(submission_id=submission_id)
        .order_by(SubmissionLine.id.asc())
        .all()
    )
    rank = _display_rank()

    detail = []
    for line in sorted(lines, key=lambda l: rank(l.name)):
        sku = float(line.sku or 0)
        mr = float(line.mr or 0)
        fr = float(line.fr or 0)
        sale = float(line.sale or 0)
        amount = float(line.amount or 0)
        detail.append({
            "sku_name": line.name,
            "sku": sku,
            "mr": mr,
            "fr": fr,
            "db_rate": float(line.delivery_rate or 0),
            "sale": sale,
            "mr_value": mr * sku,
            "fr_value": fr * sku,
            "sale_amount": amount,
            "percentage": round(amount / sale * 100, 2) if sale > 0 else 0.0,
            "ordering": line.ordering,
        })
    return detail


def pending_day_summary(for_date) -> dict:
    """
    Sums over the newest pending submission per location for a date.

    remark_left is the day's total location order minus what the workers
    ordered.
    """
    day = normalize_day(for_date)
    submissions = list_pending_submissions(day, latest_only=True)

    totals = {"sku": 0.0, "mr": 0.0, "fr": 0.0, "sale": 0.0, "amount": 0.0, "order": 0.0}
    for submission in submissions:
        for line in submission.lines:
            totals["sku"] += float(line.sku or 0)
            totals["mr"] += float(line.mr or 0)
            totals["fr"] += float(line.fr or 0)
            totals["sale"] += float(line.sale or 0)
            totals["amount"] += float(line.amount or 0)
            totals["order"] += parse_order_value(line.ordering) or 0.0

    return {
        "for_date": day,
        "submissions": len(submissions),
        **totals,
        "remark_left": day_location_total(day) - totals["order"],
    }


def status_counts() -> dict[str, int]:
    rows = (
        db.session.query(Submission.status, func.count(Submission.id))
        .group_by(Submission.status)
        .all()
    )
    counts = {STATUS_PENDING: 0, STATUS_APPROVED: 0}
    counts.update({status: int(count) for status, count in rows})
    return counts


def worker_count() -> int:
    return db.session.query(User).filter_by(role=ROLE_WORKER).count()
