# Overview: Service-layer operations for worker rates; encapsulates business logic and database work.

"""
Rate Registry

WHY: Each worker has their own price per SKU. The retail rate is what the
shop charges; the buyback ("DB") rate is what a worker's payable amount is
computed with.

DESIGN PRINCIPLES:
- One row per (worker, SKU); NULL column = rate never set, read as 0
- Retail and buyback columns are written by separate upsert paths
- Bulk application targets either every worker or exactly one
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from flask import current_app

from ..extensions import db
from ..models import User, WorkerRate
from ..models.auth import ROLE_WORKER
from ..validation import ValidationError, coerce_number, require_text
from .concurrency import atomic


# =============================================================================
# RATE KINDS (CONSTANTS)
# =============================================================================

KIND_RETAIL = "retail"
KIND_BUYBACK = "buyback"

_KIND_COLUMNS = {
    KIND_RETAIL: "retail_rate",
    KIND_BUYBACK: "buyback_rate",
}


@dataclass(frozen=True)
class AllWorkers:
    """Apply to every worker."""


@dataclass(frozen=True)
class OneWorker:
    worker_id: int


Target = Union[AllWorkers, OneWorker]


def _column_for(kind: str) -> str:
    try:
        return _KIND_COLUMNS[kind]
    except KeyError:
        raise ValidationError(f"Invalid rate kind: {kind}. Must be one of {list(_KIND_COLUMNS)}")


def _worker_exists(worker_id: int) -> bool:
    return db.session.query(User.id).filter_by(id=worker_id, role=ROLE_WORKER).first() is not None


# =============================================================================
# READS
# =============================================================================

def _rates_for(worker_id: int, column: str) -> dict[str, float]:
    rows = db.session.query(WorkerRate).filter_by(worker_id=worker_id).all()
    return {row.sku_name: float(getattr(row, column) or 0) for row in rows}


def get_rates(worker_id: int) -> dict[str, float]:
    """Retail rate per SKU; unset rates read as 0."""
    return _rates_for(worker_id, "retail_rate")


def get_buyback_rates(worker_id: int) -> dict[str, float]:
    """Buyback rate per SKU; unset rates read as 0."""
    return _rates_for(worker_id, "buyback_rate")


def get_buyback_rate(worker_id: int, sku_name: str) -> float:
    row = db.session.query(WorkerRate).filter_by(worker_id=worker_id, sku_name=sku_name).first()
    if row is None or row.buyback_rate is None:
        return 0.0
    return float(row.buyback_rate)


# =============================================================================
# WRITES
# =============================================================================

def _upsert_column(session, worker_id: int, sku_name: str, column: str, rate: float) -> WorkerRate:
    row = session.query(WorkerRate).filter_by(worker_id=worker_id, sku_name=sku_name).first()
    if row is None:
        row = WorkerRate(worker_id=worker_id, sku_name=sku_name)
        session.add(row)
    setattr(row, column, rate)
    return row


def _set(worker_id: int, sku: str, rate, column: str) -> WorkerRate | None:
    sku_name = require_text(sku, "sku")
    value = coerce_number(rate, "rate")
    if not _worker_exists(worker_id):
        return None
    row = _upsert_column(db.session, worker_id, sku_name, column, value)
    db.session.commit()
    return row


def set_rate(worker_id: int, sku: str, rate) -> WorkerRate | None:
    """Upsert the retail rate only. Returns None for an unknown worker."""
    return _set(worker_id, sku, rate, "retail_rate")


def set_buyback_rate(worker_id: int, sku: str, rate) -> WorkerRate | None:
    """Upsert the buyback rate only. Returns None for an unknown worker."""
    return _set(worker_id, sku, rate, "buyback_rate")


def apply_rate(
    target: Target,
    sku: str,
    rate,
    *,
    kind: str = KIND_RETAIL,
    preserve_existing: bool = True,
) -> int | None:
    """
    Apply one rate to a set of workers.

    WHY one transaction: a failure for any worker rolls back the whole batch,
    so a bulk change is never left half applied.

    Args:
        target: AllWorkers() or OneWorker(worker_id)
        kind: KIND_RETAIL or KIND_BUYBACK
        preserve_existing: skip workers whose column is already set

    Returns:
        Number of workers written, or None when a OneWorker id is unknown
    """
    column = _column_for(kind)
    sku_name = require_text(sku, "sku")
    value = coerce_number(rate, "rate")

    if isinstance(target, OneWorker):
        if not _worker_exists(target.worker_id):
            return None
        worker_ids = [target.worker_id]
    elif isinstance(target, AllWorkers):
        worker_ids = [row[0] for row in db.session.query(User.id).filter_by(role=ROLE_WORKER).all()]
    else:
        raise ValidationError("target must be AllWorkers() or OneWorker(worker_id)")

    written = 0
    with atomic() as session:
        existing = {
            row.worker_id: row
            for row in session.query(WorkerRate).filter(
                WorkerRate.sku_name == sku_name,
                WorkerRate.worker_id.in_(worker_ids),
            ).all()
        }
        for worker_id in worker_ids:
            row = existing.get(worker_id)
            if preserve_existing and row is not None and getattr(row, column) is not None:
                continue
            _upsert_column(session, worker_id, sku_name, column, value)
            written += 1

    current_app.logger.info(
        "Applied %s rate %s for %s to %d worker(s)", kind, value, sku_name, written
    )
    return written


def apply_rate_to_all(sku: str, rate, preserve_existing: bool = True) -> int:
    return apply_rate(AllWorkers(), sku, rate, kind=KIND_RETAIL, preserve_existing=preserve_existing)


def apply_buyback_rate_to_all(sku: str, rate, preserve_existing: bool = True) -> int:
    return apply_rate(AllWorkers(), sku, rate, kind=KIND_BUYBACK, preserve_existing=preserve_existing)
