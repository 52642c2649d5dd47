# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..models import User, Submission, WorkerRate
from ..models.auth import ROLE_ADMIN
from ..models.submissions import STATUS_PENDING
from ..time_utils import normalize_day
from .catalog_service import _delete_name_in_session, _rename_in_session
from .concurrency import atomic
from .submission_service import _delete_submissions, expire_pending_before

__all__ = [
    "expire_pending_before",
    "clear_pending_submissions",
    "clear_operational_data",
    "cleanup_sku_names",
    "SKU_RENAMES",
    "RETIRED_SKU_NAMES",
]

# Old spellings folded into the catalog names
SKU_RENAMES = {
    "BR200": "BR 200",
    "MG200": "MG 200",
}

# Names no longer sold; removed from every table
RETIRED_SKU_NAMES = (
    "VV 250",
    "VV 450",
    "VV350",
    "AT 400",
    "BUM70",
    "AK",
    "MK",
    "BUR200",
    "BUR190",
    "PAV250",
    "GAP300",
    "B.BRW250",
    "V450",
    "CHD50",
    "MP150",
    "W D/DRY",
)


def clear_pending_submissions(for_date=None) -> int:
    """Delete pending submissions (optionally for one date) with their lines."""
    day = normalize_day(for_date) if for_date is not None else None
    with atomic() as session:
        query = session.query(Submission).filter(Submission.status == STATUS_PENDING)
        if day is not None:
            query = query.filter(Submission.for_date == day)
        deleted = _delete_submissions(session, query)
    session.expire_all()
    current_app.logger.info("Cleared %d pending submission(s)", deleted)
    return deleted


def clear_operational_data() -> dict[str, int]:
    """
    Wipe submissions, lines, rates and every non-admin user.

    The SKU sequence and order tables are kept.
    """
    with atomic() as session:
        submissions = _delete_submissions(session, session.query(Submission))
        rates = session.query(WorkerRate).delete(synchronize_session=False)
        users = session.query(User).filter(User.role != ROLE_ADMIN).delete(synchronize_session=False)
    session.expire_all()
    current_app.logger.warning(
        "Cleared operational data: %d submissions, %d rates, %d users", submissions, rates, users
    )
    return {"submissions": submissions, "rates": rates, "users": users}


def cleanup_sku_names() -> dict[str, int]:
    """
    Fold old SKU spellings into catalog names and drop retired SKUs, in one
    transaction across every table.
    """
    with atomic() as session:
        renamed = sum(_rename_in_session(session, old, new) for old, new in SKU_RENAMES.items())
        removed = sum(_delete_name_in_session(session, name) for name in RETIRED_SKU_NAMES)
    session.expire_all()
    current_app.logger.info("SKU cleanup: %d rows renamed, %d rows removed", renamed, removed)
    return {"renamed": renamed, "removed": removed}
