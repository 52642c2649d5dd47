# Overview: Transaction boundaries for multi-statement mutations.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


@contextmanager
def atomic():
    """
    Run a unit of work as one transaction.

    Commits when the block exits normally. On any exception the session is
    rolled back and the original exception propagates unchanged.

    NOTE: there are no version columns and no retries; rows are
    last-writer-wins.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


@contextmanager
def best_effort(logger, message: str):
    """
    Run a side-effect step whose failure must not fail the caller.

    The step's own writes are rolled back and the failure is logged as a
    warning; the exception is not re-raised.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        logger.warning("%s: %s", message, exc)
