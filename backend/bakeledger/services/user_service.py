# Overview: Service-layer operations for users and workers; encapsulates business logic and database work.

"""
Users & Workers

WHY: Workers are the unit every sale sheet, rate and submission hangs off.
A worker's location label doubles as the worker name on every screen and as
the key into the location order columns.

SECURITY:
- Passwords hashed with bcrypt; cost factor from BCRYPT_ROUNDS
- Plaintext passwords never stored or logged
"""

from __future__ import annotations

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, WorkerRate
from ..models.auth import ROLE_WORKER, ROLE_ADMIN, VALID_ROLES
from ..locations import WORKER_SEQUENCE
from ..time_utils import utcnow
from ..validation import ValidationError, require_text
from .concurrency import atomic


def hash_password(password: str) -> str:
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_user(username: str, password: str, role: str = ROLE_WORKER, location: str | None = None) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValidationError: empty username or password, invalid role, or a
            username that already exists
    """
    name = require_text(username, "username")
    if not password:
        raise ValidationError("password is required")
    if role not in VALID_ROLES:
        raise ValidationError(f"Invalid role: {role}. Must be one of {list(VALID_ROLES)}")

    if db.session.query(User).filter_by(username=name).first():
        raise ValidationError(f"Username '{name}' already exists")

    # Only workers carry a location
    loc = None
    if role == ROLE_WORKER and location is not None:
        loc = location.strip() or None

    user = User(
        username=name,
        password_hash=hash_password(password),
        role=role,
        location=loc,
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Created %s user %s", role, name)
    return user


def authenticate(username: str, password: str) -> User | None:
    user = db.session.query(User).filter_by(username=(username or "").strip()).first()
    if not user or not verify_password(password or "", user.password_hash):
        return None
    user.last_login_at = utcnow()
    db.session.commit()
    return user


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def get_worker(worker_id: int) -> User | None:
    user = db.session.get(User, worker_id)
    if user is None or user.role != ROLE_WORKER:
        return None
    return user


def worker_label(user: User) -> str:
    return user.label


def _worker_sort_key(user: User) -> tuple:
    label = user.label.strip().lower()
    if label in WORKER_SEQUENCE:
        return (0, WORKER_SEQUENCE.index(label), label)
    return (1, 0, label)


def list_workers() -> list[User]:
    """Workers in the fixed location sequence; other labels alphabetically after."""
    workers = db.session.query(User).filter_by(role=ROLE_WORKER).all()
    return sorted(workers, key=_worker_sort_key)


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.role.asc(), User.username.asc()).all()


def update_user_location(user_id: int, location: str | None) -> User | None:
    user = db.session.get(User, user_id)
    if user is None:
        return None
    user.location = (location.strip() or None) if location is not None else None
    db.session.commit()
    return user


def delete_user(user_id: int) -> bool:
    """Delete a user and their rates. Returns False when the id is unknown."""
    with atomic() as session:
        user = session.get(User, user_id)
        if user is None:
            return False
        session.query(WorkerRate).filter_by(worker_id=user_id).delete(synchronize_session=False)
        session.delete(user)
    return True


def count_admins() -> int:
    return db.session.query(User).filter_by(role=ROLE_ADMIN).count()
