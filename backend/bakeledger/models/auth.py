from __future__ import annotations

from ..extensions import db
from bakeledger.time_utils import to_utc_z

ROLE_WORKER = "worker"
ROLE_SUPERVISOR = "supervisor"
ROLE_ADMIN = "admin"

VALID_ROLES = (ROLE_WORKER, ROLE_SUPERVISOR, ROLE_ADMIN)


class User(db.Model):
    """
    Application user.

    Workers carry a location label; it is both the human-facing worker name
    on every sheet and the key into the location order columns.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_WORKER)
    location = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def label(self) -> str:
        return self.location or self.username

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "location": self.location,
            "label": self.label,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
