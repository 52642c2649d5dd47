from __future__ import annotations

from ..extensions import db
from bakeledger.time_utils import to_utc_z

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"


class Submission(db.Model):
    """
    A worker's daily sale sheet.

    WHY many rows per (worker, date): a later send supersedes an earlier one
    without replacing it. Readers that need one row keep the most recently
    created per (date, location).

    Lifecycle: pending -> approved, one way.
    """
    __tablename__ = "submissions"
    __table_args__ = (
        db.Index("ix_submissions_status_date", "status", "for_date"),
        db.Index("ix_submissions_user_date", "user_id", "for_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # Worker label at submit time
    location = db.Column(db.String(64), nullable=True)

    for_date = db.Column(db.String(10), nullable=False)
    day_of_week = db.Column(db.String(16), nullable=True)

    total_sku = db.Column(db.Float, nullable=False, default=0)
    total_mr = db.Column(db.Float, nullable=False, default=0)
    total_fr = db.Column(db.Float, nullable=False, default=0)
    total_sale = db.Column(db.Float, nullable=False, default=0)
    total_amount = db.Column(db.Float, nullable=False, default=0)

    cash = db.Column(db.Float, nullable=False, default=0)
    online = db.Column(db.Float, nullable=False, default=0)
    previous_balance = db.Column(db.Float, nullable=False, default=0)
    total_due = db.Column(db.Float, nullable=False, default=0)
    remaining_due = db.Column(db.Float, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Submissions outlive a deleted worker
    user = db.relationship("User", backref=db.backref("submissions", lazy=True, passive_deletes="all"))
    lines = db.relationship(
        "SubmissionLine",
        backref="submission",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SubmissionLine.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "location": self.location,
            "for_date": self.for_date,
            "day_of_week": self.day_of_week,
            "total_sku": self.total_sku,
            "total_mr": self.total_mr,
            "total_fr": self.total_fr,
            "total_sale": self.total_sale,
            "total_amount": self.total_amount,
            "cash": self.cash,
            "online": self.online,
            "previous_balance": self.previous_balance,
            "total_due": self.total_due,
            "remaining_due": self.remaining_due,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class SubmissionLine(db.Model):
    """
    One SKU on a submission.

    sale = sku - mr - fr (may go negative when returns exceed the quantity)
    amount = sale * delivery_rate, where delivery_rate is the worker's
    buyback rate captured at submit time.
    ordering is the worker's next-day order request, kept as typed.
    """
    __tablename__ = "submission_lines"
    __table_args__ = (
        db.Index("ix_submission_lines_submission_name", "submission_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(db.Integer, db.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(64), nullable=False)

    sku = db.Column(db.Float, nullable=True)
    mr = db.Column(db.Float, nullable=True)
    fr = db.Column(db.Float, nullable=True)
    delivery_rate = db.Column(db.Float, nullable=True)
    sale = db.Column(db.Float, nullable=True)
    amount = db.Column(db.Float, nullable=True)
    ordering = db.Column(db.String(32), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "name": self.name,
            "sku": self.sku,
            "mr": self.mr,
            "fr": self.fr,
            "delivery_rate": self.delivery_rate,
            "sale": self.sale,
            "amount": self.amount,
            "ordering": self.ordering,
        }
