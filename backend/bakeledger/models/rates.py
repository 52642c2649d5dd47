from __future__ import annotations

from ..extensions import db


class WorkerRate(db.Model):
    """
    Per-worker, per-SKU pricing.

    retail_rate: consumer-facing delivery rate shown on the sheet.
    buyback_rate: the "DB rate" a worker's payable amount is computed with.

    NULL means the rate was never set for that worker; readers treat it as 0.
    Each column has its own upsert path so writing one never clobbers the other.
    """
    __tablename__ = "worker_rates"
    __table_args__ = (
        db.UniqueConstraint("worker_id", "sku_name", name="uq_worker_rates_worker_sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    sku_name = db.Column(db.String(64), nullable=False)

    retail_rate = db.Column(db.Float, nullable=True)
    buyback_rate = db.Column(db.Float, nullable=True)

    worker = db.relationship("User", backref=db.backref("rates", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "worker_id": self.worker_id,
            "sku_name": self.sku_name,
            "retail_rate": self.retail_rate,
            "buyback_rate": self.buyback_rate,
        }
