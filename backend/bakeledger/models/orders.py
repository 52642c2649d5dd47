from __future__ import annotations

from ..extensions import db
from bakeledger.locations import LOCATION_COLUMNS
from bakeledger.time_utils import to_utc_z


class LocationOrder(db.Model):
    """
    Admin order board: one row per (date, SKU), one column per sale location.

    previous_balance is NULL until an admin sets it explicitly. While NULL,
    readers substitute the prior day's extra-order carry; once set it is never
    recomputed.
    """
    __tablename__ = "location_orders"
    __table_args__ = (
        db.UniqueConstraint("for_date", "sku_name", name="uq_location_orders_date_sku"),
        db.Index("ix_location_orders_for_date", "for_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    for_date = db.Column(db.String(10), nullable=False)
    day_of_week = db.Column(db.String(16), nullable=True)
    sku_name = db.Column(db.String(64), nullable=False)

    prabhadevi_1 = db.Column(db.Float, nullable=False, default=0)
    prabhadevi_2 = db.Column(db.Float, nullable=False, default=0)
    parel = db.Column(db.Float, nullable=False, default=0)
    saat_rasta = db.Column(db.Float, nullable=False, default=0)
    sea_face = db.Column(db.Float, nullable=False, default=0)
    worli_bdd = db.Column(db.Float, nullable=False, default=0)
    worli_mix = db.Column(db.Float, nullable=False, default=0)
    matunga = db.Column(db.Float, nullable=False, default=0)
    mahim = db.Column(db.Float, nullable=False, default=0)
    koli_wada = db.Column(db.Float, nullable=False, default=0)

    previous_balance = db.Column(db.Float, nullable=True)

    def quantities(self) -> dict[str, float]:
        return {col: float(getattr(self, col) or 0) for col in LOCATION_COLUMNS}

    def location_sum(self) -> float:
        return sum(self.quantities().values())

    def to_dict(self) -> dict:
        return {
            "for_date": self.for_date,
            "day_of_week": self.day_of_week,
            "sku_name": self.sku_name,
            **self.quantities(),
            "previous_balance": self.previous_balance,
        }


class ExtraOrder(db.Model):
    """Whole-tray remainder of a day's total, opening balance of the next day's order row."""
    __tablename__ = "extra_orders"
    __table_args__ = (
        db.UniqueConstraint("for_date", "sku_name", name="uq_extra_orders_date_sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    for_date = db.Column(db.String(10), nullable=False, index=True)
    day_of_week = db.Column(db.String(16), nullable=True)
    sku_name = db.Column(db.String(64), nullable=False)
    extra_order = db.Column(db.Float, nullable=False, default=0)


class RemarkCarry(db.Model):
    """Remainder of the location sum, previous quantity of the next day's main table."""
    __tablename__ = "remark_carries"
    __table_args__ = (
        db.UniqueConstraint("for_date", "sku_name", name="uq_remark_carries_date_sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    for_date = db.Column(db.String(10), nullable=False, index=True)
    day_of_week = db.Column(db.String(16), nullable=True)
    sku_name = db.Column(db.String(64), nullable=False)
    remark_plus_value = db.Column(db.Float, nullable=False, default=0)


class MainTableRow(db.Model):
    """
    Admin tray planning sheet. A single snapshot per SKU, overwritten in place
    (not per date).
    """
    __tablename__ = "main_table_rows"
    __table_args__ = (
        db.UniqueConstraint("sku_name", name="uq_main_table_rows_sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku_name = db.Column(db.String(64), nullable=False)
    tray = db.Column(db.Float, nullable=False, default=0)
    tray_quantity = db.Column(db.Float, nullable=False, default=0)
    previous_quantity = db.Column(db.Float, nullable=False, default=0)
    total_quantity = db.Column(db.Float, nullable=False, default=0)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "sku_name": self.sku_name,
            "tray": self.tray,
            "tray_quantity": self.tray_quantity,
            "previous_quantity": self.previous_quantity,
            "total_quantity": self.total_quantity,
            "updated_at": to_utc_z(self.updated_at),
        }
