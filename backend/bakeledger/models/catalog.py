from __future__ import annotations

from ..extensions import db


class SkuSequence(db.Model):
    """
    Admin-editable display position of a SKU.

    Positions are not unique and need not be contiguous. Catalog SKUs without
    a row here are listed after every sequenced SKU.
    """
    __tablename__ = "sku_sequences"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_sku_sequences_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    seq = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {"name": self.name, "seq": self.seq}
