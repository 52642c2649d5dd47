# Overview: Service-layer operations for the SKU catalog; encapsulates business logic and database work.

"""
SKU Catalog & Sequencing

WHY: Every sheet lists the same fixed catalog of SKUs. Admins may reorder the
list; reordering never adds or removes a SKU.

DESIGN PRINCIPLES:
- The catalog and its tray sizes are static reference data
- Display order lives in sku_sequences and is read fresh on every call
- SKUs missing a sequence row are appended in catalog order
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import current_app

from ..extensions import db
from ..models import (
    SkuSequence,
    WorkerRate,
    LocationOrder,
    ExtraOrder,
    RemarkCarry,
    MainTableRow,
    SubmissionLine,
)
from ..validation import ValidationError, coerce_int, require_text
from .concurrency import atomic


# =============================================================================
# CATALOG (CONSTANTS)
# =============================================================================

# Units per tray ("jali"), in catalog declaration order
TRAYS_PER_UNIT: dict[str, int] = {
    "LARGE 350": 24,
    "ECO 800": 15,
    "HALF 150": 48,
    "POP 500": 20,
    "BR 400": 24,
    "FRT 200": 35,
    "H ATTA 200": 48,
    "MD 200": 42,
    "MG 400": 24,
    "WW 450": 24,
    "H SLICE 450": 15,
    "600 GM": 14,
    "BR 200": 48,
    "POP 250": 20,
    "MG 200": 24,
    "ATTA 400": 24,
    "BUM 70": 20,
    "A.KULCHA": 9,
    "M.KULCHA": 9,
    "BUR 200": 6,
    "BUR 100": 20,
    "PAV 250": 16,
    "GAR 300": 12,
    "BOMB.PAV": 6,
    "VAN 50": 30,
    "CHO 50": 30,
    "M PIZZA 150": 12,
    "M BUN": 1,
    "SLICE": 1,
    "D'nt Worry": 1,
    "FINGER": 1,
    "TOAST": 0,
    "C.ROLL": 0,
}

CATALOG: tuple[str, ...] = tuple(TRAYS_PER_UNIT)

DEFAULT_TRAYS_PER_UNIT = 1

DEFAULT_MAIN_BOUNDARY = "M PIZZA 150"


@dataclass(frozen=True)
class Sku:
    name: str
    sequence: int | None
    trays_per_unit: int

    def to_dict(self) -> dict:
        return {"name": self.name, "sequence": self.sequence, "trays_per_unit": self.trays_per_unit}


def trays_per_unit(name: str) -> int:
    """Units per tray for a SKU; unknown names count as 1."""
    return TRAYS_PER_UNIT.get(name, DEFAULT_TRAYS_PER_UNIT)


def _catalog_position(name: str) -> int:
    try:
        return CATALOG.index(name)
    except ValueError:
        return len(CATALOG)


# =============================================================================
# SEQUENCING
# =============================================================================

def list_skus_ordered() -> list[Sku]:
    """
    Every SKU in display order.

    Sequenced names sort by position ascending. Equal positions keep catalog
    order (then name, for names outside the catalog). Catalog SKUs without a
    sequence row follow in declaration order.
    """
    rows = db.session.query(SkuSequence).all()
    rows.sort(key=lambda r: (r.seq, _catalog_position(r.name), r.name))

    result = [Sku(name=r.name, sequence=r.seq, trays_per_unit=trays_per_unit(r.name)) for r in rows]
    seen = {r.name for r in rows}
    for name in CATALOG:
        if name not in seen:
            result.append(Sku(name=name, sequence=None, trays_per_unit=trays_per_unit(name)))
    return result


def ordered_sku_names() -> list[str]:
    return [sku.name for sku in list_skus_ordered()]


def set_sku_sequence(name: str, position) -> SkuSequence:
    """Upsert one SKU's display position. Positions are not unique."""
    sku_name = require_text(name, "name")
    seq = coerce_int(position, "position")

    row = db.session.query(SkuSequence).filter_by(name=sku_name).first()
    if row is None:
        row = SkuSequence(name=sku_name, seq=seq)
        db.session.add(row)
    else:
        row.seq = seq
    db.session.commit()
    return row


def seed_sequence(*, overwrite: bool = False) -> int:
    """
    Write catalog positions (1-based) into sku_sequences.

    Existing rows are left alone unless overwrite is set. Returns the number
    of rows written.
    """
    written = 0
    with atomic() as session:
        existing = {r.name: r for r in session.query(SkuSequence).all()}
        for index, name in enumerate(CATALOG, start=1):
            row = existing.get(name)
            if row is None:
                session.add(SkuSequence(name=name, seq=index))
                written += 1
            elif overwrite:
                row.seq = index
                written += 1
    return written


def partition_main_extra(skus: Iterable, boundary: str | None = None) -> tuple[list, list]:
    """
    Split an ordered SKU list into the "main" and "extra" sheet blocks.

    Everything up to and including the boundary SKU is main. If the boundary
    is not in the list, everything is main. Accepts Sku objects or names.
    """
    if boundary is None:
        boundary = current_app.config.get("MAIN_SKU_BOUNDARY", DEFAULT_MAIN_BOUNDARY)
    items = list(skus)
    names = [getattr(item, "name", item) for item in items]
    if boundary not in names:
        return items, []
    cut = names.index(boundary) + 1
    return items[:cut], items[cut:]


# =============================================================================
# RENAMING
# =============================================================================

# (model, column attribute) pairs holding a SKU name
_SKU_NAME_COLUMNS = (
    (SkuSequence, "name"),
    (WorkerRate, "sku_name"),
    (LocationOrder, "sku_name"),
    (ExtraOrder, "sku_name"),
    (RemarkCarry, "sku_name"),
    (MainTableRow, "sku_name"),
    (SubmissionLine, "name"),
)


def _rename_in_session(session, old: str, new: str) -> int:
    touched = 0
    for model, attr in _SKU_NAME_COLUMNS:
        column = getattr(model, attr)
        touched += session.query(model).filter(column == old).update(
            {column: new}, synchronize_session=False
        )
    return touched


def _delete_name_in_session(session, name: str) -> int:
    deleted = 0
    for model, attr in _SKU_NAME_COLUMNS:
        column = getattr(model, attr)
        deleted += session.query(model).filter(column == name).delete(synchronize_session=False)
    return deleted


def rename_sku(old: str, new: str) -> int:
    """
    Rename a SKU across every table in one transaction.

    Returns the number of rows updated. Renaming onto a name that already
    exists in a table with a unique (..., sku) key fails and rolls back.
    """
    old_name = require_text(old, "old")
    new_name = require_text(new, "new")
    if old_name == new_name:
        raise ValidationError("new name must differ from old name")

    with atomic() as session:
        touched = _rename_in_session(session, old_name, new_name)
    current_app.logger.info("Renamed SKU %s -> %s (%d rows)", old_name, new_name, touched)
    return touched
