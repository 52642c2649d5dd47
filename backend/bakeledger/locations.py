"""
Sale locations.

Each of the ten locations owns one quantity column in `location_orders`.
Workers carry a free-text location label; `normalize_location` maps that
label onto a column (or UNMAPPED) without touching the database.
"""

from __future__ import annotations

import re
from enum import Enum


class Location(str, Enum):
    PRABHADEVI_1 = "prabhadevi_1"
    PRABHADEVI_2 = "prabhadevi_2"
    PAREL = "parel"
    SAAT_RASTA = "saat_rasta"
    SEA_FACE = "sea_face"
    WORLI_BDD = "worli_bdd"
    WORLI_MIX = "worli_mix"
    MATUNGA = "matunga"
    MAHIM = "mahim"
    KOLI_WADA = "koli_wada"
    UNMAPPED = "unmapped"

    @property
    def column(self) -> str:
        if self is Location.UNMAPPED:
            raise ValueError("UNMAPPED has no order column")
        return self.value

    @property
    def display_name(self) -> str | None:
        return DISPLAY_NAMES.get(self)

    @classmethod
    def mapped(cls) -> tuple["Location", ...]:
        return tuple(loc for loc in cls if loc is not cls.UNMAPPED)


LOCATION_COLUMNS: tuple[str, ...] = tuple(loc.value for loc in Location.mapped())

DISPLAY_NAMES = {
    Location.PRABHADEVI_1: "PRABHADEVI 1",
    Location.PRABHADEVI_2: "PRABHADEVI 2",
    Location.PAREL: "PAREL",
    Location.SAAT_RASTA: "SAAT RASTA",
    Location.SEA_FACE: "SEA FACE",
    Location.WORLI_BDD: "WORLI B.D.D",
    Location.WORLI_MIX: "WORLI MIX",
    Location.MATUNGA: "MATUNGA",
    Location.MAHIM: "MAHIM",
    Location.KOLI_WADA: "KOLI WADA",
}

# Keys are labels lowercased with every non-alphanumeric removed
_COMPACT_KEYS = {
    "prabhadevi1": Location.PRABHADEVI_1,
    "prabhadevi2": Location.PRABHADEVI_2,
    "parel": Location.PAREL,
    "saatrasta": Location.SAAT_RASTA,
    "seaface": Location.SEA_FACE,
    "worlibdd": Location.WORLI_BDD,
    "worlimix": Location.WORLI_MIX,
    "matunga": Location.MATUNGA,
    "mahim": Location.MAHIM,
    "koliwada": Location.KOLI_WADA,
}

_NON_ALNUM = re.compile(r"[^a-z0-9]")

# Worker list order on every screen; labels not listed sort alphabetically after
WORKER_SEQUENCE = (
    "prabhadevi 1",
    "prabhadevi 2",
    "parel",
    "saat rasta",
    "sea face",
    "worli bdd",
    "worli mix",
    "matunga",
    "mahim",
    "koliwada",
    "mix",
)


def compact_label(label: str) -> str:
    return _NON_ALNUM.sub("", label.strip().lower())


def normalize_location(label: str | Location | None) -> Location:
    """Map a worker location label (or a column key) to a Location."""
    if isinstance(label, Location):
        return label
    if label is None:
        return Location.UNMAPPED
    return _COMPACT_KEYS.get(compact_label(label), Location.UNMAPPED)
