import pytest

from bakeledger.models import SkuSequence, SubmissionLine, WorkerRate
from bakeledger.services.catalog_service import (
    CATALOG,
    list_skus_ordered,
    ordered_sku_names,
    partition_main_extra,
    rename_sku,
    seed_sequence,
    set_sku_sequence,
    trays_per_unit,
)
from bakeledger.services.rate_service import set_rate
from bakeledger.validation import ValidationError


def test_catalog_shape():
    assert len(CATALOG) == 33
    assert CATALOG[0] == "LARGE 350"
    assert CATALOG[-1] == "C.ROLL"


@pytest.mark.parametrize(
    "name,expected",
    [("BR 400", 24), ("FRT 200", 35), ("M PIZZA 150", 12), ("TOAST", 0), ("C.ROLL", 0), ("UNKNOWN", 1)],
)
def test_trays_per_unit(name, expected):
    assert trays_per_unit(name) == expected


def test_default_order_is_catalog_order(db_session):
    skus = list_skus_ordered()
    assert [s.name for s in skus] == list(CATALOG)
    assert all(s.sequence is None for s in skus)


def test_sequenced_first_then_missing_in_catalog_order(db_session):
    set_sku_sequence("POP 500", 1)
    set_sku_sequence("ECO 800", 5)
    set_sku_sequence("TOAST", 3)

    names = ordered_sku_names()
    assert names[:3] == ["POP 500", "TOAST", "ECO 800"]
    assert names[3:6] == ["LARGE 350", "HALF 150", "BR 400"]
    assert len(names) == 33


def test_position_ties_keep_catalog_order(db_session):
    set_sku_sequence("C.ROLL", 2)
    set_sku_sequence("LARGE 350", 2)
    set_sku_sequence("BR 400", 2)
    assert ordered_sku_names()[:3] == ["LARGE 350", "BR 400", "C.ROLL"]


def test_set_sequence_upserts(db_session):
    set_sku_sequence("  BR 400 ", 9)
    set_sku_sequence("BR 400", "4")
    row = db_session.query(SkuSequence).one()
    assert (row.name, row.seq) == ("BR 400", 4)


@pytest.mark.parametrize("name,position", [("", 1), ("BR 400", "1.5"), ("BR 400", None), ("BR 400", True)])
def test_set_sequence_validation(db_session, name, position):
    with pytest.raises(ValidationError):
        set_sku_sequence(name, position)


def test_seed_sequence(db_session):
    assert seed_sequence() == 33
    set_sku_sequence("BR 400", 99)
    assert seed_sequence() == 0
    assert db_session.query(SkuSequence).filter_by(name="BR 400").one().seq == 99
    assert seed_sequence(overwrite=True) == 33
    assert db_session.query(SkuSequence).filter_by(name="BR 400").one().seq == 5


def test_partition_main_extra(db_session):
    main, extra = partition_main_extra(list_skus_ordered())
    assert main[-1].name == "M PIZZA 150"
    assert [s.name for s in extra] == ["M BUN", "SLICE", "D'nt Worry", "FINGER", "TOAST", "C.ROLL"]


def test_partition_without_boundary_is_all_main(db_session):
    main, extra = partition_main_extra(["A", "B"], boundary="M PIZZA 150")
    assert main == ["A", "B"]
    assert extra == []


def test_rename_sku_touches_every_table(db_session, parel_worker, submit):
    set_sku_sequence("BR200", 3)
    set_rate(parel_worker.id, "BR200", 20)
    submit(parel_worker, "2024-05-02", [{"name": "BR200", "sku": 1}])

    touched = rename_sku("BR200", "BR 200")

    assert touched == 3
    assert db_session.query(SkuSequence).one().name == "BR 200"
    assert db_session.query(WorkerRate).one().sku_name == "BR 200"
    assert db_session.query(SubmissionLine).one().name == "BR 200"


def test_rename_conflict_rolls_back(db_session):
    set_sku_sequence("BR200", 3)
    set_sku_sequence("BR 200", 4)
    with pytest.raises(Exception):
        rename_sku("BR200", "BR 200")
    assert {r.name for r in db_session.query(SkuSequence).all()} == {"BR200", "BR 200"}


def test_rename_requires_a_different_name(db_session):
    with pytest.raises(ValidationError):
        rename_sku("BR 200", "BR 200")
