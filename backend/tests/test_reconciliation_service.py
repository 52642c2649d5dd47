import logging

import pytest

from bakeledger.locations import LOCATION_COLUMNS, Location
from bakeledger.models import ExtraOrder, LocationOrder, RemarkCarry, Submission
from bakeledger.services import reconciliation_service as recon
from bakeledger.services.reconciliation_service import (
    TONE_CREDIT,
    TONE_DEBIT,
    TONE_EXTRA,
    build_remark,
    compute_row,
    tray_split,
)
from bakeledger.services.submission_service import approve_submission, get_submission, list_lines
from bakeledger.validation import ValidationError

DAY = "2024-05-02"
NEXT_DAY = "2024-05-03"


# =============================================================================
# PURE RULES
# =============================================================================

def test_br400_hundred_units_gives_four_trays_and_plus_four():
    row = compute_row("BR 400", {"parel": 60, "matunga": 40})
    assert row.total_quantity == 100
    assert row.tray_order_count == 4
    assert row.extra_remaining == 4
    assert row.remark == "+4"
    assert row.remark_tone == TONE_EXTRA


@pytest.mark.parametrize("sku", ["TOAST", "C.ROLL"])
@pytest.mark.parametrize("qty", [0, 1, 7, 250])
def test_zero_tray_skus_never_divide(sku, qty):
    row = compute_row(sku, {"mahim": qty})
    assert row.tray_order_count == 0
    assert row.extra_remaining == 0


def test_total_ignores_previous_balance():
    row = compute_row("BR 400", {"parel": 30}, previous_balance=10)
    assert row.location_sum == 30
    assert row.total_quantity == 30
    assert row.remark == "+6 -10"


@pytest.mark.parametrize("qty", [0, 1, 34, 35, 36, 70, 104])
def test_extra_is_bounded_by_tray_size(qty):
    row = compute_row("FRT 200", {"sea_face": qty})
    assert row.extra_remaining == qty % 35
    assert 0 <= row.extra_remaining < 35


def test_unknown_sku_uses_one_per_tray():
    row = compute_row("NEW THING", {"parel": 5})
    assert row.tray_order_count == 5
    assert row.extra_remaining == 0


def test_tray_split_guard():
    assert tray_split(17, 0) == (0, 0.0)
    assert tray_split(17, 6) == (2, 5.0)


def test_remark_parts_and_tones():
    assert build_remark(0, 0) == ("0", None)
    assert build_remark(3, 0) == ("+3", TONE_EXTRA)
    assert build_remark(0, 5) == ("-5", TONE_CREDIT)
    assert build_remark(0, -5) == ("-5", TONE_DEBIT)
    assert build_remark(2.5, -1) == ("+2.5 -1", TONE_EXTRA)


# =============================================================================
# RECORDING
# =============================================================================

def test_record_location_order_sums_all_columns(db_session):
    recon.record_location_order(DAY, "BR 400", "parel", 60)
    row = recon.record_location_order(DAY, "BR 400", "Matunga", 40)

    assert row.total_quantity == 100
    assert row.tray_order_count == 4
    assert row.remark == "+4"

    stored = db_session.query(LocationOrder).filter_by(for_date=DAY, sku_name="BR 400").one()
    assert stored.parel == 60
    assert stored.matunga == 40
    assert stored.day_of_week == "Thursday"
    assert stored.previous_balance is None


def test_total_equals_location_sum_with_explicit_balance(db_session):
    recon.set_previous_balance(DAY, "BR 400", 10)
    row = recon.record_location_order(DAY, "BR 400", "parel", 30)
    assert row.previous_balance == 10
    assert row.total_quantity == sum(row.quantities[c] for c in LOCATION_COLUMNS) == 30


def test_record_is_idempotent(db_session):
    once = recon.record_location_order(DAY, "HALF 150", "sea face", 100)
    twice = recon.record_location_order(DAY, "HALF 150", "sea face", 100)
    assert (once.total_quantity, once.tray_order_count, once.extra_remaining) == (
        twice.total_quantity,
        twice.tray_order_count,
        twice.extra_remaining,
    )
    assert db_session.query(LocationOrder).count() == 1


def test_record_stores_both_carries(db_session):
    recon.record_location_order(DAY, "BR 400", "parel", 100)

    extra = db_session.query(ExtraOrder).filter_by(for_date=DAY, sku_name="BR 400").one()
    carry = db_session.query(RemarkCarry).filter_by(for_date=DAY, sku_name="BR 400").one()
    assert extra.extra_order == 4
    assert carry.remark_plus_value == 4


def test_remark_carry_only_kept_when_positive(db_session):
    recon.record_location_order(DAY, "BR 400", "parel", 50)
    assert db_session.query(RemarkCarry).filter_by(sku_name="BR 400").one().remark_plus_value == 2

    # Exactly two trays: the carry is removed, extra order is stored as 0
    recon.record_location_order(DAY, "BR 400", "parel", 48)
    assert db_session.query(RemarkCarry).filter_by(sku_name="BR 400").count() == 0
    assert db_session.query(ExtraOrder).filter_by(sku_name="BR 400").one().extra_order == 0


@pytest.mark.parametrize(
    "args",
    [
        ("2024-13-01", "BR 400", "parel", 1),
        ("02/05/2024", "BR 400", "parel", 1),
        (DAY, "BR 400", "andheri", 1),
        (DAY, "BR 400", "parel", "ten"),
        (DAY, "  ", "parel", 1),
    ],
)
def test_invalid_input_is_rejected_before_any_write(db_session, args):
    with pytest.raises(ValidationError):
        recon.record_location_order(*args)
    assert db_session.query(LocationOrder).count() == 0
    assert db_session.query(ExtraOrder).count() == 0


# =============================================================================
# VIEW & CARRY
# =============================================================================

def test_carry_round_trip_to_next_day(db_session):
    recon.record_location_order(DAY, "BR 400", "parel", 100)

    view = recon.get_reconciliation_view(NEXT_DAY)
    assert view["BR 400"].previous_balance == 4
    assert view["BR 400"].remark == "-4"
    assert view["BR 400"].total_quantity == 0


def test_view_does_not_persist_anything(db_session):
    recon.record_location_order(DAY, "BR 400", "parel", 100)
    recon.get_reconciliation_view(NEXT_DAY)

    assert db_session.query(LocationOrder).filter_by(for_date=NEXT_DAY).count() == 0
    # Still picked up from the carry on the next read
    assert recon.get_reconciliation_view(NEXT_DAY)["BR 400"].previous_balance == 4


def test_explicit_balance_wins_over_carry(db_session):
    recon.record_location_order(DAY, "BR 400", "parel", 100)
    recon.set_previous_balance(NEXT_DAY, "BR 400", 0)
    assert recon.get_reconciliation_view(NEXT_DAY)["BR 400"].previous_balance == 0

    recon.set_previous_balance(NEXT_DAY, "BR 400", 9)
    assert recon.get_reconciliation_view(NEXT_DAY)["BR 400"].previous_balance == 9

    # Cleared back to the carry
    recon.set_previous_balance(NEXT_DAY, "BR 400", None)
    assert recon.get_reconciliation_view(NEXT_DAY)["BR 400"].previous_balance == 4


def test_carry_uses_exactly_one_calendar_day(db_session):
    # Friday's carry lands on Saturday, not Monday
    recon.record_location_order("2024-05-03", "BR 400", "parel", 30)
    assert recon.get_reconciliation_view("2024-05-04")["BR 400"].previous_balance == 6
    assert recon.get_reconciliation_view("2024-05-06")["BR 400"].previous_balance == 0


def test_view_lists_every_catalog_sku(db_session):
    view = recon.get_reconciliation_view(DAY)
    assert list(view)[0] == "LARGE 350"
    assert "C.ROLL" in view
    assert all(row.total_quantity == 0 and row.remark == "0" for row in view.values())


def test_location_orders_for_worker_label(db_session):
    recon.record_location_order(DAY, "BR 400", "parel", 12)
    recon.record_location_order(DAY, "POP 500", "mahim", 5)

    assert recon.get_location_orders_for(DAY, "PAREL") == {"BR 400": 12, "POP 500": 0}
    assert recon.get_location_orders_for(DAY, "Mix") == {}


# =============================================================================
# PROJECTIONS
# =============================================================================

def test_admin_edit_projects_onto_pending_line(db_session, parel_worker, submit):
    sid = submit(
        parel_worker,
        DAY,
        [{"name": "BR 400", "sku": 10, "mr": 1, "fr": 0}],
        buyback={"BR 400": 2},
    )

    recon.record_location_order(DAY, "BR 400", "parel", 24)

    line = list_lines(sid)[0]
    assert line.sku == 24
    assert line.sale == 23
    assert line.amount == 46
    submission = get_submission(sid)
    assert submission.total_sku == 24
    assert submission.total_amount == 46


def test_projection_skips_approved_and_other_dates(db_session, parel_worker, submit):
    approved = submit(parel_worker, DAY, [{"name": "BR 400", "sku": 10}], approve=True)
    other_day = submit(parel_worker, NEXT_DAY, [{"name": "BR 400", "sku": 10}])

    recon.record_location_order(DAY, "BR 400", "parel", 24)

    assert list_lines(approved)[0].sku == 10
    assert list_lines(other_day)[0].sku == 10


def test_projection_ignores_zero_quantity(db_session, parel_worker, submit):
    sid = submit(parel_worker, DAY, [{"name": "BR 400", "sku": 10}])
    recon.record_location_order(DAY, "BR 400", "parel", 0)
    assert list_lines(sid)[0].sku == 10


def test_unmapped_column_logs_and_edit_still_succeeds(db_session, caplog):
    with caplog.at_level(logging.WARNING):
        row = recon.record_location_order(DAY, "BR 400", "koli wada", 30)

    assert row.total_quantity == 30
    assert db_session.query(LocationOrder).one().koli_wada == 30
    assert "Order projection failed" in caplog.text


def test_projection_failure_does_not_fail_edit(db_session, parel_worker, monkeypatch, caplog):
    def boom(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(recon, "project_location_order", boom)
    with caplog.at_level(logging.WARNING):
        row = recon.record_location_order(DAY, "BR 400", "parel", 30)

    assert row.total_quantity == 30
    assert db_session.query(ExtraOrder).one().extra_order == 6
    assert "disk full" in caplog.text


def test_sync_worker_orders_writes_location_column(db_session):
    written = recon.sync_worker_orders(
        DAY,
        "Prabhadevi-1",
        [
            {"name": "BR 400", "ordering": "12"},
            {"name": "POP 500", "ordering": "0"},
            {"name": "MG 400", "ordering": "abc"},
            {"name": "HALF 150", "ordering": None},
        ],
    )
    assert written == 1
    row = db_session.query(LocationOrder).filter_by(for_date=DAY, sku_name="BR 400").one()
    assert row.prabhadevi_1 == 12
    assert db_session.query(LocationOrder).count() == 1


def test_sync_worker_orders_unmapped_is_a_warning(db_session, caplog):
    with caplog.at_level(logging.WARNING):
        assert recon.sync_worker_orders(DAY, "", [{"name": "BR 400", "ordering": "4"}]) == 0
    assert db_session.query(LocationOrder).count() == 0
    assert "does not map" in caplog.text


def test_workers_for_location(db_session, parel_worker, mahim_worker, loose_worker):
    assert [w.id for w in recon.workers_for_location(Location.PAREL)] == [parel_worker.id]
    assert recon.workers_for_location(Location.SEA_FACE) == []


def test_projection_and_sync_do_not_ping_pong(db_session, parel_worker, submit):
    sid = submit(parel_worker, DAY, [{"name": "BR 400", "sku": 5, "ordering": "7"}])
    # The worker's ordering reached the column; the line's own sku is untouched
    assert db_session.query(LocationOrder).one().parel == 7
    assert list_lines(sid)[0].sku == 5
    assert db_session.query(Submission).count() == 1
