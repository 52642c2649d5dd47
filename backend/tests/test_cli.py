import csv

import pytest

from bakeledger.models import SkuSequence, Submission, User


@pytest.fixture
def runner(app, db_session):
    return app.test_cli_runner()


def test_init_db_and_seed(runner, db_session):
    result = runner.invoke(args=["system", "init-db"])
    assert result.exit_code == 0
    assert "PASS Database tables created." in result.output

    result = runner.invoke(args=["system", "seed-sequence"])
    assert result.exit_code == 0
    assert "Wrote 33 SKU position(s)" in result.output
    assert db_session.query(SkuSequence).count() == 33


def test_users_create_and_list(runner, db_session):
    result = runner.invoke(args=[
        "users", "create", "--username", "w1", "--password", "secret", "--location", "Parel",
    ])
    assert result.exit_code == 0
    assert "label: Parel" in result.output
    assert db_session.query(User).filter_by(username="w1").one().role == "worker"

    result = runner.invoke(args=["users", "create", "--username", "w1", "--password", "x"])
    assert result.exit_code != 0
    assert "already exists" in result.output

    result = runner.invoke(args=["users", "list"])
    assert "w1" in result.output
    assert "Parel" in result.output


def test_orders_set_and_show(runner, db_session):
    result = runner.invoke(args=[
        "orders", "set", "--date", "2024-05-02", "--sku", "BR 400", "--location", "parel", "--qty", "30",
    ])
    assert result.exit_code == 0
    assert "PASS BR 400: total 30, trays 1, remark +6" in result.output

    result = runner.invoke(args=["orders", "show", "--date", "2024-05-02"])
    assert result.exit_code == 0
    assert "BR 400" in result.output
    assert "LARGE 350" not in result.output


def test_orders_set_rejects_unknown_location(runner, db_session):
    result = runner.invoke(args=[
        "orders", "set", "--date", "2024-05-02", "--sku", "BR 400", "--location", "Mix", "--qty", "3",
    ])
    assert result.exit_code != 0
    assert "Unknown location" in result.output


def test_expire_pending(runner, parel_worker, submit, db_session):
    submit(parel_worker, "2024-05-01", [{"name": "BR 400", "sku": 1}])
    result = runner.invoke(args=["maintenance", "expire-pending", "--before", "2024-05-02"])
    assert result.exit_code == 0
    assert "Deleted 1 pending submission(s) dated before 2024-05-02." in result.output


def test_clear_pending_needs_confirmation(runner, parel_worker, submit, db_session):
    submit(parel_worker, "2024-05-01", [{"name": "BR 400", "sku": 1}])

    result = runner.invoke(args=["maintenance", "clear-pending"], input="n\n")
    assert result.exit_code != 0
    assert db_session.query(Submission).count() == 1

    result = runner.invoke(args=["maintenance", "clear-pending", "--yes"])
    assert result.exit_code == 0
    assert db_session.query(Submission).count() == 0


def test_cleanup_sku_names_command(runner, db_session):
    result = runner.invoke(args=["maintenance", "cleanup-sku-names"])
    assert result.exit_code == 0
    assert "Renamed 0 row(s), removed 0 row(s)" in result.output


def test_reports_export(runner, parel_worker, submit, tmp_path):
    submit(parel_worker, "2024-05-02", [{"name": "BR 400", "sku": 5}], buyback={"BR 400": 2}, approve=True)
    out_dir = tmp_path / "exports"

    result = runner.invoke(args=[
        "reports", "export", "--start", "2024-05-01", "--end", "2024-05-07", "--out", str(out_dir),
    ])
    assert result.exit_code == 0

    with open(out_dir / "lines_2024-05-01_to_2024-05-07.csv", newline="", encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    assert [(r["name"], r["delb_rate"], r["amount"]) for r in rows] == [("BR 400", "2.0", "10.0")]
    for name in ("submissions", "totals", "summary"):
        assert (out_dir / f"{name}_2024-05-01_to_2024-05-07.csv").exists()


def test_reports_export_bad_range(runner, db_session, tmp_path):
    result = runner.invoke(args=[
        "reports", "export", "--start", "2024-05-07", "--end", "2024-05-01", "--out", str(tmp_path),
    ])
    assert result.exit_code != 0


def test_reports_ranking(runner, parel_worker, submit):
    result = runner.invoke(args=["reports", "ranking"])
    assert "No approved submissions." in result.output

    submit(parel_worker, "2024-05-02", [{"name": "BR 400", "sku": 20, "mr": 2}], approve=True)
    result = runner.invoke(args=["reports", "ranking", "--date", "2024-05-02"])
    assert result.exit_code == 0
    assert "Parel" in result.output
    assert "10.00%" in result.output


def test_system_status(runner, admin, parel_worker, submit):
    submit(parel_worker, "2024-05-02", [{"name": "BR 400", "sku": 1}])
    result = runner.invoke(args=["system", "status"])
    assert result.exit_code == 0
    assert "Admins: 1" in result.output
    assert "Workers: 1" in result.output
    assert "Submissions pending: 1" in result.output
    assert "Submissions approved: 0" in result.output
