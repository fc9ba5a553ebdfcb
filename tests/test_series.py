from unittest.mock import create_autospec

import pytest

from smb_cashflow.engine import ReconciliationEngine, SeriesPoint
from smb_cashflow.errors import InvalidPeriodError, LedgerReadError
from smb_cashflow.ledger import Ledger, TreasuryFilter
from smb_cashflow.models import TreasurySource


def test_series_returns_n_points_oldest_first(engine) -> None:
    points = engine.series("acme", 4)

    assert [p.month for p in points] == ["2026-01", "2026-02", "2026-03", "2026-04"]
    assert [p.label for p in points] == [
        "January 2026",
        "February 2026",
        "March 2026",
        "April 2026",
    ]


def test_each_point_equals_a_standalone_summary(engine) -> None:
    points = engine.series("acme", 3)

    for point in points:
        standalone = engine.monthly_summary("acme", point.month)
        assert point == SeriesPoint.from_summary(standalone)
        assert point.as_dict() == SeriesPoint.from_summary(standalone).as_dict()


def test_series_forwards_treasury_filter(engine) -> None:
    tfilter = TreasuryFilter(source=TreasurySource.CASH)
    points = engine.series("acme", 2, tfilter)

    march = engine.monthly_summary("acme", "2026-03", tfilter)
    assert points[0] == SeriesPoint.from_summary(march)
    assert points[0].cash_inflows_total == march.cash_inflows_total


def test_series_order_does_not_depend_on_worker_count(ledger, clock) -> None:
    one = ReconciliationEngine(ledger, clock=clock, max_workers=1).series("acme", 6)
    many = ReconciliationEngine(ledger, clock=clock, max_workers=12).series("acme", 6)

    assert one == many


@pytest.mark.parametrize("months", [0, -1])
def test_invalid_window_is_rejected_before_any_read(clock, months) -> None:
    ledger = create_autospec(Ledger, instance=True)

    with pytest.raises(InvalidPeriodError):
        ReconciliationEngine(ledger, clock=clock).series("acme", months)

    assert ledger.method_calls == []


def test_one_failing_month_fails_the_series(ledger, engine, monkeypatch) -> None:
    original = ledger.customer_payments

    def flaky(organization_id, start, end):
        if start.month == 2:
            raise RuntimeError("replica lag")
        return original(organization_id, start, end)

    monkeypatch.setattr(ledger, "customer_payments", flaky)

    with pytest.raises(LedgerReadError) as excinfo:
        engine.series("acme", 3)

    assert "2026-02" in str(excinfo.value)
