# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cash-basis reconciliation engine for SMB Cashflow.

This module turns the heterogeneous facts exposed by a ``Ledger`` (sales,
collections, treasury movements, expenses, inventory, projects) into three
views of an organization's finances:

1. Monthly summary
   ----------------
   ``ReconciliationEngine.monthly_summary()`` computes, for one calendar
   month in the business timezone:
   - sales figures (accrual: PAID documents issued in the month),
   - cost of sales from the cost snapshot of the sold lines,
   - gross profit and operating result,
   - cash inflows and outflows (cash basis),
   - margins and advisory warnings.

   Credit sales count in ``sales_total`` in the month they are issued but
   enter cash inflows only through collections, in the month the money is
   actually received. This is what keeps a credit sale from being counted
   twice.

2. Balance snapshot
   -----------------
   ``ReconciliationEngine.balance_snapshot()`` wraps one monthly summary
   with point-in-time facts (receivables, payables, inventory at cost) into
   an approximate balance sheet. Cash is approximated by the net cash flow
   of the month.

3. Series
   -------
   ``ReconciliationEngine.series()`` repeats the monthly summary over a
   trailing window of months and keeps a compact trend view per month.

Rounding
--------
Every base total is summed exactly in ``Decimal`` and rounded once to
whole currency units. Derived totals are then computed from those rounded
components, so identities such as

    cash_inflows_total - cash_outflows_total == net_cash_flow
    immediate_cash_sales_total + credit_sales_total == sales_total

hold exactly on the returned figures.

Concurrency
-----------
The ledger reads of one computation are independent and are issued
concurrently on a thread pool; the engine waits for all of them before
deriving anything. The first failed read cancels the pending ones and the
whole call fails with ``LedgerReadError``: a partial statement is never
returned. The engine keeps no state between calls.

Every public call reads through one ``Ledger.snapshot()``, entered after
the period is validated: all the reads of a summary, a balance snapshot or
a series observe the same state of the ledger, even when an import commits
while they run.
"""

from collections.abc import Callable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, fields
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo

from .errors import LedgerReadError, OrganizationNotFoundError
from .ledger import (
    NO_TREASURY_FILTER,
    Aggregate,
    Ledger,
    ProductValuation,
    ProjectReceivable,
    SaleCostLine,
    SaleFact,
    TreasuryFilter,
)
from .logging_config import get_logger
from .models import PaymentMethod, TreasuryType
from .money import (
    ZERO,
    round_amount,
    round_percent,
    sum_amounts,
    to_float,
    to_int,
)
from .periods import (
    DEFAULT_TIMEZONE,
    MonthPeriod,
    get_timezone,
    resolve_month,
    trailing_month_periods,
)

logger = get_logger(__name__)

DEFAULT_MAX_WORKERS = 9

CREDIT_SALES_WARNING = (
    "Credit sales are recognised in cash flow only when collected, not when issued."
)
PROJECT_COLLECTIONS_WARNING = (
    "Project income is recognised only through collections actually recorded."
)
PROJECT_TIMING_WARNING = (
    "There are project outflows without project collections in the period."
)
TREASURY_WARNING = (
    "Treasury movements affect cash flow but not the operating result."
)
BALANCE_CASH_WARNING = (
    "Cash in the balance is approximated by the net cash flow of the period."
)
BALANCE_RECEIVABLES_WARNING = (
    "Accounts receivable include customer debt and pending project collections."
)


def _record_to_dict(record: Any, percent_fields: frozenset[str] = frozenset()) -> dict:
    """
    Convert a result record to plain Python values.

    Amounts become ``int`` and percentages ``float``; tuples become lists.
    This is the only place where ``Decimal`` leaves the engine.
    """
    out: dict[str, Any] = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if isinstance(value, Decimal):
            value = to_float(value) if f.name in percent_fields else to_int(value)
        elif isinstance(value, tuple):
            value = list(value)
        elif hasattr(value, "as_dict"):
            value = value.as_dict()
        out[f.name] = value
    return out


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonthlySummary:
    """
    Financial summary of one calendar month.

    Amounts are whole currency units (``Decimal`` with no fractional part);
    percentages are rounded to one decimal.
    """

    month: str
    label: str
    treasury_category: Optional[str]
    treasury_source: Optional[str]

    # Sales (accrual)
    sales_count: int
    sales_total: Decimal
    sales_net: Decimal
    sales_tax: Decimal
    sales_discount: Decimal
    credit_sales_total: Decimal
    immediate_cash_sales_total: Decimal
    card_commissions_total: Decimal
    cost_of_sales_total: Decimal
    gross_profit: Decimal

    # Collections (cash)
    collections_count: int
    collections_total: Decimal
    project_collections_count: int
    project_collections_total: Decimal

    # Treasury
    treasury_inflows_total: Decimal
    treasury_outflows_total: Decimal
    treasury_movements_count: int

    # Expenses
    operational_expenses_count: int
    operational_expenses_total: Decimal
    project_expenses_count: int
    project_expenses_total: Decimal
    project_resources_count: int
    project_resources_total: Decimal
    project_outflows_total: Decimal

    # Derived
    cash_inflows_total: Decimal
    cash_outflows_total: Decimal
    net_cash_flow: Decimal
    operating_result: Decimal
    gross_margin_percent: Decimal
    operating_margin_percent: Decimal

    warnings: tuple[str, ...]

    def as_dict(self) -> dict:
        return _record_to_dict(
            self, frozenset({"gross_margin_percent", "operating_margin_percent"})
        )


@dataclass(frozen=True)
class BalanceAssets:
    cash_flow_month: Decimal
    customer_accounts_receivable: Decimal
    project_accounts_receivable: Decimal
    accounts_receivable: Decimal
    inventory_at_cost: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return _record_to_dict(self)


@dataclass(frozen=True)
class BalanceLiabilities:
    accounts_payable: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return _record_to_dict(self)


@dataclass(frozen=True)
class BalanceEquity:
    net_position: Decimal

    def as_dict(self) -> dict:
        return _record_to_dict(self)


@dataclass(frozen=True)
class BalanceContext:
    """Counters for drill-down; never used in the arithmetic."""

    customers_with_debt: int
    projects_with_pending_collection: int
    payables_pending_count: int
    products_valued_count: int

    def as_dict(self) -> dict:
        return _record_to_dict(self)


@dataclass(frozen=True)
class BalanceSnapshot:
    """Approximate balance sheet built on top of one monthly summary."""

    month: str
    label: str
    assets: BalanceAssets
    liabilities: BalanceLiabilities
    equity: BalanceEquity
    context: BalanceContext
    warnings: tuple[str, ...]

    def as_dict(self) -> dict:
        return _record_to_dict(self)


@dataclass(frozen=True)
class SeriesPoint:
    """Compact trend view of one month."""

    month: str
    label: str
    net_cash_flow: Decimal
    operating_result: Decimal
    cash_inflows_total: Decimal
    cash_outflows_total: Decimal

    @classmethod
    def from_summary(cls, summary: MonthlySummary) -> "SeriesPoint":
        return cls(
            month=summary.month,
            label=summary.label,
            net_cash_flow=summary.net_cash_flow,
            operating_result=summary.operating_result,
            cash_inflows_total=summary.cash_inflows_total,
            cash_outflows_total=summary.cash_outflows_total,
        )

    def as_dict(self) -> dict:
        return _record_to_dict(self)


@dataclass(frozen=True)
class CostCoverage:
    """
    Share of sold lines that carry a cost snapshot.

    Lines without cost are excluded from cost of sales, which inflates the
    gross margin; this metric tells how much of the month is affected.
    """

    month: str
    label: str
    lines_count: int
    lines_without_cost: int
    coverage_percent: Decimal

    def as_dict(self) -> dict:
        return _record_to_dict(self, frozenset({"coverage_percent"}))


# ---------------------------------------------------------------------------
# Derivations
# ---------------------------------------------------------------------------


def _cost_of_sales(lines: list[SaleCostLine]) -> Decimal:
    return sum_amounts(
        line.quantity * line.unit_cost for line in lines if line.unit_cost is not None
    )


def _build_warnings(
    credit_sales_total: Decimal,
    project_collections_total: Decimal,
    project_outflows_total: Decimal,
    treasury_movements_count: int,
) -> tuple[str, ...]:
    warnings: list[str] = []
    if credit_sales_total > ZERO:
        warnings.append(CREDIT_SALES_WARNING)
    if project_collections_total > ZERO:
        warnings.append(PROJECT_COLLECTIONS_WARNING)
    if project_outflows_total > ZERO and project_collections_total == ZERO:
        warnings.append(PROJECT_TIMING_WARNING)
    if treasury_movements_count > 0:
        warnings.append(TREASURY_WARNING)
    return tuple(warnings)


def build_monthly_summary(
    period: MonthPeriod,
    treasury_filter: TreasuryFilter,
    *,
    sales: list[SaleFact],
    cost_lines: list[SaleCostLine],
    collections: Aggregate,
    project_collections: Aggregate,
    treasury_inflows: Aggregate,
    treasury_outflows: Aggregate,
    operational_expenses: Aggregate,
    project_expenses: Aggregate,
    project_resources: Aggregate,
) -> MonthlySummary:
    """
    Derive a MonthlySummary from the results of the ledger reads.

    This function is pure: given the same read results it always returns
    the same summary.
    """
    # Base totals: exact sums, rounded once.
    sales_total = round_amount(sum_amounts(s.total for s in sales))
    sales_net = round_amount(sum_amounts(s.subtotal for s in sales))
    sales_tax = round_amount(sum_amounts(s.tax_amount for s in sales))
    sales_discount = round_amount(sum_amounts(s.discount for s in sales))
    credit_sales_total = round_amount(
        sum_amounts(s.total for s in sales if s.payment_method == PaymentMethod.CREDIT)
    )
    card_commissions_total = round_amount(
        sum_amounts(s.card_commission_amount for s in sales)
    )
    cost_of_sales_total = round_amount(_cost_of_sales(cost_lines))

    collections_total = round_amount(collections.total)
    project_collections_total = round_amount(project_collections.total)
    treasury_inflows_total = round_amount(treasury_inflows.total)
    treasury_outflows_total = round_amount(treasury_outflows.total)
    operational_expenses_total = round_amount(operational_expenses.total)
    project_expenses_total = round_amount(project_expenses.total)
    project_resources_total = round_amount(project_resources.total)

    # Derived totals: computed from the rounded components.
    immediate_cash_sales_total = sales_total - credit_sales_total
    gross_profit = sales_net - cost_of_sales_total - card_commissions_total
    project_outflows_total = project_expenses_total + project_resources_total

    cash_inflows_total = (
        immediate_cash_sales_total
        + collections_total
        + project_collections_total
        + treasury_inflows_total
    )
    cash_outflows_total = (
        operational_expenses_total + project_outflows_total + treasury_outflows_total
    )
    net_cash_flow = cash_inflows_total - cash_outflows_total
    operating_result = (
        gross_profit
        + project_collections_total
        - operational_expenses_total
        - project_outflows_total
    )

    treasury_movements_count = treasury_inflows.count + treasury_outflows.count

    return MonthlySummary(
        month=period.key,
        label=period.label,
        treasury_category=(
            treasury_filter.category.value if treasury_filter.category else None
        ),
        treasury_source=treasury_filter.source.value if treasury_filter.source else None,
        sales_count=len(sales),
        sales_total=sales_total,
        sales_net=sales_net,
        sales_tax=sales_tax,
        sales_discount=sales_discount,
        credit_sales_total=credit_sales_total,
        immediate_cash_sales_total=immediate_cash_sales_total,
        card_commissions_total=card_commissions_total,
        cost_of_sales_total=cost_of_sales_total,
        gross_profit=gross_profit,
        collections_count=collections.count,
        collections_total=collections_total,
        project_collections_count=project_collections.count,
        project_collections_total=project_collections_total,
        treasury_inflows_total=treasury_inflows_total,
        treasury_outflows_total=treasury_outflows_total,
        treasury_movements_count=treasury_movements_count,
        operational_expenses_count=operational_expenses.count,
        operational_expenses_total=operational_expenses_total,
        project_expenses_count=project_expenses.count,
        project_expenses_total=project_expenses_total,
        project_resources_count=project_resources.count,
        project_resources_total=project_resources_total,
        project_outflows_total=project_outflows_total,
        cash_inflows_total=cash_inflows_total,
        cash_outflows_total=cash_outflows_total,
        net_cash_flow=net_cash_flow,
        operating_result=operating_result,
        gross_margin_percent=round_percent(gross_profit, sales_net),
        operating_margin_percent=round_percent(operating_result, sales_net),
        warnings=_build_warnings(
            credit_sales_total,
            project_collections_total,
            project_outflows_total,
            treasury_movements_count,
        ),
    )


def project_accounts_receivable(
    projects: list[ProjectReceivable],
) -> tuple[Decimal, int]:
    """
    Pending collections over non-cancelled projects.

    The contracted amount falls back to the quote total when unset. Projects
    with no positive contracted amount, or already fully collected, are
    skipped entirely (they are not counted as pending).

    Returns
    -------
    (total, count)
        Exact pending total and number of projects with a pending amount.
    """
    total = ZERO
    count = 0
    for project in projects:
        contracted = (
            project.contracted_amount
            if project.contracted_amount is not None
            else project.quote_total
        )
        if contracted is None or contracted <= ZERO:
            continue

        pending = contracted - sum_amounts(project.payments)
        if pending > ZERO:
            total += pending
            count += 1
    return total, count


def build_balance_snapshot(
    summary: MonthlySummary,
    *,
    receivables: Aggregate,
    payables: Aggregate,
    products: list[ProductValuation],
    projects: list[ProjectReceivable],
) -> BalanceSnapshot:
    """Derive a BalanceSnapshot from a monthly summary and point-in-time reads."""
    project_pending, projects_pending_count = project_accounts_receivable(projects)

    customer_ar = round_amount(receivables.total)
    project_ar = round_amount(project_pending)
    accounts_receivable = customer_ar + project_ar
    inventory_at_cost = round_amount(
        sum_amounts(p.current_stock * p.cost for p in products)
    )
    accounts_payable = round_amount(payables.total)

    assets = BalanceAssets(
        cash_flow_month=summary.net_cash_flow,
        customer_accounts_receivable=customer_ar,
        project_accounts_receivable=project_ar,
        accounts_receivable=accounts_receivable,
        inventory_at_cost=inventory_at_cost,
        total=summary.net_cash_flow + accounts_receivable + inventory_at_cost,
    )
    liabilities = BalanceLiabilities(
        accounts_payable=accounts_payable,
        total=accounts_payable,
    )

    return BalanceSnapshot(
        month=summary.month,
        label=summary.label,
        assets=assets,
        liabilities=liabilities,
        equity=BalanceEquity(net_position=assets.total - liabilities.total),
        context=BalanceContext(
            customers_with_debt=receivables.count,
            projects_with_pending_collection=projects_pending_count,
            payables_pending_count=payables.count,
            products_valued_count=len(products),
        ),
        warnings=(BALANCE_CASH_WARNING, BALANCE_RECEIVABLES_WARNING),
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ReconciliationEngine:
    """
    Reconciliation engine bound to a ledger, a business timezone and a clock.

    Parameters
    ----------
    ledger :
        Read-only source of ledger facts.
    timezone :
        Business timezone (name or ZoneInfo) in which months are computed.
    clock :
        Callable returning the current instant as an aware datetime. Only
        used when no explicit month is given and by ``series()``.
    max_workers :
        Size of the thread pool used to fan out ledger reads.
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        timezone: Union[str, ZoneInfo] = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] = _utc_now,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be positive: {max_workers!r}")
        self.ledger = ledger
        self.timezone = (
            timezone if isinstance(timezone, ZoneInfo) else get_timezone(timezone)
        )
        self.clock = clock
        self.max_workers = max_workers

    # -- Internal helpers -------------------------------------------------

    def _gather(
        self,
        reads: Mapping[str, Callable[[], Any]],
        *,
        organization_id: str,
        month: str,
    ) -> dict[str, Any]:
        """
        Run independent reads concurrently and wait for all of them.

        Raises:
            LedgerReadError: as soon as one read fails; pending reads are
                cancelled and no partial result is returned.
        """
        results: dict[str, Any] = {}
        workers = max(1, min(self.max_workers, len(reads)))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="ledger-read"
        ) as pool:
            futures = {pool.submit(read): name for name, read in reads.items()}
            for future in as_completed(futures):
                name = futures[future]
                try:
                    results[name] = future.result()
                except LedgerReadError:
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise
                except Exception as exc:
                    pool.shutdown(wait=False, cancel_futures=True)
                    logger.error(
                        "ledger_read_failed",
                        read=name,
                        organization_id=organization_id,
                        month=month,
                        error=str(exc),
                    )
                    raise LedgerReadError(
                        f"Ledger read '{name}' failed for organization "
                        f"{organization_id!r}, month {month}."
                    ) from exc
        return results

    @contextmanager
    def _snapshot(self) -> Iterator[Ledger]:
        """Enter a ledger snapshot, reporting failures as LedgerReadError."""
        with ExitStack() as stack:
            try:
                ledger = stack.enter_context(self.ledger.snapshot())
            except Exception as exc:
                raise LedgerReadError("Could not open a ledger snapshot.") from exc
            yield ledger

    def _ensure_organization(self, ledger: Ledger, organization_id: str) -> None:
        try:
            exists = ledger.organization_exists(organization_id)
        except Exception as exc:
            raise LedgerReadError(
                f"Could not check organization {organization_id!r}."
            ) from exc
        if not exists:
            raise OrganizationNotFoundError(
                f"Organization not found: {organization_id!r}"
            )

    def _summarize(
        self,
        ledger: Ledger,
        organization_id: str,
        period: MonthPeriod,
        treasury_filter: TreasuryFilter,
    ) -> MonthlySummary:
        org, start, end = organization_id, period.start, period.end

        reads: dict[str, Callable[[], Any]] = {
            "sales": lambda: ledger.paid_sales(org, start, end),
            "cost_lines": lambda: ledger.sale_cost_lines(org, start, end),
            "collections": lambda: ledger.customer_payments(org, start, end),
            "project_collections": lambda: ledger.project_payments(org, start, end),
            "treasury_inflows": lambda: ledger.treasury_movements(
                org, start, end, TreasuryType.INFLOW, treasury_filter
            ),
            "treasury_outflows": lambda: ledger.treasury_movements(
                org, start, end, TreasuryType.OUTFLOW, treasury_filter
            ),
            "operational_expenses": lambda: ledger.operational_expenses(
                org, start, end
            ),
            "project_expenses": lambda: ledger.project_expenses(org, start, end),
            "project_resources": lambda: ledger.project_resources(org, start, end),
        }
        results = self._gather(reads, organization_id=org, month=period.key)
        summary = build_monthly_summary(period, treasury_filter, **results)

        logger.debug(
            "monthly_summary_computed",
            organization_id=org,
            month=period.key,
            sales_count=summary.sales_count,
            net_cash_flow=str(summary.net_cash_flow),
        )
        return summary

    # -- Public API -------------------------------------------------------

    def monthly_summary(
        self,
        organization_id: str,
        month: Optional[str] = None,
        treasury_filter: Optional[TreasuryFilter] = None,
    ) -> MonthlySummary:
        """
        Compute the monthly summary of an organization.

        Parameters
        ----------
        organization_id :
            Organization to summarize.
        month :
            Month as "YYYY-MM" in the business timezone. Defaults to the
            month containing ``clock()``.
        treasury_filter :
            Optional category/source filter, applied to treasury movements
            only.

        Raises
        ------
        InvalidPeriodError
            If ``month`` is malformed (checked before any read).
        OrganizationNotFoundError
            If the organization does not exist (checked before fact reads).
        LedgerReadError
            If any ledger read fails.
        """
        period = resolve_month(month, self.clock(), self.timezone)
        with self._snapshot() as ledger:
            self._ensure_organization(ledger, organization_id)
            return self._summarize(
                ledger, organization_id, period, treasury_filter or NO_TREASURY_FILTER
            )

    def balance_snapshot(
        self,
        organization_id: str,
        month: Optional[str] = None,
        treasury_filter: Optional[TreasuryFilter] = None,
    ) -> BalanceSnapshot:
        """
        Compute the approximate balance sheet of an organization.

        The monthly summary of ``month`` provides the cash figure; the
        receivable, payable and inventory figures are read as of now. All
        reads are issued concurrently.

        Raises the same errors as ``monthly_summary``.
        """
        period = resolve_month(month, self.clock(), self.timezone)
        org = organization_id
        tfilter = treasury_filter or NO_TREASURY_FILTER

        with self._snapshot() as ledger:
            self._ensure_organization(ledger, org)
            reads: dict[str, Callable[[], Any]] = {
                "summary": lambda: self._summarize(ledger, org, period, tfilter),
                "receivables": lambda: ledger.customer_receivables(org),
                "payables": lambda: ledger.active_payables(org),
                "products": lambda: ledger.valued_products(org),
                "projects": lambda: ledger.open_projects(org),
            }
            results = self._gather(reads, organization_id=org, month=period.key)
        summary = results.pop("summary")
        snapshot = build_balance_snapshot(summary, **results)

        logger.debug(
            "balance_snapshot_computed",
            organization_id=org,
            month=period.key,
            net_position=str(snapshot.equity.net_position),
        )
        return snapshot

    def series(
        self,
        organization_id: str,
        months: int,
        treasury_filter: Optional[TreasuryFilter] = None,
    ) -> list[SeriesPoint]:
        """
        Compute one SeriesPoint per month over a trailing window.

        The window ends with the current month (per ``clock()``) and the
        points are ordered from oldest to newest. Months are computed
        concurrently; each point equals the corresponding standalone
        ``monthly_summary`` call.

        Raises
        ------
        InvalidPeriodError
            If ``months`` is not a positive integer.
        OrganizationNotFoundError, LedgerReadError
            As for ``monthly_summary``.
        """
        periods = trailing_month_periods(months, self.clock(), self.timezone)
        tfilter = treasury_filter or NO_TREASURY_FILTER

        with self._snapshot() as ledger:
            self._ensure_organization(ledger, organization_id)
            reads: dict[str, Callable[[], Any]] = {
                period.key: (
                    lambda period=period: self._summarize(
                        ledger, organization_id, period, tfilter
                    )
                )
                for period in periods
            }
            results = self._gather(
                reads,
                organization_id=organization_id,
                month=f"{periods[0].key}..{periods[-1].key}",
            )
        points = [SeriesPoint.from_summary(results[p.key]) for p in periods]

        logger.debug(
            "series_computed",
            organization_id=organization_id,
            months=len(points),
            first=periods[0].key,
            last=periods[-1].key,
        )
        return points

    def cost_coverage(
        self,
        organization_id: str,
        month: Optional[str] = None,
    ) -> CostCoverage:
        """
        Measure how many sold lines of the month carry a cost snapshot.

        Coverage is 100.0 when no line was sold.
        """
        period = resolve_month(month, self.clock(), self.timezone)

        with self._snapshot() as ledger:
            self._ensure_organization(ledger, organization_id)
            results = self._gather(
                {
                    "cost_lines": lambda: ledger.sale_cost_lines(
                        organization_id, period.start, period.end
                    )
                },
                organization_id=organization_id,
                month=period.key,
            )
        lines: list[SaleCostLine] = results["cost_lines"]
        without_cost = sum(1 for line in lines if line.unit_cost is None)

        if lines:
            coverage = round_percent(len(lines) - without_cost, len(lines))
        else:
            coverage = Decimal("100.0")

        return CostCoverage(
            month=period.key,
            label=period.label,
            lines_count=len(lines),
            lines_without_cost=without_cost,
            coverage_percent=coverage,
        )
