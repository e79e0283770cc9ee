"""Client-side aggregation of fetched rows into chart-ready records.

Every function here is pure: it takes a snapshot of typed records and
returns plain dicts (or a small dataclass) that the pages hand straight
to plotly. Nothing is cached; pages recompute on every rerun.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from dishdash.domain import (
    EXPENSE,
    INCOME,
    NON_VEG,
    UNCATEGORIZED,
    VEG,
    Dish,
    Transaction,
    Worker,
)

ZERO = Decimal("0")
TOP_DISHES_LIMIT = 5
DAILY_WINDOW = 7


@dataclass(frozen=True)
class RevenueSplit:
    income: Decimal
    expense: Decimal
    veg: Decimal
    non_veg: Decimal

    @property
    def profit(self) -> Decimal:
        return self.income - self.expense


def revenue_split(trans: Iterable[Transaction]) -> RevenueSplit:
    """Income/expense totals plus veg/non-veg revenue.

    Veg and non-veg only count income rows with a joined dish, so the two
    may add up to less than total income.
    """
    totals = {INCOME: ZERO, EXPENSE: ZERO, VEG: ZERO, NON_VEG: ZERO}

    for t in trans:
        totals[t.kind] += t.amount
        if t.kind == INCOME and t.dish is not None and t.dish.kind in (VEG, NON_VEG):
            totals[t.dish.kind] += t.amount

    return RevenueSplit(
        income=totals[INCOME],
        expense=totals[EXPENSE],
        veg=totals[VEG],
        non_veg=totals[NON_VEG],
    )


def _percentage(part: Decimal, total: Decimal) -> int:
    if total <= 0:
        return 0
    return int((part * 100 / total).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def veg_non_veg_sales(trans: Iterable[Transaction]) -> List[dict]:
    split = revenue_split(trans)
    total = split.veg + split.non_veg
    return [
        {"name": "Veg Items", "value": split.veg, "percentage": _percentage(split.veg, total)},
        {"name": "Non-Veg Items", "value": split.non_veg, "percentage": _percentage(split.non_veg, total)},
    ]


def month_key(ts: datetime) -> str:
    return f"{ts.year:04d}-{ts.month:02d}"


def month_label(key: str) -> str:
    # display only, never sort on this
    return datetime.strptime(key, "%Y-%m").strftime("%b %Y")


def monthly_trends(trans: Iterable[Transaction]) -> List[dict]:
    buckets: Dict[str, Dict[str, Decimal]] = defaultdict(lambda: {INCOME: ZERO, EXPENSE: ZERO})

    for t in trans:
        buckets[month_key(t.ts)][t.kind] += t.amount

    return [
        {
            "month": key,
            "label": month_label(key),
            "income": buckets[key][INCOME],
            "expense": buckets[key][EXPENSE],
        }
        for key in sorted(buckets)
    ]


def utc_today() -> date:
    """Current calendar date in UTC, the zone transaction timestamps are stored in."""
    return datetime.now(timezone.utc).date()


def daily_revenue(
    trans: Iterable[Transaction], today: Optional[date] = None, days: int = DAILY_WINDOW
) -> List[dict]:
    """Income per calendar day for the trailing window ending today.

    Always returns exactly ``days`` records, oldest first; empty days are 0.
    """
    today = today or utc_today()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    revenue: Dict[date, Decimal] = {day: ZERO for day in window}

    for t in trans:
        day = t.ts.date()
        if t.kind == INCOME and day in revenue:
            revenue[day] += t.amount

    return [
        {"date": day.isoformat(), "label": day.strftime("%a %d"), "revenue": revenue[day]}
        for day in window
    ]


def top_dishes(trans: Iterable[Transaction], limit: int = TOP_DISHES_LIMIT) -> List[dict]:
    """Best-selling dishes by revenue.

    Rows are grouped by dish name, so two distinct dishes sharing a name
    are merged. Ties keep the order in which each name was first seen.
    """
    sales: Dict[str, dict] = {}

    for t in trans:
        if t.kind != INCOME or t.dish is None:
            continue
        entry = sales.setdefault(
            t.dish.name,
            {"name": t.dish.name, "sales": ZERO, "quantity": 0, "type": t.dish.kind},
        )
        entry["sales"] += t.amount
        entry["quantity"] += t.quantity or 1

    ranked = sorted(sales.values(), key=lambda item: item["sales"], reverse=True)
    return ranked[: max(0, limit)]


def category_breakdown(dishes: Iterable[Dish]) -> List[dict]:
    categories: Dict[str, dict] = {}

    for d in dishes:
        name = d.category.name if d.category and d.category.name else UNCATEGORIZED
        entry = categories.setdefault(
            name, {"name": name, "dishes": 0, "veg_count": 0, "non_veg_count": 0}
        )
        entry["dishes"] += 1
        if d.kind == VEG:
            entry["veg_count"] += 1
        else:
            entry["non_veg_count"] += 1

    return list(categories.values())


def dashboard_stats(trans: Sequence[Transaction], dishes: Sequence[Dish]) -> dict:
    split = revenue_split(trans)
    return {
        "total_income": split.income,
        "total_expenses": split.expense,
        "profit": split.profit,
        "veg_dishes": sum(1 for d in dishes if d.kind == VEG),
        "non_veg_dishes": sum(1 for d in dishes if d.kind == NON_VEG),
        "total_dishes": len(dishes),
    }


def recent_transactions(trans: Iterable[Transaction], limit: int = 5) -> List[Transaction]:
    return sorted(trans, key=lambda t: t.ts, reverse=True)[: max(0, limit)]


def payroll_total(workers: Iterable[Worker]) -> Decimal:
    return sum((w.payment for w in workers), ZERO)
