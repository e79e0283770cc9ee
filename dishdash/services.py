import logging
from datetime import date
from typing import Any, Callable, Dict, Optional, Sequence

from dishdash import reports
from dishdash.domain import Dish, Transaction

logger = logging.getLogger(__name__)

# aggregator(transactions, dishes, today) -> partial result dict
Aggregator = Callable[[Sequence[Transaction], Sequence[Dish], date], Dict[str, Any]]


def monthly_trends_step(trans, dishes, today):
    return {"monthly_trends": reports.monthly_trends(trans)}


def veg_non_veg_step(trans, dishes, today):
    return {"veg_non_veg_sales": reports.veg_non_veg_sales(trans)}


def top_dishes_step(trans, dishes, today):
    return {"top_dishes": reports.top_dishes(trans)}


def category_breakdown_step(trans, dishes, today):
    return {"category_breakdown": reports.category_breakdown(dishes)}


def daily_revenue_step(trans, dishes, today):
    return {"daily_revenue": reports.daily_revenue(trans, today=today)}


DEFAULT_AGGREGATORS = (
    monthly_trends_step,
    veg_non_veg_step,
    top_dishes_step,
    category_breakdown_step,
    daily_revenue_step,
)


class ReportService:
    """Facade that runs injected aggregators over one snapshot of rows.

    Each aggregator's output is kept as a step and merged into ``result``,
    so later pages can show either the final view models or the trail.
    """

    def __init__(self, aggregators: Sequence[Aggregator] = DEFAULT_AGGREGATORS):
        self.aggregators = aggregators

    def build(
        self,
        transactions: Sequence[Transaction],
        dishes: Sequence[Dish],
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        today = today or reports.utc_today()
        report = {"generated_for": today.isoformat(), "steps": [], "result": {}}
        acc: Dict[str, Any] = {}

        for agg in self.aggregators:
            out = agg(transactions, dishes, today)
            name = getattr(agg, "__name__", str(agg))
            report["steps"].append({"aggregator": name, "output": out})
            acc.update(out)

        logger.debug(
            "built report over %d transactions and %d dishes", len(transactions), len(dishes)
        )
        report["result"] = acc
        return report
