from datetime import date, datetime
from decimal import Decimal

from dishdash import reports
from dishdash.domain import Category, Dish, DishRef, Transaction
from dishdash.services import DEFAULT_AGGREGATORS, ReportService


def make_tx(id, kind, amount, ts, dish=None):
    return Transaction(
        id=id, kind=kind, amount=Decimal(amount), description="", ts=datetime.fromisoformat(ts), dish=dish
    )


TRANSACTIONS = (
    make_tx("t1", "income", "100", "2025-09-09T12:00:00", DishRef("Paneer Tikka", "veg")),
    make_tx("t2", "income", "50", "2025-09-10T12:00:00", DishRef("Chicken 65", "non_veg")),
    make_tx("t3", "expense", "30", "2025-08-10T12:00:00"),
)
DISHES = (
    Dish("d1", "Paneer Tikka", Decimal("100"), "veg", category=Category("c1", "Starters")),
    Dish("d2", "Chicken 65", Decimal("50"), "non_veg"),
)


def test_report_service_builds_every_section():
    report = ReportService().build(TRANSACTIONS, DISHES, today=date(2025, 9, 10))
    result = report["result"]

    assert set(result) == {
        "monthly_trends", "veg_non_veg_sales", "top_dishes", "category_breakdown", "daily_revenue",
    }
    assert [m["month"] for m in result["monthly_trends"]] == ["2025-08", "2025-09"]
    assert result["veg_non_veg_sales"][0]["value"] == 100
    assert result["top_dishes"][0]["name"] == "Paneer Tikka"
    assert [c["name"] for c in result["category_breakdown"]] == ["Starters", "Uncategorized"]
    assert len(result["daily_revenue"]) == 7
    assert result["daily_revenue"][-1]["revenue"] == 50
    assert report["generated_for"] == "2025-09-10"


def test_report_service_records_steps_in_order():
    report = ReportService().build(TRANSACTIONS, DISHES, today=date(2025, 9, 10))

    assert [s["aggregator"] for s in report["steps"]] == [a.__name__ for a in DEFAULT_AGGREGATORS]


def test_report_service_with_custom_aggregators():
    def count_step(trans, dishes, today):
        return {"count": len(trans)}

    def dish_count_step(trans, dishes, today):
        return {"dishes": len(dishes)}

    report = ReportService([count_step, dish_count_step]).build(TRANSACTIONS, DISHES)

    assert report["result"] == {"count": 3, "dishes": 2}
    assert len(report["steps"]) == 2


def test_report_service_empty_snapshot():
    result = ReportService().build((), (), today=date(2025, 1, 1))["result"]

    assert result["monthly_trends"] == []
    assert result["top_dishes"] == []
    assert result["category_breakdown"] == []
    assert [d["revenue"] for d in result["daily_revenue"]] == [0] * 7


def test_report_service_defaults_to_utc_date(monkeypatch):
    monkeypatch.setattr(reports, "utc_today", lambda: date(2025, 9, 10))
    report = ReportService().build(TRANSACTIONS, DISHES)

    assert report["generated_for"] == "2025-09-10"
    assert report["result"]["daily_revenue"][-1]["revenue"] == 50
