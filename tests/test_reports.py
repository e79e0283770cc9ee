from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from dishdash import reports
from dishdash.domain import Category, Dish, DishRef, Transaction, Worker
from dishdash.reports import (
    category_breakdown,
    daily_revenue,
    dashboard_stats,
    monthly_trends,
    payroll_total,
    recent_transactions,
    revenue_split,
    top_dishes,
    veg_non_veg_sales,
)
from dishdash.transforms import transaction_from_row

VEG_DISH = DishRef(name="Paneer Tikka", kind="veg")
NON_VEG_DISH = DishRef(name="Chicken 65", kind="non_veg")


def make_tx(id, kind, amount, ts="2025-09-01T12:00:00", dish=None, quantity=None):
    return Transaction(
        id=id,
        kind=kind,
        amount=Decimal(str(amount)),
        description="",
        ts=datetime.fromisoformat(ts),
        quantity=quantity,
        dish=dish,
    )


def make_dish(id, kind, category=None):
    return Dish(id=id, name=f"dish {id}", price=Decimal("100"), kind=kind, category=category)


def test_revenue_split_scenario():
    trans = [
        make_tx("t1", "income", 100, dish=VEG_DISH),
        make_tx("t2", "income", 50, dish=NON_VEG_DISH),
        make_tx("t3", "expense", 30),
    ]
    split = revenue_split(trans)

    assert split.income == 100 + 50
    assert split.expense == 30
    assert split.veg == 100
    assert split.non_veg == 50
    assert split.profit == 120


def test_revenue_split_partitions_every_amount():
    trans = [
        make_tx("t1", "income", "10.50"),
        make_tx("t2", "expense", "3.25"),
        make_tx("t3", "income", "7", dish=VEG_DISH),
        make_tx("t4", "expense", "1.25"),
    ]
    split = revenue_split(trans)

    assert split.income + split.expense == sum(t.amount for t in trans)
    assert split.income == Decimal("17.50")
    assert split.expense == Decimal("4.50")


def test_income_without_dish_counts_only_toward_income():
    trans = [
        make_tx("t1", "income", 200),
        make_tx("t2", "income", 80, dish=VEG_DISH),
    ]
    split = revenue_split(trans)

    assert split.income == 280
    assert split.veg + split.non_veg == 80
    assert split.veg + split.non_veg <= split.income


def test_expense_with_dish_is_not_veg_revenue():
    split = revenue_split([make_tx("t1", "expense", 40, dish=VEG_DISH)])

    assert split.veg == 0
    assert split.expense == 40


def test_veg_non_veg_sales_percentages():
    trans = [
        make_tx("t1", "income", 300, dish=VEG_DISH),
        make_tx("t2", "income", 100, dish=NON_VEG_DISH),
    ]
    veg, non_veg = veg_non_veg_sales(trans)

    assert veg["name"] == "Veg Items"
    assert veg["value"] == 300
    assert veg["percentage"] == 75
    assert non_veg["percentage"] == 25


def test_veg_non_veg_sales_empty_has_zero_percentages():
    veg, non_veg = veg_non_veg_sales([])

    assert veg["percentage"] == 0
    assert non_veg["percentage"] == 0


def test_monthly_trends_sorted_across_years():
    trans = [
        make_tx("t1", "income", 100, ts="2025-01-15T10:00:00"),
        make_tx("t2", "expense", 40, ts="2024-12-31T23:00:00"),
        make_tx("t3", "income", 60, ts="2024-12-01T09:00:00"),
        make_tx("t4", "expense", 10, ts="2025-01-02T09:00:00"),
    ]
    res = monthly_trends(trans)

    assert [r["month"] for r in res] == ["2024-12", "2025-01"]
    assert res[0]["label"] == "Dec 2024"
    assert res[0]["income"] == 60
    assert res[0]["expense"] == 40
    assert res[1]["income"] == 100
    assert res[1]["expense"] == 10


def test_monthly_trends_does_not_sort_on_label():
    # "Apr" < "Feb" alphabetically, but February comes first
    trans = [
        make_tx("t1", "income", 1, ts="2025-04-01T00:00:00"),
        make_tx("t2", "income", 1, ts="2025-02-01T00:00:00"),
    ]
    assert [r["label"] for r in monthly_trends(trans)] == ["Feb 2025", "Apr 2025"]


def test_daily_revenue_no_transactions_gives_seven_zero_buckets():
    res = daily_revenue([], today=date(2025, 9, 10))

    assert len(res) == 7
    assert all(r["revenue"] == 0 for r in res)
    assert res[0]["date"] == "2025-09-04"
    assert res[-1]["date"] == "2025-09-10"


def test_daily_revenue_sums_income_inside_window():
    today = date(2025, 9, 10)
    trans = [
        make_tx("t1", "income", 100, ts="2025-09-10T08:00:00"),
        make_tx("t2", "income", 50, ts="2025-09-10T21:00:00"),
        make_tx("t3", "income", 70, ts="2025-09-04T12:00:00"),
        make_tx("t4", "expense", 500, ts="2025-09-08T12:00:00"),
        make_tx("t5", "income", 999, ts="2025-09-03T12:00:00"),
        make_tx("t6", "income", 999, ts="2025-09-11T12:00:00"),
    ]
    res = daily_revenue(trans, today=today)

    assert len(res) == 7
    dates = [r["date"] for r in res]
    assert dates == sorted(dates)
    assert res[-1]["revenue"] == 150
    assert res[0]["revenue"] == 70
    assert sum(r["revenue"] for r in res) == 220


def test_daily_revenue_defaults_to_today():
    today = datetime.now(timezone.utc).date()
    stamp = datetime.combine(today, datetime.min.time()) + timedelta(hours=12)
    res = daily_revenue([make_tx("t1", "income", 5, ts=stamp.isoformat())])

    assert res[-1]["date"] == today.isoformat()
    assert res[-1]["revenue"] == 5


class KolkataEarlyMorning(datetime):
    """03:00 on 10 Sep in Asia/Kolkata, still 9 Sep in UTC."""

    @classmethod
    def now(cls, tz=None):
        moment = datetime(2025, 9, 9, 21, 30, tzinfo=timezone.utc)
        if tz is None:
            return (moment + timedelta(hours=5, minutes=30)).replace(tzinfo=None)
        return moment.astimezone(tz)


def test_daily_revenue_window_ends_on_utc_date(monkeypatch):
    monkeypatch.setattr(reports, "datetime", KolkataEarlyMorning)
    sale = transaction_from_row({
        "id": "t1", "type": "income", "amount": 100,
        "transaction_date": "2025-09-09T21:30:00+00:00",
    })

    res = daily_revenue([sale])

    assert reports.utc_today() == date(2025, 9, 9)
    assert res[-1]["date"] == "2025-09-09"
    assert res[-1]["revenue"] == 100


def test_top_dishes_sorted_unique_and_truncated():
    trans = [
        make_tx(f"t{i}", "income", 10 * (i + 1), dish=DishRef(name=f"Dish {i}", kind="veg"))
        for i in range(8)
    ]
    trans.append(make_tx("t99", "income", 500, dish=DishRef(name="Dish 0", kind="veg"), quantity=3))
    res = top_dishes(trans)

    assert len(res) <= 5
    sales = [r["sales"] for r in res]
    assert sales == sorted(sales, reverse=True)
    names = [r["name"] for r in res]
    assert len(names) == len(set(names))
    assert res[0]["name"] == "Dish 0"
    assert res[0]["sales"] == 510
    assert res[0]["quantity"] == 4


def test_top_dishes_ignores_expenses_and_dishless_rows():
    trans = [
        make_tx("t1", "expense", 1000, dish=VEG_DISH),
        make_tx("t2", "income", 1000),
        make_tx("t3", "income", 20, dish=NON_VEG_DISH, quantity=2),
    ]
    res = top_dishes(trans)

    assert res == [{"name": "Chicken 65", "sales": 20, "quantity": 2, "type": "non_veg"}]


def test_top_dishes_ties_keep_first_seen_order():
    trans = [
        make_tx("t1", "income", 50, dish=DishRef(name="Naan", kind="veg")),
        make_tx("t2", "income", 50, dish=DishRef(name="Roti", kind="veg")),
        make_tx("t3", "income", 50, dish=DishRef(name="Kulcha", kind="veg")),
    ]
    assert [r["name"] for r in top_dishes(trans)] == ["Naan", "Roti", "Kulcha"]


def test_top_dishes_merges_same_name_dishes():
    trans = [
        make_tx("t1", "income", 30, dish=DishRef(name="Biryani", kind="veg")),
        make_tx("t2", "income", 70, dish=DishRef(name="Biryani", kind="non_veg")),
    ]
    res = top_dishes(trans)

    assert len(res) == 1
    assert res[0]["sales"] == 100


def test_category_breakdown_counts():
    starters = Category("c1", "Starters", "🥗")
    mains = Category("c2", "Main Course", "🍛")
    dishes = [
        make_dish("d1", "veg", starters),
        make_dish("d2", "non_veg", starters),
        make_dish("d3", "veg", mains),
        make_dish("d4", "non_veg"),
        make_dish("d5", "veg"),
    ]
    res = category_breakdown(dishes)
    by_name = {r["name"]: r for r in res}

    assert [r["name"] for r in res] == ["Starters", "Main Course", "Uncategorized"]
    assert by_name["Starters"]["dishes"] == 2
    assert by_name["Uncategorized"]["veg_count"] == 1
    assert by_name["Uncategorized"]["non_veg_count"] == 1
    for r in res:
        assert r["veg_count"] + r["non_veg_count"] == r["dishes"]
    assert sum(r["dishes"] for r in res) == len(dishes)


def test_category_breakdown_empty():
    assert category_breakdown([]) == []


def test_dashboard_stats():
    trans = [make_tx("t1", "income", 500), make_tx("t2", "expense", 200)]
    dishes = [make_dish("d1", "veg"), make_dish("d2", "veg"), make_dish("d3", "non_veg")]
    stats = dashboard_stats(trans, dishes)

    assert stats["total_income"] == 500
    assert stats["total_expenses"] == 200
    assert stats["profit"] == 300
    assert stats["veg_dishes"] == 2
    assert stats["non_veg_dishes"] == 1
    assert stats["total_dishes"] == 3


def test_recent_transactions_newest_first():
    trans = [
        make_tx("t1", "income", 1, ts="2025-01-01T00:00:00"),
        make_tx("t2", "income", 1, ts="2025-03-01T00:00:00"),
        make_tx("t3", "income", 1, ts="2025-02-01T00:00:00"),
    ]
    assert [t.id for t in recent_transactions(trans, 2)] == ["t2", "t3"]


def test_payroll_total():
    workers = [
        Worker("w1", "Ravi", "Chef", Decimal("35000"), date(2025, 7, 1)),
        Worker("w2", "Anita", "Cashier", Decimal("18000.50"), date(2025, 7, 1)),
    ]
    assert payroll_total(workers) == Decimal("53000.50")
    assert payroll_total([]) == 0
