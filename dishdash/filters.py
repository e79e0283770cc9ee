from datetime import date
from typing import Callable, Iterable, Iterator, Optional, TypeVar

from dishdash.domain import Dish, Transaction, Worker

R = TypeVar("R")


def select(items: Iterable[R], *preds: Callable[[R], bool]) -> Iterator[R]:
    for item in items:
        if all(p(item) for p in preds):
            yield item


def by_kind(kind: Optional[str]):
    # None or "all" keeps everything
    def _filter(t: Transaction) -> bool:
        return kind in (None, "all") or t.kind == kind

    return _filter


def by_date_range(start: date, end: date):
    def _filter(t: Transaction) -> bool:
        return start <= t.ts.date() <= end

    return _filter


def by_category(cat_id: Optional[str]):
    def _filter(d: Dish) -> bool:
        return cat_id in (None, "all") or d.category_id == cat_id

    return _filter


def by_name(term: str):
    needle = (term or "").strip().lower()

    def _filter(d: Dish) -> bool:
        return needle in d.name.lower()

    return _filter


def available_only(d: Dish) -> bool:
    return d.is_available


def by_month(year: int, month: int):
    def _filter(w: Worker) -> bool:
        return w.effective_date.year == year and w.effective_date.month == month

    return _filter
