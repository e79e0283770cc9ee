import json
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from dishdash.domain import (
    DISH_KINDS,
    INCOME,
    TRANSACTION_KINDS,
    Category,
    Dish,
    DishRef,
    Transaction,
    Worker,
)


class RecordError(ValueError):
    """Raised when a backend row cannot be turned into a typed record."""


def load_seed(path: str) -> Dict[str, List[dict]]:
    """Read sample rows laid out the way the backend tables return them."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {
        "categories": list(data.get("categories", [])),
        "dishes": list(data.get("dishes", [])),
        "transactions": list(data.get("transactions", [])),
        "workers": list(data.get("workers", [])),
    }


def _required(row: dict, key: str) -> Any:
    value = row.get(key)
    if value is None or value == "":
        raise RecordError(f"missing '{key}' in row {row.get('id', '?')}")
    return value


def parse_amount(value: Any, field: str = "amount") -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise RecordError(f"{field} is not a number: {value!r}")
    if not amount.is_finite() or amount < 0:
        raise RecordError(f"{field} must be a non-negative number: {value!r}")
    return amount


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp; aware values are normalised to naive UTC."""
    if isinstance(value, datetime):
        ts = value
    else:
        try:
            ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise RecordError(f"bad timestamp: {value!r}")
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise RecordError(f"bad date: {value!r}")


def category_from_row(row: dict) -> Category:
    return Category(
        id=str(_required(row, "id")),
        name=str(_required(row, "name")),
        icon=row.get("icon") or "",
    )


def dish_from_row(row: dict) -> Dish:
    kind = row.get("type")
    if kind not in DISH_KINDS:
        raise RecordError(f"unknown dish type {kind!r} in row {row.get('id', '?')}")

    category = None
    embedded = row.get("categories")
    if embedded:
        category = Category(
            id=str(row.get("category_id") or ""),
            name=embedded.get("name") or "",
            icon=embedded.get("icon") or "",
        )

    return Dish(
        id=str(_required(row, "id")),
        name=str(_required(row, "name")),
        price=parse_amount(row.get("price"), "price"),
        kind=kind,
        description=row.get("description") or None,
        is_available=bool(row.get("is_available", True)),
        category_id=row.get("category_id") or None,
        category=category,
    )


def dish_ref_from_row(row: Optional[dict]) -> Optional[DishRef]:
    if not row or not row.get("name"):
        return None
    categories = row.get("categories") or {}
    return DishRef(
        name=row["name"],
        kind=row.get("type") or "",
        category=categories.get("name"),
    )


def transaction_from_row(row: dict) -> Transaction:
    kind = row.get("type")
    if kind not in TRANSACTION_KINDS:
        raise RecordError(f"unknown transaction type {kind!r} in row {row.get('id', '?')}")

    quantity = row.get("quantity")
    try:
        quantity = int(quantity) if quantity is not None else None
    except (TypeError, ValueError):
        raise RecordError(f"quantity is not an integer: {quantity!r}")
    if quantity is not None and quantity < 1:
        raise RecordError(f"quantity must be at least 1: {quantity!r}")

    return Transaction(
        id=str(_required(row, "id")),
        kind=kind,
        amount=parse_amount(row.get("amount")),
        description=row.get("description") or "",
        ts=parse_timestamp(_required(row, "transaction_date")),
        dish_id=row.get("dish_id") or None,
        quantity=quantity,
        dish=dish_ref_from_row(row.get("dishes")),
    )


def worker_from_row(row: dict) -> Worker:
    created_at = parse_timestamp(row["created_at"]) if row.get("created_at") else None
    updated_at = parse_timestamp(row["updated_at"]) if row.get("updated_at") else None

    effective = row.get("effective_date")
    if effective:
        effective_date = parse_date(effective)
    elif created_at is not None:
        effective_date = created_at.date()
    else:
        raise RecordError(f"worker {row.get('id', '?')} has no effective date")

    return Worker(
        id=str(_required(row, "id")),
        name=str(_required(row, "name")),
        designation=row.get("designation") or "",
        payment=parse_amount(row.get("payment"), "payment"),
        effective_date=effective_date,
        created_at=created_at,
        updated_at=updated_at,
    )


def transactions_frame(trans: Tuple[Transaction, ...]) -> pd.DataFrame:
    """Flatten transactions for tables and CSV export; expenses get a negative signed amount."""
    rows = [
        {
            "date": t.ts,
            "type": t.kind,
            "description": t.description,
            "dish": t.dish.name if t.dish else "",
            "quantity": t.quantity if t.quantity is not None else pd.NA,
            "amount": float(t.amount),
        }
        for t in trans
    ]
    df = pd.DataFrame(rows, columns=["date", "type", "description", "dish", "quantity", "amount"])
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df["signed_amount"] = np.where(df["type"] == INCOME, df["amount"], -df["amount"])
    return df


def dishes_frame(dishes: Tuple[Dish, ...]) -> pd.DataFrame:
    rows = [
        {
            "name": d.name,
            "category": d.category_name,
            "type": d.kind,
            "price": float(d.price),
            "available": d.is_available,
        }
        for d in dishes
    ]
    return pd.DataFrame(rows, columns=["name", "category", "type", "price", "available"])


def workers_frame(workers: Tuple[Worker, ...]) -> pd.DataFrame:
    rows = [
        {
            "name": w.name,
            "designation": w.designation,
            "payment": float(w.payment),
            "effective_date": w.effective_date.isoformat(),
        }
        for w in workers
    ]
    return pd.DataFrame(rows, columns=["name", "designation", "payment", "effective_date"])
