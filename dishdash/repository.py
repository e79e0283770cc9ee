"""Data access for the dashboard.

``SupabaseRepository`` talks to the hosted tables; ``SeedRepository``
serves the same calls from ``data/seed.json`` so the app runs without
credentials. Both return typed records parsed in ``transforms``.
"""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar
from uuid import uuid4

from dishdash.domain import Category, Dish, Transaction, Worker
from dishdash.transforms import (
    RecordError,
    category_from_row,
    dish_from_row,
    load_seed,
    transaction_from_row,
    worker_from_row,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")

TRANSACTION_SELECT = "*, dishes(name, type, categories(name))"
DISH_SELECT = "*, categories(name, icon)"


class BackendError(Exception):
    """A call to the data service failed; the page keeps its previous state."""

    def __init__(self, operation: str, table: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.table = table
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to {operation} {table}{detail}")


def parse_rows(rows: Iterable[dict], parser: Callable[[dict], R], table: str) -> Tuple[R, ...]:
    parsed = []
    for row in rows:
        try:
            parsed.append(parser(row))
        except RecordError as e:
            logger.warning("skipping malformed %s row: %s", table, e)
    return tuple(parsed)


class Repository(ABC):

    @abstractmethod
    def list_transactions(self, kind: Optional[str] = None, limit: Optional[int] = None) -> Tuple[Transaction, ...]:
        """Newest first, with the related dish embedded."""

    @abstractmethod
    def list_dishes(self, available_only: bool = False) -> Tuple[Dish, ...]:
        """Ordered by name, with the related category embedded."""

    @abstractmethod
    def list_categories(self) -> Tuple[Category, ...]:
        pass

    @abstractmethod
    def list_workers(self) -> Tuple[Worker, ...]:
        """Newest first by creation time."""

    @abstractmethod
    def add_transaction(self, payload: dict) -> None:
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: str) -> None:
        pass

    @abstractmethod
    def save_dish(self, payload: dict, dish_id: Optional[str] = None) -> None:
        """Insert when ``dish_id`` is None, otherwise update that dish."""

    @abstractmethod
    def delete_dish(self, dish_id: str) -> None:
        pass

    @abstractmethod
    def save_worker(self, payload: dict, worker_id: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def delete_worker(self, worker_id: str) -> None:
        pass


class SupabaseRepository(Repository):

    def __init__(self, client):
        self.client = client

    def _run(self, operation: str, table: str, query) -> List[dict]:
        try:
            response = query.execute()
        except Exception as e:
            logger.error("backend %s on %s failed: %s", operation, table, e)
            raise BackendError(operation, table, e) from e
        return response.data or []

    def list_transactions(self, kind=None, limit=None):
        query = self.client.table("transactions").select(TRANSACTION_SELECT)
        if kind:
            query = query.eq("type", kind)
        query = query.order("transaction_date", desc=True)
        if limit:
            query = query.limit(limit)
        rows = self._run("load", "transactions", query)
        return parse_rows(rows, transaction_from_row, "transactions")

    def list_dishes(self, available_only=False):
        query = self.client.table("dishes").select(DISH_SELECT)
        if available_only:
            query = query.eq("is_available", True)
        rows = self._run("load", "dishes", query.order("name"))
        return parse_rows(rows, dish_from_row, "dishes")

    def list_categories(self):
        query = self.client.table("categories").select("*").order("name")
        rows = self._run("load", "categories", query)
        return parse_rows(rows, category_from_row, "categories")

    def list_workers(self):
        query = self.client.table("workers").select("*").order("created_at", desc=True)
        rows = self._run("load", "workers", query)
        return parse_rows(rows, worker_from_row, "workers")

    def add_transaction(self, payload):
        self._run("save", "transactions", self.client.table("transactions").insert(payload))
        logger.info("recorded %s of %s", payload.get("type"), payload.get("amount"))

    def delete_transaction(self, transaction_id):
        table = self.client.table("transactions")
        self._run("delete", "transactions", table.delete().eq("id", transaction_id))
        logger.info("deleted transaction %s", transaction_id)

    def save_dish(self, payload, dish_id=None):
        table = self.client.table("dishes")
        if dish_id:
            self._run("update", "dishes", table.update(payload).eq("id", dish_id))
        else:
            self._run("save", "dishes", table.insert(payload))
        logger.info("saved dish %s", payload.get("name"))

    def delete_dish(self, dish_id):
        table = self.client.table("dishes")
        self._run("delete", "dishes", table.delete().eq("id", dish_id))
        logger.info("deleted dish %s", dish_id)

    def save_worker(self, payload, worker_id=None):
        table = self.client.table("workers")
        if worker_id:
            self._run("update", "workers", table.update(payload).eq("id", worker_id))
        else:
            self._run("save", "workers", table.insert(payload))
        logger.info("saved worker %s", payload.get("name"))

    def delete_worker(self, worker_id):
        table = self.client.table("workers")
        self._run("delete", "workers", table.delete().eq("id", worker_id))
        logger.info("deleted worker %s", worker_id)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class SeedRepository(Repository):
    """In-memory tables loaded from a seed file; writes last for the process.

    One instance is shared by every browser session, so table access goes
    through a lock and reads work on copies.
    """

    def __init__(self, tables: dict):
        self.tables = {name: [dict(r) for r in rows] for name, rows in tables.items()}
        self._lock = threading.Lock()

    @classmethod
    def from_file(cls, path: str) -> "SeedRepository":
        return cls(load_seed(path))

    def _snapshot(self, *names: str) -> List[List[dict]]:
        with self._lock:
            return [[dict(r) for r in self.tables[name]] for name in names]

    @staticmethod
    def _find(rows: List[dict], record_id: Optional[str]) -> Optional[dict]:
        return next((r for r in rows if str(r.get("id")) == str(record_id)), None)

    def list_transactions(self, kind=None, limit=None):
        transactions, dishes, categories = self._snapshot("transactions", "dishes", "categories")

        def joined_dish(dish_id):
            dish = self._find(dishes, dish_id) if dish_id else None
            if dish is None:
                return None
            category = self._find(categories, dish.get("category_id"))
            return {
                "name": dish.get("name"),
                "type": dish.get("type"),
                "categories": {"name": category["name"]} if category else None,
            }

        rows = [
            {**r, "dishes": joined_dish(r.get("dish_id"))}
            for r in transactions
            if not kind or r.get("type") == kind
        ]
        rows.sort(key=lambda r: str(r.get("transaction_date", "")), reverse=True)
        if limit:
            rows = rows[:limit]
        return parse_rows(rows, transaction_from_row, "transactions")

    def list_dishes(self, available_only=False):
        dishes, categories = self._snapshot("dishes", "categories")
        rows = []
        for r in dishes:
            if available_only and not r.get("is_available", True):
                continue
            category = self._find(categories, r.get("category_id"))
            embedded = {"name": category["name"], "icon": category.get("icon", "")} if category else None
            rows.append({**r, "categories": embedded})
        rows.sort(key=lambda r: str(r.get("name", "")))
        return parse_rows(rows, dish_from_row, "dishes")

    def list_categories(self):
        [categories] = self._snapshot("categories")
        rows = sorted(categories, key=lambda r: str(r.get("name", "")))
        return parse_rows(rows, category_from_row, "categories")

    def list_workers(self):
        [workers] = self._snapshot("workers")
        rows = sorted(workers, key=lambda r: str(r.get("created_at", "")), reverse=True)
        return parse_rows(rows, worker_from_row, "workers")

    def _insert(self, table: str, payload: dict, **defaults) -> None:
        with self._lock:
            self.tables[table].append({"id": str(uuid4()), **defaults, **payload})

    def _update(self, table: str, record_id: str, payload: dict, **extra) -> None:
        with self._lock:
            row = self._find(self.tables[table], record_id)
            if row is None:
                raise BackendError("update", table, LookupError(f"no row with id {record_id}"))
            row.update(payload, **extra)

    def _delete(self, table: str, record_id: str) -> None:
        with self._lock:
            self.tables[table] = [r for r in self.tables[table] if str(r.get("id")) != str(record_id)]

    def add_transaction(self, payload):
        self._insert("transactions", payload, transaction_date=_now())

    def delete_transaction(self, transaction_id):
        self._delete("transactions", transaction_id)

    def save_dish(self, payload, dish_id=None):
        if dish_id:
            self._update("dishes", dish_id, payload)
        else:
            self._insert("dishes", payload)

    def delete_dish(self, dish_id):
        self._delete("dishes", dish_id)

    def save_worker(self, payload, worker_id=None):
        if worker_id:
            self._update("workers", worker_id, payload, updated_at=_now())
        else:
            now = _now()
            self._insert("workers", payload, created_at=now, updated_at=now)

    def delete_worker(self, worker_id):
        self._delete("workers", worker_id)
