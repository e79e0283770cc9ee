from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Generic, Mapping, Optional, TypeVar

from dishdash.domain import DISH_KINDS, INCOME, TRANSACTION_KINDS, Category, Dish

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_some(self) -> bool:
        pass

    def is_none(self) -> bool:
        return not self.is_some()


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f):
        return Some(f(self._value))

    def bind(self, f):
        return f(self._value)

    def get_or_else(self, default):
        return self._value

    def is_some(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def map(self, f):
        return self

    def bind(self, f):
        return self

    def get_or_else(self, default):
        return default

    def is_some(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):
    """Right carries a value, Left carries an error dict with 'error' and 'message' keys."""

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    def is_left(self) -> bool:
        return not self.is_right()

    @abstractmethod
    def get_error(self) -> E:
        pass


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f):
        return Right(f(self._value))

    def bind(self, f):
        return f(self._value)

    def get_or_else(self, default):
        return self._value

    def is_right(self) -> bool:
        return True

    def get_error(self):
        raise ValueError("Right has no error")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f):
        return self

    def bind(self, f):
        return self

    def get_or_else(self, default):
        return default

    def is_right(self) -> bool:
        return False

    def get_error(self):
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


def safe_dish(dishes: tuple[Dish, ...], dish_id: Optional[str]) -> Maybe[Dish]:
    for dish in dishes:
        if dish.id == dish_id:
            return Some(dish)
    return Nothing()


def safe_category(cats: tuple[Category, ...], cat_id: Optional[str]) -> Maybe[Category]:
    for cat in cats:
        if cat.id == cat_id:
            return Some(cat)
    return Nothing()


def _error(code: str, message: str, field: str) -> Left:
    return Left({"error": code, "message": message, "field": field})


def _text(form: Mapping[str, Any], field: str) -> str:
    return str(form.get(field) or "").strip()


def _money(form: Mapping[str, Any], field: str, label: str) -> Either[dict, Decimal]:
    raw = form.get(field)
    if raw is None or str(raw).strip() == "":
        return _error("missing_field", f"{label} is required", field)
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        return _error("not_a_number", f"{label} must be a number", field)
    if not value.is_finite():
        return _error("not_a_number", f"{label} must be a number", field)
    if value < 0:
        return _error("negative_amount", f"{label} cannot be negative", field)
    return Right(value)


def validate_transaction_form(
    form: Mapping[str, Any], dishes: tuple[Dish, ...]
) -> Either[dict, dict]:
    """Check a transaction form and build the insert payload.

    A dish (and its quantity) only applies to income; for expenses any
    selected dish is dropped.
    """
    kind = form.get("type")
    if kind not in TRANSACTION_KINDS:
        return _error("invalid_type", f"Unknown transaction type {kind!r}", "type")

    amount = _money(form, "amount", "Amount")
    if amount.is_left():
        return amount

    description = _text(form, "description")
    if not description:
        return _error("missing_field", "Description is required", "description")

    dish_id = (form.get("dish_id") or None) if kind == INCOME else None
    quantity = None
    if dish_id:
        if safe_dish(dishes, dish_id).is_none():
            return _error("dish_not_found", f"Dish with ID {dish_id} does not exist", "dish_id")
        raw = form.get("quantity")
        try:
            quantity = 1 if raw in (None, "") else int(raw)
        except (TypeError, ValueError):
            return _error("not_a_number", "Quantity must be a whole number", "quantity")
        if quantity < 1:
            return _error("invalid_quantity", "Quantity must be at least 1", "quantity")

    return Right({
        "type": kind,
        "amount": float(amount.get_or_else(Decimal("0"))),
        "description": description,
        "dish_id": dish_id,
        "quantity": quantity,
    })


def validate_dish_form(
    form: Mapping[str, Any], categories: tuple[Category, ...]
) -> Either[dict, dict]:
    name = _text(form, "name")
    if not name:
        return _error("missing_field", "Dish name is required", "name")

    price = _money(form, "price", "Price")
    if price.is_left():
        return price

    kind = form.get("type")
    if kind not in DISH_KINDS:
        return _error("invalid_type", f"Unknown dish type {kind!r}", "type")

    category_id = form.get("category_id") or None
    if category_id and safe_category(categories, category_id).is_none():
        return _error("category_not_found", f"Category with ID {category_id} does not exist", "category_id")

    return Right({
        "name": name,
        "price": float(price.get_or_else(Decimal("0"))),
        "type": kind,
        "description": _text(form, "description") or None,
        "category_id": category_id,
        "is_available": bool(form.get("is_available", True)),
    })


def validate_worker_form(form: Mapping[str, Any]) -> Either[dict, dict]:
    name = _text(form, "name")
    designation = _text(form, "designation")
    if not name:
        return _error("missing_field", "Name is required", "name")
    if not designation:
        return _error("missing_field", "Designation is required", "designation")

    payment = _money(form, "payment", "Payment")
    if payment.is_left():
        return payment

    effective = form.get("effective_date") or date.today()
    if isinstance(effective, str):
        try:
            effective = date.fromisoformat(effective)
        except ValueError:
            return _error("invalid_date", f"Bad effective date {effective!r}", "effective_date")

    return Right({
        "name": name,
        "designation": designation,
        "payment": float(payment.get_or_else(Decimal("0"))),
        "effective_date": effective.isoformat(),
    })
