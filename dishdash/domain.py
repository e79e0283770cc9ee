from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_KINDS = (INCOME, EXPENSE)

VEG = "veg"
NON_VEG = "non_veg"
DISH_KINDS = (VEG, NON_VEG)

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    icon: str = ""


@dataclass(frozen=True)
class DishRef:
    # joined projection of a dish embedded in a transaction row
    name: str
    kind: str              # "veg" or "non_veg"
    category: Optional[str] = None


@dataclass(frozen=True)
class Dish:
    id: str
    name: str
    price: Decimal
    kind: str                          # "veg" or "non_veg"
    description: Optional[str] = None
    is_available: bool = True
    category_id: Optional[str] = None
    category: Optional[Category] = None

    @property
    def category_name(self) -> str:
        return self.category.name if self.category else UNCATEGORIZED


@dataclass(frozen=True)
class Transaction:
    id: str
    kind: str                 # "income" or "expense"
    amount: Decimal           # always non-negative, kind carries the sign
    description: str
    ts: datetime              # transaction_date
    dish_id: Optional[str] = None
    quantity: Optional[int] = None
    dish: Optional[DishRef] = None


@dataclass(frozen=True)
class Worker:
    id: str
    name: str
    designation: str
    payment: Decimal
    effective_date: date
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
