import asyncio
from typing import Tuple

from dishdash.domain import Category, Dish, Transaction, Worker
from dishdash.repository import Repository


async def load_menu(repo: Repository) -> Tuple[Tuple[Dish, ...], Tuple[Category, ...]]:
    """Fetch dishes and categories in parallel and join before rendering.

    The repository calls block, so each runs in a worker thread; a failure
    in either read propagates and neither result is used.
    """
    dishes, categories = await asyncio.gather(
        asyncio.to_thread(repo.list_dishes),
        asyncio.to_thread(repo.list_categories),
    )
    return dishes, categories


async def load_transactions_page(repo: Repository) -> Tuple[Tuple[Transaction, ...], Tuple[Dish, ...]]:
    # only available dishes can be picked for a new sale
    transactions, dishes = await asyncio.gather(
        asyncio.to_thread(repo.list_transactions),
        asyncio.to_thread(repo.list_dishes, True),
    )
    return transactions, dishes


async def load_report_data(repo: Repository) -> Tuple[Tuple[Transaction, ...], Tuple[Dish, ...]]:
    transactions, dishes = await asyncio.gather(
        asyncio.to_thread(repo.list_transactions),
        asyncio.to_thread(repo.list_dishes),
    )
    return transactions, dishes


async def load_workers(repo: Repository) -> Tuple[Worker, ...]:
    return await asyncio.to_thread(repo.list_workers)
