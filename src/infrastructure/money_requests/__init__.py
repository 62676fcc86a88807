from src.infrastructure.money_requests.in_memory import InMemoryMoneyRequestRepository
from src.infrastructure.money_requests.postgres import PostgresMoneyRequestRepository
from src.infrastructure.money_requests.sqlite import SqliteMoneyRequestRepository

__all__ = [
    "InMemoryMoneyRequestRepository",
    "PostgresMoneyRequestRepository",
    "SqliteMoneyRequestRepository",
]
