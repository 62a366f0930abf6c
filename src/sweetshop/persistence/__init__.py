from sweetshop.persistence.database import InMemoryDatabase, Transaction
from sweetshop.persistence.repository import InMemoryRepository

__all__ = ["InMemoryDatabase", "Transaction", "InMemoryRepository"]
