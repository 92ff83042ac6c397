from db.models import REQUIRED_BOOT_TABLES
from db.repository import InMemoryRepository
from db.session import SessionManager, SINGLETON_LOCK_KEY

__all__ = ["InMemoryRepository", "SessionManager", "SINGLETON_LOCK_KEY", "REQUIRED_BOOT_TABLES"]
