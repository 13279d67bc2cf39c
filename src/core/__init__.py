from src.core.config import settings
from src.core.database import AsyncSessionDep, get_db
from src.core.security import create_access_token, get_password_hash, verify_token

__all__ = ["settings", "get_db", "AsyncSessionDep", "create_access_token", "get_password_hash", "verify_token"]
