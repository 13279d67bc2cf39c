from src.modules.auth.models import User
from src.modules.auth.router import router

__all__ = ["User", "router"]
