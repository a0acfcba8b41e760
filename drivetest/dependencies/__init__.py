"""FastAPI dependencies."""
from drivetest.dependencies.auth import get_current_user, get_optional_user

__all__ = ["get_current_user", "get_optional_user"]
