"""API route modules."""
from drivetest.routes import (
    auth,
    dashboard,
    history,
    license_types,
    questions,
    templates,
    tests,
    users,
)

__all__ = [
    "auth",
    "dashboard",
    "history",
    "license_types",
    "questions",
    "templates",
    "tests",
    "users",
]
