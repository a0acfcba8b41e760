"""Dashboard endpoint."""
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from drivetest.database import get_db
from drivetest.dependencies.auth import get_current_user
from drivetest.models.db.user import User
from drivetest.services import stats_service

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("")
def get_dashboard(
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    """Test statistics, study progress and pass chances."""
    return stats_service.get_dashboard(db, current_user)
