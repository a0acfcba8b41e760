"""License type endpoints."""
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from drivetest.database import get_db
from drivetest.serialization import serialize_license_type
from drivetest.services import question_service

router = APIRouter(prefix="/api/license-types", tags=["license-types"])


@router.get("")
def list_license_types(db: Annotated[DbSession, Depends(get_db)]) -> list[dict[str, Any]]:
    """Parent license types with their children."""
    return [
        serialize_license_type(license_type, with_children=True)
        for license_type in question_service.list_parent_license_types(db)
    ]
