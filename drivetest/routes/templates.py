"""Test template endpoints."""
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session as DbSession

from drivetest.database import get_db
from drivetest.dependencies.auth import get_current_user
from drivetest.models.db.user import User
from drivetest.models.templates import TemplateCreate
from drivetest.serialization import serialize_template
from drivetest.services import template_service

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("")
def list_templates(
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> list[dict[str, Any]]:
    return [serialize_template(t) for t in template_service.list_templates(db, current_user.id)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_template(
    data: TemplateCreate,
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    return serialize_template(template_service.create_template(db, current_user, data))


@router.put("/{template_id}")
def update_template(
    template_id: int,
    data: TemplateCreate,
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    template = template_service.update_template(db, current_user, template_id, data)
    return serialize_template(template)


@router.delete("/{template_id}")
def delete_template(
    template_id: int,
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, bool]:
    template_service.delete_template(db, current_user, template_id)
    return {"success": True}
