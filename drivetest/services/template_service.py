"""Service layer for saved test templates."""
import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession, selectinload

from drivetest.models.db.test_template import TestTemplate
from drivetest.models.db.user import User
from drivetest.models.templates import TemplateCreate
from drivetest.services import question_service

logger = logging.getLogger(__name__)


def list_templates(db: DbSession, user_id: int) -> list[TestTemplate]:
    return list(
        db.execute(
            select(TestTemplate)
            .options(selectinload(TestTemplate.license_type))
            .where(TestTemplate.user_id == user_id)
            .order_by(TestTemplate.created_at.desc(), TestTemplate.id.desc())
        ).scalars().all()
    )


def get_owned_template(db: DbSession, user: User, template_id: int) -> TestTemplate:
    template = db.get(TestTemplate, template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    if template.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not allowed to access this template")
    return template


def _apply(db: DbSession, template: TestTemplate, data: TemplateCreate) -> None:
    question_service.require_license_type(db, data.license_type_id)
    question_service.require_categories(db, data.category_ids)
    template.name = data.name
    template.test_type = data.test_type.value
    template.license_type_id = data.license_type_id
    template.question_count = data.question_count
    template.time_per_question = data.time_per_question
    template.failure_threshold = data.failure_threshold
    template.category_ids = data.category_ids
    template.auto_advance = True if data.auto_advance is None else data.auto_advance


def create_template(db: DbSession, user: User, data: TemplateCreate) -> TestTemplate:
    template = TestTemplate(user_id=user.id)
    _apply(db, template, data)
    db.add(template)
    db.commit()
    db.refresh(template)
    logger.info("Created template %s for user %s", template.id, user.id)
    return template


def update_template(
    db: DbSession, user: User, template_id: int, data: TemplateCreate
) -> TestTemplate:
    template = get_owned_template(db, user, template_id)
    _apply(db, template, data)
    db.commit()
    db.refresh(template)
    return template


def delete_template(db: DbSession, user: User, template_id: int) -> None:
    template = get_owned_template(db, user, template_id)
    db.delete(template)
    db.commit()
    logger.info("Deleted template %s", template_id)
