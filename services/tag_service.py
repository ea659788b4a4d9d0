"""
Tag Service - workspace tags and their links to tasks.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, func

from models import db, Tag
from services.errors import NotFoundError, ValidationError
from utils.db import atomic, retry_on_conflict

logger = logging.getLogger(__name__)


def list_tags(workspace_id: str) -> List[Tag]:
    stmt = select(Tag).where(Tag.workspace_id == workspace_id).order_by(func.lower(Tag.tag))
    return list(db.session.execute(stmt).scalars())


def get_tag(workspace_id: str, tag_id: int) -> Tag:
    tag = db.session.get(Tag, tag_id)
    if tag is None or tag.workspace_id != workspace_id:
        raise NotFoundError("Tag not found", details={'tag_id': tag_id})
    return tag


@retry_on_conflict
def create_tag(workspace_id: str, name, description: Optional[str] = None,
               color: Optional[str] = None) -> Tag:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Tag name is required")
    name = name.strip()

    with atomic():
        exists = db.session.execute(
            select(Tag.id).where(Tag.workspace_id == workspace_id, func.lower(Tag.tag) == name.lower())
        ).first()
        if exists is not None:
            raise ValidationError("Tag already exists")
        tag = Tag(workspace_id=workspace_id, tag=name, description=description)
        if color:
            tag.color = color
        db.session.add(tag)

    logger.info(f"Tag '{name}' created in workspace {workspace_id}")
    return tag


@retry_on_conflict
def delete_tag(workspace_id: str, tag_id: int):
    """Delete a tag; its task links go with it."""
    with atomic():
        tag = get_tag(workspace_id, tag_id)
        db.session.delete(tag)
    logger.info(f"Tag {tag_id} deleted from workspace {workspace_id}")
