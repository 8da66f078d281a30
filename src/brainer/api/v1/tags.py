"""Tags API Router"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from brainer.api.deps import get_current_user_id
from brainer.core.database import get_db
from brainer.repositories import tags as repo
from brainer.schemas.tags import TagCreate, TagRead

router = APIRouter(dependencies=[Depends(get_current_user_id)])


@router.get("/", response_model=list[TagRead])
async def list_tags(db: AsyncSession = Depends(get_db)):
    """All tags, ordered by name."""
    return await repo.list_tags(db)


@router.post("/", response_model=TagRead, status_code=status.HTTP_201_CREATED)
async def create_tag(tag: TagCreate, db: AsyncSession = Depends(get_db)):
    """Create a tag. Names are unique case-insensitively (stored lower-case)."""
    if await repo.get_by_name(db, tag.name) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=f"Tag '{tag.name}' already exists"
        )
    return await repo.create_tag(db, tag.name, tag.color)
