"""
Users API Router

Sign-in sync (mirrors the identity-provider user locally) and the
monthly usage report.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from brainer.api.deps import get_current_user_id
from brainer.core.database import get_db
from brainer.repositories import users as repo
from brainer.schemas.users import UsageStats, UserRead, UserSync
from brainer.services import usage

router = APIRouter()


@router.post("/sync", response_model=UserRead)
async def sync_user(
    payload: UserSync,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create or refresh the local user row after sign-in."""
    if payload.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Cannot sync another user"
        )
    return await repo.upsert_user(db, payload.id, payload.email, payload.name)


@router.get("/me/usage", response_model=UsageStats)
async def read_usage(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Monthly counts, plan limits and percentage used."""
    stats = await usage.get_usage_stats(db, user_id)
    if stats is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found. Please sign in again.",
        )
    return stats
