"""Profile router: /api/v1/profile/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from dod.auth.dependencies import get_current_user_id
from dod.database import get_session
from dod.db.models import Profile
from dod.users.schemas import ProfileResponse, ProfileUpdateRequest
from dod.users.service import UsernameTakenError, get_profile, upsert_profile

router = APIRouter(prefix="/api/v1/profile", tags=["Profile"])


def _profile_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        user_id=profile.user_id,
        username=profile.username,
        theme=profile.theme,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


@router.get("/me", response_model=ProfileResponse | None)
async def get_my_profile(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse | None:
    """Own profile, or null before onboarding."""
    profile = await get_profile(db, user_id)
    return _profile_response(profile) if profile else None


@router.put("/me", response_model=ProfileResponse)
async def put_my_profile(
    body: ProfileUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Choose a username (and optionally a theme)."""
    try:
        profile = await upsert_profile(db, user_id, body.username, body.theme)
    except UsernameTakenError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _profile_response(profile)
