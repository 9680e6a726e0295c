from fastapi import APIRouter, Depends, HTTPException, status

from auth_starter.constants import Role
from auth_starter.deps import CurrentUser, get_preference_service
from auth_starter.models import UserAccount
from auth_starter.schemas import PreferenceOut, PreferenceUpdate
from auth_starter.services.preference_service import PreferenceService

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _ensure_owner_or_admin(current: UserAccount, user_id: str) -> None:
    if current.id != user_id and current.role != Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")


@router.get("/preferences/{user_id}", response_model=PreferenceOut)
async def get_preferences(
    user_id: str,
    current: UserAccount = CurrentUser,
    service: PreferenceService = Depends(get_preference_service),
):
    _ensure_owner_or_admin(current, user_id)
    return PreferenceOut.model_validate(await service.get_preference(user_id))


@router.put("/preferences/{user_id}", response_model=PreferenceOut)
async def update_preferences(
    user_id: str,
    payload: PreferenceUpdate,
    current: UserAccount = CurrentUser,
    service: PreferenceService = Depends(get_preference_service),
):
    _ensure_owner_or_admin(current, user_id)
    preference = await service.update_preference(
        user_id,
        email=payload.email,
        opted_in=payload.opted_in,
        subscribed_categories=payload.subscribed_categories,
    )
    return PreferenceOut.model_validate(preference)
