from fastapi import APIRouter, Depends, Query

from auth_starter.constants import Role
from auth_starter.deps import get_user_service
from auth_starter.schemas import UserOut, UserUpdate
from auth_starter.security import require_roles
from auth_starter.services.user_service import UserService

router = APIRouter(
    prefix="/users", tags=["users"], dependencies=[Depends(require_roles([Role.ADMIN]))]
)


@router.get("", response_model=list[UserOut])
async def list_users(
    limit: int = Query(10, ge=1, le=100),
    skip: int = Query(0, ge=0),
    service: UserService = Depends(get_user_service),
):
    users = await service.list_users(limit=limit, skip=skip)
    return [UserOut.model_validate(u) for u in users]


@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: str, service: UserService = Depends(get_user_service)):
    return UserOut.model_validate(await service.get_user(user_id))


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    service: UserService = Depends(get_user_service),
):
    user = await service.update_user(user_id, payload.model_dump(exclude_unset=True))
    return UserOut.model_validate(user)


@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: str, service: UserService = Depends(get_user_service)):
    await service.delete_user(user_id)
