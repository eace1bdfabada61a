from typing import List

from fastapi import APIRouter, Depends

from orderflow.config.factory import get_user_registry
from orderflow.shared.errors import NotFound
from orderflow.shared.schemas import ErrorResponse
from orderflow.users.crud import UserRegistry
from orderflow.users.schemas import User, UserCreate

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=User)
async def create_user_endpoint(payload: UserCreate, registry: UserRegistry = Depends(get_user_registry)):
    return registry.create_user(payload)


@router.get("/{user_id}", response_model=User, responses={404: {"model": ErrorResponse}})
async def get_user_endpoint(user_id: int, registry: UserRegistry = Depends(get_user_registry)):
    user = registry.get_user(user_id)
    if user is None:
        raise NotFound.for_entity("User", user_id, user_id=user_id)
    return user


@router.get("", response_model=List[User])
async def list_users_endpoint(registry: UserRegistry = Depends(get_user_registry)):
    return registry.list_users()
