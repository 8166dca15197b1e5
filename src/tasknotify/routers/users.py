from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..auth import require_operator
from ..deps import get_user_directory
from ..directory import UserDirectory
from ..errors import DirectoryError, OwnerNotFoundError
from ..schemas import UserCreate, UserOut

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"],
    dependencies=[Depends(require_operator)],
)


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register User",
    description="Register an account in the identity directory.",
    responses={
        201: {"description": "User registered"},
        409: {"description": "User id already taken"},
    },
)
def create_user(payload: UserCreate, directory: UserDirectory = Depends(get_user_directory)) -> UserOut:
    created = directory.create(payload.id, payload.email)
    if created is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")
    return UserOut(**created)


# PUBLIC_INTERFACE
@router.get(
    "/{user_id}",
    response_model=UserOut,
    summary="Get User",
    responses={404: {"description": "User not found"}},
)
def get_user(user_id: str, directory: UserDirectory = Depends(get_user_directory)) -> UserOut:
    try:
        account = directory.get_user(user_id)
    except OwnerNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from None
    except DirectoryError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Directory unavailable") from None
    return UserOut(**account)


# PUBLIC_INTERFACE
@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete User",
    description=(
        "Remove an account from the directory. Tasks it owned are kept; the "
        "overdue sweep reports them as owner-not-found."
    ),
    responses={404: {"description": "User not found"}},
)
def delete_user(user_id: str, directory: UserDirectory = Depends(get_user_directory)) -> None:
    if not directory.delete(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return None
