"""
API endpoints for users.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.database import get_db
from ...crud import UserNotFoundError
from ...schemas import (
    CreateUserRequest,
    ListUsersQuery,
    ListUsersResponse,
    UpdateUserRequest,
    User,
)
from ...services import UserService

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


def get_user_service(request: Request) -> UserService:
    """FastAPI dependency returning the application's user service."""
    return request.app.state.user_service


@router.post("", response_model=User)
async def create_user(
    request: CreateUserRequest,
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service),
) -> User:
    """
    Create a user.

    Raises:
        HTTPException: 500 if the user could not be stored
    """
    logger.info("CreateUser called")
    try:
        return await user_service.create_user(db, request)
    except Exception as e:
        logger.error(f"Failed to create user: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="internal server error"
        )


@router.put("/{user_id}", response_model=User)
async def update_user(
    user_id: str,
    request: UpdateUserRequest,
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service),
) -> User:
    """
    Replace a user's profile fields.

    Raises:
        HTTPException: 404 if the user does not exist, 500 on storage errors
    """
    logger.info(f"UpdateUser called with id {user_id}")
    try:
        return await user_service.update_user(db, user_id, request)
    except UserNotFoundError as e:
        logger.warning("Trying to update user that doesn't exist")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to update user: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="internal server error"
        )


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service),
) -> Response:
    """
    Delete a user.

    Raises:
        HTTPException: 404 if the user does not exist, 500 on storage errors
    """
    logger.info(f"DeleteUser called with id {user_id}")
    try:
        await user_service.delete_user(db, user_id)
    except UserNotFoundError as e:
        logger.warning("Trying to delete user that doesn't exist")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to delete user: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="internal server error"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("", response_model=ListUsersResponse)
async def list_users(
    page: int = Query(0, ge=0, description="Zero-based page number"),
    page_size: int = Query(10, ge=0, le=100, description="Page size (0 means default)"),
    country: Optional[str] = Query(None, description="Filter by country"),
    first_name: Optional[str] = Query(None, description="Filter by first name"),
    last_name: Optional[str] = Query(None, description="Filter by last name"),
    nickname: Optional[str] = Query(None, description="Filter by nickname"),
    email: Optional[str] = Query(None, description="Filter by email"),
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service),
) -> ListUsersResponse:
    """List users. Filters are exact matches and are combined with AND."""
    logger.info("ListUsers called")
    query = ListUsersQuery(
        page=page,
        page_size=page_size,
        country=country,
        first_name=first_name,
        last_name=last_name,
        nickname=nickname,
        email=email,
    )
    try:
        return await user_service.list_users(db, query)
    except Exception as e:
        logger.error(f"Failed to list users: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="internal server error"
        )
