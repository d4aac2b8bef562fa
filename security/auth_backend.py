import uuid
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from common.jwt import ACCESS, verify_token
from models.base import get_db
from models.user import User

# OAuth2PasswordBearer expects a tokenUrl for the interactive docs to work.
# Use a dedicated OAuth2-compatible token endpoint that accepts form data.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=True)


async def get_current_user(token: str = Depends(oauth2_scheme), db: AsyncSession = Depends(get_db)) -> User:
    """
    Dependency to retrieve the current authenticated user from the JWT.
    Validates the access token and fetches the associated user from DB.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = verify_token(token, expected_token_type=ACCESS)
        subject: Optional[str] = payload.get("sub")
        user_id = uuid.UUID(subject) if subject else None
    except (JWTError, ValueError):
        raise credentials_exception
    if user_id is None:
        raise credentials_exception

    user: Optional[User] = await db.get(User, user_id)
    if not user:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Placeholder for additional user state checks (e.g. disabled accounts).
    """
    return current_user
