"""Bearer-token resolution of the acting user.

Tokens are issued by the identity service that shares ``JWT_SECRET``; this API
only verifies them and loads the user they name.
"""

from datetime import datetime, timedelta
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User

load_dotenv()

SECRET_KEY = os.getenv("JWT_SECRET", "dev-secret-change-me")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
EXPIRY_MINUTES = int(os.getenv("JWT_EXPIRY_MINUTES", "60"))

# auto_error=False so a missing header gets the same 401 body as a bad token.
bearer_token = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def create_access_token(data: dict) -> str:
    claims = {**data, "exp": datetime.utcnow() + timedelta(minutes=EXPIRY_MINUTES)}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token",
        headers={"WWW-Authenticate": "Bearer"},
    )


def user_id_from_token(token: Optional[str]) -> int:
    """Return the ``user_id`` claim of a valid token, else raise 401."""
    if not token:
        raise _unauthorized()
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise _unauthorized()

    user_id = claims.get("user_id")
    if not user_id:
        raise _unauthorized()
    return user_id


async def get_current_user(
    token: Optional[str] = Depends(bearer_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    user_id = user_id_from_token(token)
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise _unauthorized()
    return user
