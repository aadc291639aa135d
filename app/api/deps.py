"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import CredentialsException
from app.core.security import decode_user_id
from app.database import get_db
from app.models.user import User
from app.services.script_service import ScriptService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user(
    db: DbSession,
    token: Annotated[str, Depends(oauth2_scheme)],
) -> User:
    """Resolve the bearer token to a user."""
    user_id = decode_user_id(token)
    if user_id is None:
        raise CredentialsException()
    user = await db.get(User, user_id)
    if user is None:
        raise CredentialsException()
    return user


def get_script_service(db: DbSession) -> ScriptService:
    return ScriptService(db)


CurrentUser = Annotated[User, Depends(get_current_user)]
Scripts = Annotated[ScriptService, Depends(get_script_service)]
