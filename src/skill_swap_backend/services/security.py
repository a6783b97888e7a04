'''
Token verification and role checks for the API layer.
'''
from datetime import datetime, timedelta, timezone
from typing import Optional, Annotated
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from ..common.config import Settings, settings
from ..common.exceptions import NotAuthorizedError
from ..models.token import TokenPayload
from ..common.logger import log
from ..database import models as db_models
from ..database.db_enums import UserRole
from .user_service import UserService


# --- JWT Handling ---
class JWTHandler:
    @staticmethod
    def create_access_token(
        subject: str,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        expire = datetime.now(timezone.utc) + expires_delta
        to_encode = {"sub": str(subject), "exp": expire}
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> TokenPayload | None:
        try:
            payload = jwt.decode(
                token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
            )
            return TokenPayload(**payload)
        except (JWTError, ValueError) as e: # pydantic validation errors are ValueErrors
            log.warning(f"JWT decode/validation error: {e}")
            return None


# --- JWT Verification Dependency Function ---
# Tokens are issued by the identity provider; this service only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

async def verify_token_and_get_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    user_service: Annotated[UserService, Depends(UserService)]
    ) -> db_models.Users:
    """
    Dependency that verifies the bearer JWT and returns the active user it names.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = JWTHandler.decode_token(token)
    if not token_data or not token_data.sub:
        log.warning("JWT decode failed or invalid token structure.")
        raise credentials_exception

    user = await user_service.get_user_by_email(token_data.sub)

    if user is None:
        log.warning(f"User '{token_data.sub}' not found during token verification.")
        raise credentials_exception

    if not user.is_active:
        log.warning(f"User '{token_data.sub}' is not active.")
        raise credentials_exception

    log.info(f"JWT verified successfully for user: {user.email}")
    return user


# --- Roles ---
class AuthorizationPolicy:
    """
    Role decisions depend only on who is calling, the role asked for and
    configuration. Nothing about the request path or the client is consulted.
    """
    @staticmethod
    def roles_for(user: db_models.Users, config: Settings = settings) -> set[UserRole]:
        roles = {UserRole.USER}
        admin_emails = {email.strip().lower() for email in config.ADMIN_EMAILS}
        if user.email and user.email.lower() in admin_emails:
            roles.add(UserRole.ADMIN)
        return roles

    @classmethod
    def has_role(cls, user: db_models.Users, role: UserRole, config: Settings = settings) -> bool:
        return role in cls.roles_for(user, config)


async def require_admin(
    current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)]
) -> db_models.Users:
    if not AuthorizationPolicy.has_role(current_user, UserRole.ADMIN):
        log.warning(f"User {current_user.email} denied admin access.")
        raise NotAuthorizedError("Admin access required.")
    return current_user
