# activity_service/api/deps.py
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from activity_service.core.config import settings
from activity_service.schemas.token import TokenPayload
from activity_service.services.lifecycle import ActivityLifecycleService, Actor

# This tells FastAPI where to look for the token.
# The `tokenUrl` doesn't have to be a real endpoint in this service,
# it's just for the OpenAPI documentation.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# One service per process so every request shares the per-activity locks.
lifecycle_service = ActivityLifecycleService()


def get_lifecycle_service() -> ActivityLifecycleService:
    return lifecycle_service


def get_current_user(token: str = Depends(oauth2_scheme)) -> TokenPayload:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        token_data = TokenPayload(**payload)
    except (JWTError, ValueError):
        # Catches any error from jose or Pydantic validation
        raise credentials_exception

    return token_data


def get_current_actor(current_user: TokenPayload = Depends(get_current_user)) -> Actor:
    """Maps the token subject and role onto the actor the engine authorizes."""
    try:
        user_id = int(current_user.sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token subject is not a valid user id",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Actor(user_id=user_id, role=current_user.role)
