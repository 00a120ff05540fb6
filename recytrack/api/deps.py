from typing import Annotated
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from recytrack.database import get_db
from recytrack.core.permissions import Actor
from recytrack.core.security import verify_access_token
from recytrack.core.storage import StorageClient, get_storage_client
from recytrack.services.identifier_service import IdentifierGenerator, SequenceIdGenerator


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Actor:
    """
    Dependency to get the acting user.

    The role comes from the token's `role` claim and is passed explicitly to
    every service call. The database remains the authorization boundary.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = verify_access_token(credentials.credentials)
    if payload is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise credentials_exception

    return Actor(user_id=str(payload["sub"]), role=str(payload["role"]))


async def get_id_generator(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> IdentifierGenerator:
    """Identifier generator bound to the request's session."""
    return SequenceIdGenerator(db)


# Type aliases for cleaner endpoint signatures
DB = Annotated[AsyncSession, Depends(get_db)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
IdGenerator = Annotated[IdentifierGenerator, Depends(get_id_generator)]
Storage = Annotated[type[StorageClient], Depends(get_storage_client)]
