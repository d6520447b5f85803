"""FastAPI dependencies for authentication and service wiring."""

import logging
from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from scribe_chat.core.exceptions import AuthenticationError
from scribe_chat.db.supabase import SupabaseClient, get_supabase_client
from scribe_chat.services.chat_responder import ChatResponder, build_chat_responder
from scribe_chat.services.chat_store import ChatStore
from scribe_chat.services.contact_search import HybridContactSearch, build_contact_search

logger = logging.getLogger(__name__)

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Any:
    """Extract and validate the current user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials.

    Returns:
        Validated user object from Supabase.

    Raises:
        HTTPException: If authentication fails.
    """
    if credentials is None:
        logger.warning("AUTH: No credentials provided in request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        client = SupabaseClient.get_client()
        response = client.auth.get_user(credentials.credentials)

        if response is None or response.user is None:
            raise AuthenticationError("Invalid authentication token")

        logger.debug("AUTH: Token validated for user_id=%s", response.user.id)
        return response.user

    except AuthenticationError as e:
        logger.warning("AUTH: AuthenticationError - %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
    except Exception as e:
        logger.exception("AUTH: Unexpected error during token validation")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def get_chat_store() -> ChatStore:
    return ChatStore(get_supabase_client())


def get_chat_responder() -> ChatResponder:
    return build_chat_responder(get_supabase_client())


def get_contact_search() -> HybridContactSearch:
    return build_contact_search(get_supabase_client())


# Type aliases for common dependency patterns
CurrentUser = Annotated[Any, Depends(get_current_user)]
ChatStoreDep = Annotated[ChatStore, Depends(get_chat_store)]
ChatResponderDep = Annotated[ChatResponder, Depends(get_chat_responder)]
ContactSearchDep = Annotated[HybridContactSearch, Depends(get_contact_search)]
