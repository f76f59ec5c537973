"""
Authentication dependencies for FastAPI routes.

Identity is owned by Firebase Authentication; this module only verifies the
ID token the browser sends and exposes the owner id to the routes.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from exteriorai.core.config import settings
from exteriorai.core.errors import IdentityProviderUnavailableError

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """The authenticated caller, as asserted by the identity provider"""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None


class FirebaseSessionProvider:
    """Verifies Firebase ID tokens with google-auth"""

    def __init__(self, project_id: str = ""):
        self.project_id = project_id or settings.firebase_project_id
        self._request = google_requests.Request()

    def verify(self, token: str) -> Optional[dict]:
        """
        Return the verified token claims, or None if the token is invalid.
        Raises IdentityProviderUnavailableError when the certificates cannot be fetched.
        """
        if not self.project_id:
            logger.error("FIREBASE_PROJECT_ID is not set - cannot verify ID tokens")
            return None
        try:
            return id_token.verify_firebase_token(token, self._request, audience=self.project_id)
        except ValueError as e:
            logger.warning(f"Firebase token verification failed: {e}")
            return None
        except google_auth_exceptions.TransportError as e:
            logger.error(f"Could not reach Firebase to verify ID token: {e}")
            raise IdentityProviderUnavailableError() from e


session_provider = FirebaseSessionProvider()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Dependency to get the current authenticated user.
    Raises 401 if not authenticated.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Certificate fetch inside verify() is blocking
    loop = asyncio.get_running_loop()
    claims = await loop.run_in_executor(None, session_provider.verify, credentials.credentials)

    if not claims:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    uid = claims.get("user_id") or claims.get("sub")
    if not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return CurrentUser(uid=uid, email=claims.get("email"), display_name=claims.get("name"))
