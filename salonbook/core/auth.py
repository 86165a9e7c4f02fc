from typing import Any, Dict, Optional
import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from salonbook.api.deps import get_store
from salonbook.core.config import Settings
from salonbook.core.exceptions import UnauthorizedError
from salonbook.db.store import BookingStore
from salonbook.schemas.user import UserRole

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class TokenVerifier:
    """
    Verifies identity-provider (Supabase) access tokens.

    Tokens are HS256 JWTs signed with the project's JWT secret; the subject
    is the identity's authId.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", audience: Optional[str] = "authenticated"):
        self.secret = secret
        self.algorithm = algorithm
        self.audience = audience

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenVerifier":
        return cls(settings.SUPABASE_JWT_SECRET, settings.JWT_ALGORITHM, settings.JWT_AUDIENCE or None)

    def verify(self, token: str) -> Dict[str, Any]:
        """Return ``{"authId", "email", "role"}`` or raise JWTError."""
        options = {"verify_aud": self.audience is not None}
        payload = jwt.decode(
            token,
            self.secret,
            algorithms=[self.algorithm],
            audience=self.audience,
            options=options,
        )
        subject = payload.get("sub")
        if not subject:
            raise JWTError("Token has no subject")
        return {
            "authId": subject,
            "email": payload.get("email"),
            "role": payload.get("role"),
        }


async def get_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Dict[str, Any]:
    """Verified identity behind the bearer token."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("No token provided")

    verifier: TokenVerifier = request.app.state.verifier
    try:
        return verifier.verify(credentials.credentials)
    except JWTError as jwt_error:
        logger.info(f"Token verification failed: {jwt_error}")
        raise UnauthorizedError("Invalid token")


async def get_current_user(
    identity: Dict[str, Any] = Depends(get_identity),
    store: BookingStore = Depends(get_store),
) -> Dict[str, Any]:
    """Local user record for the verified identity."""
    user = await store.get_user_by_auth_id(identity["authId"])
    if user is None:
        logger.info(f"User not found in database for authId: {identity['authId']}")
        raise UnauthorizedError("User not found")
    return user


async def require_salon_owner(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if current_user.get("role") != UserRole.SALON_OWNER.value:
        logger.info(f"User {current_user['id']} is not salon owner. Role: {current_user.get('role')}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Salon owner access required",
        )
    return current_user
