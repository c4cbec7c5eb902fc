import logging
from dataclasses import dataclass
from typing import Optional

import firebase_admin
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin import exceptions as firebase_exceptions

from .config import FIREBASE_PROJECT_ID
from .errors import AuthenticationError

logger = logging.getLogger(__name__)

# auto_error=False so a missing header surfaces as AuthenticationError (401), not 403
security = HTTPBearer(auto_error=False)

NOT_AUTHENTICATED_MESSAGE = (
    "Not authenticated. Please provide a valid Bearer token in the Authorization header."
)


@dataclass(frozen=True)
class CallerIdentity:
    """The application user a bearer token belongs to"""

    user_id: str
    email: Optional[str] = None


def ensure_firebase_app() -> None:
    """Initialize Firebase Admin SDK (only once)"""
    try:
        firebase_admin.get_app()
    except ValueError:
        try:
            cred = credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with default credentials")
        except Exception:
            # Token verification only needs the project id and Google's public keys
            firebase_admin.initialize_app(options={"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with project ID only")


class FirebaseIdentityVerifier:
    """Validates Firebase ID tokens; credential checks stay with Firebase"""

    def verify(self, token: Optional[str]) -> CallerIdentity:
        if not token or not token.strip():
            logger.warning("❌ No bearer token provided")
            raise AuthenticationError(NOT_AUTHENTICATED_MESSAGE)

        token = token.strip()
        # Basic token format validation before calling out
        if len(token.split(".")) != 3:
            logger.warning(f"⚠️ Malformed token received: length {len(token)}")
            raise AuthenticationError("Invalid token format. Expected a valid JWT token.")

        ensure_firebase_app()
        try:
            decoded_token = firebase_auth.verify_id_token(token)
        except firebase_auth.ExpiredIdTokenError as e:
            raise AuthenticationError("Token has expired. Please sign in again.") from e
        except (firebase_auth.InvalidIdTokenError, ValueError) as e:
            logger.warning(f"❌ Token verification failed: {type(e).__name__}")
            raise AuthenticationError("Invalid authentication token.") from e
        except firebase_exceptions.FirebaseError as e:
            logger.error(f"❌ Identity service error during token verification: {e}")
            raise AuthenticationError("Unable to verify authentication token.") from e

        user_id = decoded_token.get("uid") or decoded_token.get("sub")
        if not user_id:
            logger.error(f"❌ Token missing user ID claim. Claims: {list(decoded_token.keys())}")
            raise AuthenticationError("Invalid token claims.")

        logger.debug(f"✅ Token verified for user: {user_id}")
        return CallerIdentity(user_id=user_id, email=decoded_token.get("email"))


_verifier = FirebaseIdentityVerifier()


def get_identity_verifier() -> FirebaseIdentityVerifier:
    """Dependency injection for the identity verifier"""
    return _verifier


def get_bearer_token(
    auth_header: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Raw bearer token; rejects the request before the body is processed"""
    if not auth_header or not auth_header.credentials:
        raise AuthenticationError(NOT_AUTHENTICATED_MESSAGE)
    return auth_header.credentials


async def get_current_caller(
    token: str = Depends(get_bearer_token),
    verifier: FirebaseIdentityVerifier = Depends(get_identity_verifier),
) -> CallerIdentity:
    """Get current caller from Firebase token"""
    return verifier.verify(token)
