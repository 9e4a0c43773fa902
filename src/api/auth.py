"""Firebase ID token verification for API callers."""

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin.exceptions import FirebaseError

from src.analysis.pipeline import CallerIdentity
from src.errors import AuthError
from src.utils.config import AuthConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


def parse_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


class FirebaseTokenVerifier:
    """Verifies Firebase ID tokens with the Admin SDK.

    The Firebase app is initialized on first use from the service-account
    file named in the configuration, and reused afterwards.

    Args:
        config: Authentication configuration.
    """

    def __init__(self, config: AuthConfig) -> None:
        self.config = config
        self._app: firebase_admin.App | None = None

    def _get_app(self) -> firebase_admin.App:
        if self._app is None:
            try:
                self._app = firebase_admin.get_app()
            except ValueError:
                cred = credentials.Certificate(self.config.credentials_path)
                self._app = firebase_admin.initialize_app(cred)
                logger.info("Initialized Firebase app from %s", self.config.credentials_path)
        return self._app

    def verify(self, token: str) -> CallerIdentity:
        """Verify a token and return the caller it identifies.

        Raises:
            AuthError: If the token is malformed, expired, revoked or forged.
        """
        app = self._get_app()
        try:
            decoded = firebase_auth.verify_id_token(token, app=app)
        except (ValueError, FirebaseError) as exc:
            logger.warning("Rejected ID token: %s", exc)
            raise AuthError("Invalid token") from exc

        return CallerIdentity(
            uid=decoded.get("uid"),
            phone_number=decoded.get("phone_number"),
        )
