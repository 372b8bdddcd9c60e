import logging
from typing import Any, Dict, Optional

from api_client import APIError, ResumeFlowAPI

logger = logging.getLogger(__name__)


class AuthContext:
    """Signed-in user state for the UI.

    ``error`` holds the message to show, or None. A dismissed Google popup is
    not an error.
    """

    def __init__(self, api: ResumeFlowAPI):
        self.api = api
        self.user: Optional[Dict[str, Any]] = None
        self.loading = False
        self.error: Optional[str] = None

    @property
    def id_token(self) -> Optional[str]:
        return self.user.get("idToken") if self.user else None

    def _authenticate(self, action: str, **fields: Any) -> None:
        self.loading = True
        self.error = None
        try:
            self.user = self.api.authenticate(action, **fields)
        except APIError as e:
            self.error = e.message
            raise
        finally:
            self.loading = False

    def sign_in(self, email: str, password: str) -> None:
        self._authenticate("login", email=email, password=password)

    def sign_up(self, email: str, password: str, display_name: str) -> None:
        self._authenticate("register", email=email, password=password, displayName=display_name)

    def sign_in_with_google(self, provider_id_token: Optional[str]) -> bool:
        if not provider_id_token:
            logger.info("Google sign-in popup was closed by the user")
            return False
        self._authenticate("provider", providerId="google.com", providerIdToken=provider_id_token)
        return self.user is not None

    def logout(self) -> None:
        self.user = None
        self.error = None
        self.loading = False

    def clear_error(self) -> None:
        self.error = None
