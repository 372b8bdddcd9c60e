import logging
import threading
from typing import Any, Dict, Optional

import firebase_admin
import httpx
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from resumeflow.models import AuthUser
from resumeflow.storage import Storage

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
FIREBASE_APP_NAME = "resumeflow"

POPUP_CLOSED_CODE = "auth/popup-closed-by-user"
DEFAULT_AUTH_ERROR = "An error occurred during authentication. Please try again."

AUTH_ERROR_MESSAGES = {
    "auth/user-not-found": "No account found with this email address.",
    "auth/wrong-password": "Incorrect password. Please try again.",
    "auth/email-already-in-use": "An account with this email already exists.",
    "auth/weak-password": "Password should be at least 6 characters long.",
    "auth/invalid-email": "Please enter a valid email address.",
    "auth/popup-blocked": "Popup was blocked. Please allow popups and try again.",
    POPUP_CLOSED_CODE: "Sign-in was cancelled.",
    "auth/network-request-failed": "Network error. Please check your connection and try again.",
    "auth/too-many-requests": "Too many failed attempts. Please try again later.",
    "auth/user-disabled": "This account has been disabled.",
}

# Identity Toolkit REST error strings -> SDK-style codes
REST_ERROR_CODES = {
    "EMAIL_NOT_FOUND": "auth/user-not-found",
    "INVALID_PASSWORD": "auth/wrong-password",
    "INVALID_LOGIN_CREDENTIALS": "auth/wrong-password",
    "EMAIL_EXISTS": "auth/email-already-in-use",
    "WEAK_PASSWORD": "auth/weak-password",
    "INVALID_EMAIL": "auth/invalid-email",
    "MISSING_EMAIL": "auth/invalid-email",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "auth/too-many-requests",
    "USER_DISABLED": "auth/user-disabled",
}


def get_error_message(code: str) -> str:
    return AUTH_ERROR_MESSAGES.get(code, DEFAULT_AUTH_ERROR)


class IdentityError(Exception):
    def __init__(self, code: str):
        self.code = code
        super().__init__(get_error_message(code))

    @property
    def message(self) -> str:
        return get_error_message(self.code)


class IdentityClient:
    """Email/password and provider sign-in through the Identity Toolkit REST API."""

    def __init__(self, api_key: str | None, http_client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        if not api_key:
            raise RuntimeError("FIREBASE_WEB_API_KEY is not set in environment variables")
        self.api_key = api_key
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = await self._client.post(
                f"{IDENTITY_TOOLKIT_URL}/accounts:{method}",
                params={"key": self.api_key},
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.error(f"Identity Toolkit {method} request failed: {e}")
            raise IdentityError("auth/network-request-failed") from e

        if resp.is_error:
            try:
                message = resp.json().get("error", {}).get("message", "")
            except ValueError:
                message = ""
            key = message.split(":")[0].strip()
            logger.info(f"Identity Toolkit {method} rejected: {message or resp.status_code}")
            raise IdentityError(REST_ERROR_CODES.get(key, f"auth/{key.lower().replace('_', '-')}"))
        return resp.json()

    @staticmethod
    def _to_user(data: Dict[str, Any], provider: str) -> AuthUser:
        return AuthUser(
            uid=data["localId"],
            email=data.get("email"),
            display_name=data.get("displayName") or None,
            photo_url=data.get("photoUrl"),
            provider=data.get("providerId") or provider,
            id_token=data.get("idToken"),
            refresh_token=data.get("refreshToken"),
        )

    async def sign_in_with_password(self, email: str, password: str) -> AuthUser:
        data = await self._call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._to_user(data, "password")

    async def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> AuthUser:
        data = await self._call(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        if display_name:
            profile = await self._call(
                "update",
                {"idToken": data["idToken"], "displayName": display_name, "returnSecureToken": True},
            )
            data = {**data, **{k: v for k, v in profile.items() if v}}
        return self._to_user(data, "password")

    async def sign_in_with_idp(self, provider_id: str, provider_id_token: str) -> AuthUser:
        data = await self._call(
            "signInWithIdp",
            {
                "postBody": f"id_token={provider_id_token}&providerId={provider_id}",
                "requestUri": "http://localhost",
                "returnIdpCredential": True,
                "returnSecureToken": True,
            },
        )
        return self._to_user(data, provider_id)


class TokenVerifier:
    """Verifies Firebase ID tokens; the admin app is created on first use."""

    def __init__(self, project_id: str | None, client_email: str | None, private_key: str | None):
        self.project_id = project_id
        self.client_email = client_email
        self.private_key = private_key
        self._app: firebase_admin.App | None = None
        self._lock = threading.Lock()

    def _get_app(self) -> firebase_admin.App:
        with self._lock:
            if self._app is None:
                try:
                    self._app = firebase_admin.get_app(FIREBASE_APP_NAME)
                except ValueError:
                    cred = credentials.Certificate({
                        "type": "service_account",
                        "project_id": self.project_id,
                        "client_email": self.client_email,
                        "private_key": self.private_key,
                        "token_uri": "https://oauth2.googleapis.com/token",
                    })
                    self._app = firebase_admin.initialize_app(
                        cred, {"projectId": self.project_id}, name=FIREBASE_APP_NAME
                    )
        return self._app

    def verify(self, token: str) -> Dict[str, Any]:
        return firebase_auth.verify_id_token(token, app=self._get_app())


async def sync_user_profile(storage: Storage, user: AuthUser) -> None:
    """Best-effort profile upsert after sign-in; failures are only logged."""
    profile = {
        "email": user.email,
        "displayName": user.display_name,
        "photoURL": user.photo_url,
        "provider": user.provider,
    }
    try:
        await storage.upsert_user_profile(user.uid, profile)
    except Exception as e:
        logger.error(f"Error creating/updating user profile for {user.uid}: {e}")
