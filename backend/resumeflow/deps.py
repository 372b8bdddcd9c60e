import logging
import threading

from fastapi import Depends, Header
from fastapi.concurrency import run_in_threadpool
from motor.motor_asyncio import AsyncIOMotorClient

from resumeflow.auth import IdentityClient, TokenVerifier
from resumeflow.config import get_settings
from resumeflow.db import create_client, get_database
from resumeflow.exceptions import UnauthorizedError
from resumeflow.gemini_client import GeminiClient
from resumeflow.storage import Storage

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_gemini_client: GeminiClient | None = None
_mongo_client: AsyncIOMotorClient | None = None
_storage: Storage | None = None
_token_verifier: TokenVerifier | None = None
_identity_client: IdentityClient | None = None


def get_gemini_client() -> GeminiClient:
    global _gemini_client
    with _lock:
        if _gemini_client is None:
            settings = get_settings()
            _gemini_client = GeminiClient(
                api_key=settings.GEMINI_API_KEY,
                model=settings.GEMINI_MODEL,
                temperature=settings.GEMINI_TEMPERATURE,
                top_k=settings.GEMINI_TOP_K,
                top_p=settings.GEMINI_TOP_P,
                max_output_tokens=settings.GEMINI_MAX_OUTPUT_TOKENS,
                endpoint=settings.GEMINI_API_ENDPOINT,
                timeout=settings.GEMINI_TIMEOUT,
            )
    return _gemini_client


def get_storage() -> Storage:
    global _mongo_client, _storage
    with _lock:
        if _storage is None:
            settings = get_settings()
            _mongo_client = create_client(settings.MONGODB_URI)
            _storage = Storage(get_database(_mongo_client, settings.MONGO_DB))
    return _storage


def get_token_verifier() -> TokenVerifier:
    global _token_verifier
    with _lock:
        if _token_verifier is None:
            settings = get_settings()
            _token_verifier = TokenVerifier(
                project_id=settings.FIREBASE_PROJECT_ID,
                client_email=settings.FIREBASE_CLIENT_EMAIL,
                private_key=settings.firebase_private_key,
            )
    return _token_verifier


def get_identity_client() -> IdentityClient:
    global _identity_client
    with _lock:
        if _identity_client is None:
            _identity_client = IdentityClient(api_key=get_settings().FIREBASE_WEB_API_KEY)
    return _identity_client


async def close_clients() -> None:
    global _gemini_client, _mongo_client, _storage, _identity_client
    if _gemini_client is not None:
        await _gemini_client.aclose()
        _gemini_client = None
    if _identity_client is not None:
        await _identity_client.aclose()
        _identity_client = None
    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None
        _storage = None


async def require_user(
    authorization: str | None = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> str:
    """Return the uid behind a valid ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Unauthorized - Missing or invalid token")

    token = authorization.split("Bearer ", 1)[1]
    try:
        decoded = await run_in_threadpool(verifier.verify, token)
    except Exception as e:
        logger.warning(f"Auth verification error: {e}")
        raise UnauthorizedError("Unauthorized - Token verification failed") from e

    uid = decoded.get("uid") if decoded else None
    if not uid:
        raise UnauthorizedError("Unauthorized - Invalid token")
    return uid
