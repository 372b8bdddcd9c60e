import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from resumeflow.auth import (
    POPUP_CLOSED_CODE,
    IdentityClient,
    IdentityError,
    sync_user_profile,
)
from resumeflow.deps import get_identity_client, get_storage, require_user
from resumeflow.exceptions import BadRequestError, NotFoundError
from resumeflow.models import AuthRequest
from resumeflow.storage import Storage

logger = logging.getLogger(__name__)
auth_router = APIRouter()


@auth_router.post("")
async def authenticate(
    body: AuthRequest,
    background_tasks: BackgroundTasks,
    identity: IdentityClient = Depends(get_identity_client),
    storage: Storage = Depends(get_storage),
):
    """Sign in, register, or exchange a provider token; the profile sync runs after the response."""
    action = (body.action or "").strip().lower()
    if action not in ("login", "register", "provider"):
        raise BadRequestError("Invalid action")

    if action == "provider" and not body.provider_id_token:
        # dismissed popup: nothing to sign in, nothing to report
        logger.info(f"Provider sign-in cancelled ({POPUP_CLOSED_CODE})")
        return {"success": True, "cancelled": True, "user": None}

    try:
        if action == "provider":
            user = await identity.sign_in_with_idp(body.provider_id, body.provider_id_token)
        else:
            if not body.email or not body.password:
                raise BadRequestError("Email and password are required")
            email = body.email.strip()
            if action == "login":
                user = await identity.sign_in_with_password(email, body.password)
            else:
                user = await identity.sign_up(email, body.password, (body.display_name or "").strip() or None)
    except IdentityError as e:
        logger.info(f"Authentication {action} failed with {e.code}")
        raise BadRequestError(e.message) from e

    background_tasks.add_task(sync_user_profile, storage, user)
    logger.info(f"User {user.uid} authenticated via {action}")

    return {
        "success": True,
        "user": user.model_dump(
            by_alias=True,
            include={"uid", "email", "display_name", "photo_url", "id_token", "refresh_token"},
        ),
    }


@auth_router.get("/profile")
async def get_profile(uid: str = Depends(require_user), storage: Storage = Depends(get_storage)):
    profile = await storage.get_user_profile(uid)
    if not profile:
        raise NotFoundError("User profile not found")
    return {"success": True, "profile": profile}
