"""
GitHub connect endpoints.

    GET/POST /auth/github/connect   owner starts the OAuth grant (repo scope)
    GET      /auth/github/callback  GitHub redirects back with code + state

The callback never returns the token; it encrypts and stores it, then
redirects to the app.
"""

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse

from src.api.deps import DbSession, OAuthClient, OwnerUser, get_client_ip
from src.errors import EncryptionError, OAuthError
from src.kernel.identity.identity_service import IdentityService
from src.kernel.identity.jwt import get_jwt_manager
from src.kernel.workspace.workspace_service import WorkspaceService
from src.logging_config import get_logger
from src.schemas.auth import GitHubConnectResponse

logger = get_logger(__name__)

router = APIRouter()

SUCCESS_REDIRECT = "/projects?github_connected=true"


def _error_redirect(reason: str, page: str = "/dashboard") -> RedirectResponse:
    return RedirectResponse(f"{page}?error={reason}", status_code=302)


def _authorize_url(request: Request, user: OwnerUser, oauth: OAuthClient) -> str:
    state = get_jwt_manager().create_oauth_state(user.id)
    return oauth.authorize_url(state, str(request.url_for("github_callback")))


@router.get("/connect")
async def connect_redirect(request: Request, user: OwnerUser, oauth: OAuthClient):
    """Redirect to the GitHub consent screen."""
    return RedirectResponse(_authorize_url(request, user, oauth), status_code=302)


@router.post("/connect", response_model=GitHubConnectResponse)
async def connect_url(request: Request, user: OwnerUser, oauth: OAuthClient):
    """Return the GitHub consent URL instead of redirecting."""
    return GitHubConnectResponse(oauth_url=_authorize_url(request, user, oauth))


@router.get("/callback", name="github_callback")
async def callback(
    request: Request,
    db: DbSession,
    oauth: OAuthClient,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
):
    """Exchange the code, encrypt and store the token, redirect to the app."""
    if error:
        logger.warning("GitHub OAuth returned error: %s", error)
        return _error_redirect("github_oauth_failed")
    if not code or not state:
        return _error_redirect("invalid_callback")

    user_id = get_jwt_manager().verify_oauth_state(state)
    if user_id is None:
        logger.warning("GitHub OAuth state rejected")
        return _error_redirect("invalid_state")

    user = await IdentityService(db).get_user_by_id(user_id)
    if user is None or not user.is_active:
        return _error_redirect("authentication_required", page="/login")

    try:
        grant = await oauth.exchange_code(code, str(request.url_for("github_callback")))
        github_user = await oauth.fetch_user(grant.access_token)
    except OAuthError as e:
        return _error_redirect(e.reason)

    try:
        await WorkspaceService(db).store_github_credential(
            user.id,
            github_user.login,
            grant.access_token,
            scopes=grant.scopes,
            ip_address=get_client_ip(request),
        )
    except EncryptionError:
        logger.exception("GitHub token could not be encrypted")
        return _error_redirect("encryption_error")

    logger.info("Connected GitHub account %s", github_user.login)
    return RedirectResponse(SUCCESS_REDIRECT, status_code=302)
