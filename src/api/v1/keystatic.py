"""
CMS token proxy.

The in-browser editor commits to GitHub directly, so the owner's decrypted
token is handed to it here. Owner only, never cached.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from src.api.deps import DbSession, OwnerRepo, OwnerUser, get_client_ip
from src.errors import NotInitialized
from src.kernel.events.event_store import EventStore
from src.kernel.events.event_types import GithubTokenIssuedEvent
from src.kernel.models.event_log import EventType
from src.kernel.workspace.workspace_service import WorkspaceService
from src.schemas.auth import KeystaticTokenResponse

router = APIRouter()

NO_STORE = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
}


@router.get("/token", response_model=KeystaticTokenResponse)
async def editor_token(request: Request, user: OwnerUser, user_repo: OwnerRepo, db: DbSession):
    if not user_repo.repo_name:
        raise NotInitialized("Repository not initialized. Please set up your workspace first.")

    token = WorkspaceService(db).github_token(user_repo)
    await EventStore(db).record(
        EventType.GITHUB_TOKEN_ISSUED,
        "user_repo",
        user_repo.id,
        GithubTokenIssuedEvent(repo=f"{user_repo.repo_owner}/{user_repo.repo_name}"),
        user_id=user.id,
        ip_address=get_client_ip(request),
    )
    body = KeystaticTokenResponse(
        token=token,
        repo={"owner": user_repo.repo_owner, "name": user_repo.repo_name},
    )
    return JSONResponse(content=body.model_dump(), headers=NO_STORE)
