"""
Workspace setup endpoints.
"""

from fastapi import APIRouter, Request, Response, status

from src.api.deps import (
    CurrentRole,
    CurrentUser,
    DbSession,
    OwnerRepo,
    OwnerUser,
    RepoFactory,
    get_client_ip,
)
from src.kernel.models.user import UserRole
from src.kernel.models.workspace import RepoVisibility
from src.kernel.workspace.workspace_service import WorkspaceService
from src.schemas.workspace import (
    RepositoryInitRequest,
    RepositoryResponse,
    WorkspaceConfigureRequest,
    WorkspaceConfigureResponse,
    WorkspaceSettingsResponse,
    WorkspaceStatusResponse,
)

router = APIRouter()


@router.get("/status", response_model=WorkspaceStatusResponse)
async def workspace_status(user: CurrentUser, role: CurrentRole, db: DbSession):
    """Setup progress: GitHub connected, repository created, settings saved."""
    service = WorkspaceService(db)
    if role == UserRole.OWNER:
        user_repo = await service.get_user_repo(user.id)
        ws = await service.get_workspace_settings(user.id)
    else:
        user_repo = await service.get_owner_repo()
        ws = await service.get_workspace_settings(user_repo.user_id) if user_repo else None

    return WorkspaceStatusResponse(
        role=role.value,
        github_connected=user_repo is not None,
        repository_initialized=bool(user_repo and user_repo.is_template_forked),
        setup_completed=bool(ws and ws.setup_completed),
        workspace_name=ws.workspace_name if ws else None,
        repo_url=user_repo.repo_url if user_repo else None,
    )


@router.post("/configure", response_model=WorkspaceConfigureResponse)
async def configure_workspace(
    request: Request,
    response: Response,
    data: WorkspaceConfigureRequest,
    user: OwnerUser,
    db: DbSession,
):
    """Create (201) or update (200) the workspace settings."""
    ws, created = await WorkspaceService(db).configure(
        user.id,
        data.workspace_name,
        data.repo_visibility,
        ip_address=get_client_ip(request),
    )
    if created:
        response.status_code = status.HTTP_201_CREATED
    return WorkspaceConfigureResponse(
        message="Workspace configured successfully" if created else "Workspace settings updated",
        settings=WorkspaceSettingsResponse.model_validate(ws),
    )


@router.post("/repository", response_model=RepositoryResponse)
async def initialize_repository(
    request: Request,
    data: RepositoryInitRequest,
    user: OwnerUser,
    user_repo: OwnerRepo,
    db: DbSession,
    factory: RepoFactory,
):
    """
    Create the workspace repository from the template and add the draft
    branch. Calling it again once initialized changes nothing.
    """
    service = WorkspaceService(db)
    private = data.private
    if private is None:
        ws = await service.get_workspace_settings(user.id)
        private = bool(ws and ws.repo_visibility == RepoVisibility.PRIVATE)

    user_repo = await service.initialize_repository(
        user_repo,
        factory,
        name=data.name,
        private=private,
        ip_address=get_client_ip(request),
    )
    return RepositoryResponse(
        repo_owner=user_repo.repo_owner,
        repo_name=user_repo.repo_name,
        repo_url=user_repo.repo_url,
        default_branch=user_repo.default_branch,
        is_template_forked=user_repo.is_template_forked,
    )
