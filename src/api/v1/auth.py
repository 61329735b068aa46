"""
Authentication endpoints.

Sign-in happens at the identity provider; these routes expose the mirrored
profile and record sign-outs.
"""

from fastapi import APIRouter, Request

from src.api.deps import DbSession, CurrentUser, CurrentRole, get_client_ip
from src.kernel.identity.identity_service import IdentityService
from src.kernel.workspace.workspace_service import WorkspaceService
from src.schemas.auth import MeResponse, UserResponse
from src.schemas.common import SuccessResponse

router = APIRouter()


@router.get("/me", response_model=MeResponse)
async def get_me(user: CurrentUser, role: CurrentRole, db: DbSession):
    """Get the signed-in user's profile and workspace role."""
    user_repo = await WorkspaceService(db).get_user_repo(user.id)
    return MeResponse(
        user=UserResponse.model_validate(user),
        role=role.value,
        github_connected=user_repo is not None,
    )


@router.post("/signout", response_model=SuccessResponse)
async def sign_out(request: Request, user: CurrentUser, db: DbSession):
    """Record a sign-out in the audit log."""
    await IdentityService(db).sign_out(user.id, ip_address=get_client_ip(request))
    return SuccessResponse(message="Signed out")
