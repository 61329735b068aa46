"""
FastAPI dependencies for authentication, authorization, database sessions
and the GitHub clients.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.content.repository import ContentRepositoryClient
from src.database import get_db
from src.kernel.identity.github_oauth import GitHubOAuthClient
from src.kernel.identity.identity_service import IdentityService
from src.kernel.identity.jwt import verify_access_token
from src.kernel.models.user import User, UserRole
from src.kernel.models.workspace import UserRepo
from src.kernel.workspace.workspace_service import RepositoryFactory, WorkspaceService


# Security scheme
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_client_ip(request: Request) -> Optional[str]:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_request_id(request: Request) -> Optional[str]:
    """Get request correlation ID (set by RequestIdMiddleware)."""
    return getattr(request.state, "request_id", None)


async def get_current_user_optional(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
) -> Optional[User]:
    """Get current user if authenticated, None otherwise."""
    if not credentials:
        return None

    payload = verify_access_token(credentials.credentials)
    if not payload:
        return None

    user = await IdentityService(db).resolve_user(payload, ip_address=get_client_ip(request))
    if not user.is_active:
        return None
    return user


async def get_current_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
) -> User:
    """Get current authenticated user or raise 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await IdentityService(db).resolve_user(payload, ip_address=get_client_ip(request))

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_current_user_optional)]


async def get_current_role(user: CurrentUser, db: DbSession) -> UserRole:
    return await IdentityService(db).get_role(user.id)


CurrentRole = Annotated[UserRole, Depends(get_current_role)]


async def require_owner(user: CurrentUser, role: CurrentRole) -> User:
    """Require the current user to be the workspace owner."""
    if role != UserRole.OWNER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Owner access required",
        )
    return user


OwnerUser = Annotated[User, Depends(require_owner)]


def get_repository_factory() -> RepositoryFactory:
    """Constructor for workspace repository clients (overridden in tests)."""
    return ContentRepositoryClient


RepoFactory = Annotated[RepositoryFactory, Depends(get_repository_factory)]


def get_oauth_client() -> GitHubOAuthClient:
    """GitHub OAuth client (overridden in tests)."""
    return GitHubOAuthClient.from_settings()


OAuthClient = Annotated[GitHubOAuthClient, Depends(get_oauth_client)]


async def get_owner_repo_optional(user: OwnerUser, db: DbSession) -> Optional[UserRepo]:
    """The owner's credential row, if GitHub has been connected."""
    return await WorkspaceService(db).get_user_repo(user.id)


OwnerRepoOptional = Annotated[Optional[UserRepo], Depends(get_owner_repo_optional)]


async def get_owner_repo(user_repo: OwnerRepoOptional) -> UserRepo:
    """The owner's credential row; 400 NO_REPO if GitHub is not connected."""
    if user_repo is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No repository connected. Please connect GitHub first.",
        )
    return user_repo


OwnerRepo = Annotated[UserRepo, Depends(get_owner_repo)]


async def get_workspace_repo(user: CurrentUser, db: DbSession) -> UserRepo:
    """Repository that content is read from (the owner's), for any signed-in user."""
    user_repo = await WorkspaceService(db).get_owner_repo()
    if user_repo is None or not user_repo.repo_name:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workspace repository is not set up yet",
        )
    return user_repo


WorkspaceRepo = Annotated[UserRepo, Depends(get_workspace_repo)]
