"""
Identity Core - session verification, user mirroring and GitHub connect.
"""

from src.kernel.identity.jwt import (
    JWTManager,
    AccessTokenPayload,
    create_access_token,
    verify_access_token,
    get_jwt_manager,
)
from src.kernel.identity.identity_service import IdentityService
from src.kernel.identity.github_oauth import GitHubGrant, GitHubOAuthClient, GitHubUser

__all__ = [
    "JWTManager",
    "AccessTokenPayload",
    "create_access_token",
    "verify_access_token",
    "get_jwt_manager",
    "IdentityService",
    "GitHubGrant",
    "GitHubOAuthClient",
    "GitHubUser",
]
