"""
Error taxonomy shared by the cipher, content-store and publish layers.

Every error carries a machine-readable ``code`` and the HTTP status the API
answers with, so route handlers can let them propagate to the exception
handler registered in ``src.main``.
"""

from typing import Optional


class WorkspaceError(Exception):
    """Base class for all domain errors."""

    code = "WORKSPACE_ERROR"
    http_status = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        # Upstream status (e.g. GitHub response code) kept for diagnostics
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (status {self.status_code})"
        return self.message


# Cipher layer

class EncryptionError(WorkspaceError):
    code = "ENCRYPTION_ERROR"


class DecryptionError(WorkspaceError):
    code = "DECRYPTION_ERROR"


# Content-store layer

class AuthError(WorkspaceError):
    """The stored GitHub credential is expired, revoked or invalid."""

    code = "GITHUB_AUTH_ERROR"
    http_status = 401


class RepositoryError(WorkspaceError):
    code = "REPOSITORY_ERROR"
    http_status = 502


class NotFound(RepositoryError):
    """Expected absence of a file, directory or branch."""

    code = "NOT_FOUND"
    http_status = 404


class FrontmatterError(WorkspaceError):
    code = "INVALID_FRONTMATTER"
    http_status = 422


# Publish layer

class PublishError(WorkspaceError):
    code = "PUBLISH_ERROR"
    http_status = 502


class NotInitialized(WorkspaceError):
    """Workspace repository has not been created from the template yet."""

    code = "NOT_INITIALIZED"
    http_status = 400


class OAuthError(AuthError):
    """GitHub OAuth connect failed; ``reason`` is the redirect error code."""

    code = "GITHUB_OAUTH_ERROR"

    def __init__(self, message: str, *, reason: str, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code)
        self.reason = reason
