"""
Workspace configuration and GitHub credential management.
"""

from src.kernel.workspace.workspace_service import RepositoryFactory, WorkspaceService

__all__ = [
    "RepositoryFactory",
    "WorkspaceService",
]
