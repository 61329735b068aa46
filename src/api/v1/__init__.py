"""
API v1 routes.
"""

from fastapi import APIRouter

from src.api.v1 import auth, github, publish, content, workspace, safety, keystatic

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(github.router, prefix="/auth/github", tags=["GitHub"])
router.include_router(workspace.router, prefix="/workspace", tags=["Workspace"])
router.include_router(publish.router, prefix="/publish", tags=["Publish"])
router.include_router(content.router, prefix="/content", tags=["Content"])
router.include_router(safety.router, prefix="/safety", tags=["Safety"])
router.include_router(keystatic.router, prefix="/keystatic", tags=["Keystatic"])
