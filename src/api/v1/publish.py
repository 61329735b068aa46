"""
Publish endpoints: draft -> main.
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.api.deps import DbSession, OwnerRepo, OwnerRepoOptional, OwnerUser, RepoFactory, get_client_ip
from src.config import get_settings
from src.content.publish import PublishCoordinator, PublishState, publish_locks
from src.errors import PublishError
from src.kernel.events.event_store import log_publish_attempt
from src.kernel.workspace.workspace_service import WorkspaceService
from src.schemas.publish import PublishResponse, PublishStatusResponse

router = APIRouter()

# Outcomes that are reported as errors, with their response code
FAILED_STATES = {
    PublishState.CONFLICT: (status.HTTP_409_CONFLICT, "MERGE_CONFLICT"),
    PublishState.MISSING_BRANCH: (status.HTTP_404_NOT_FOUND, "BRANCH_NOT_FOUND"),
}


def _coordinator(client, user_repo) -> PublishCoordinator:
    settings = get_settings()
    return PublishCoordinator(
        client,
        forked=user_repo.is_template_forked,
        repo_url=user_repo.repo_url or "",
        draft_branch=settings.draft_branch,
        main_branch=settings.main_branch,
    )


@router.get("", response_model=PublishStatusResponse)
async def publish_status(
    user: OwnerUser,
    user_repo: OwnerRepoOptional,
    db: DbSession,
    factory: RepoFactory,
):
    """How far draft is ahead of (and behind) main."""
    if user_repo is None:
        return PublishStatusResponse(has_repo=False)
    if not user_repo.is_template_forked or not user_repo.repo_name:
        return PublishStatusResponse(
            has_repo=True,
            forked=False,
            repo_url=user_repo.repo_url,
            repo_name=user_repo.repo_name,
        )

    async with WorkspaceService(db).open_repository(user_repo, factory) as client:
        branch_status = await _coordinator(client, user_repo).check_status()

    return PublishStatusResponse(
        has_repo=True,
        forked=True,
        repo_url=user_repo.repo_url,
        repo_name=user_repo.repo_name,
        has_unpublished_changes=branch_status.has_unpublished_changes,
        commits_ahead=branch_status.commits_ahead,
        commits_behind=branch_status.commits_behind,
        needs_sync=branch_status.needs_sync,
        compare_url=branch_status.compare_url,
    )


@router.post("", response_model=PublishResponse)
async def publish(
    request: Request,
    user: OwnerUser,
    user_repo: OwnerRepo,
    db: DbSession,
    factory: RepoFactory,
):
    """
    Merge draft into main.

    Nothing to merge is a success with up_to_date=true. A conflict answers
    409 MERGE_CONFLICT and a missing branch 404 BRANCH_NOT_FOUND.
    """
    ip_address = get_client_ip(request)
    service = WorkspaceService(db)

    async with publish_locks.for_user(str(user.id)):
        async with service.open_repository(user_repo, factory) as client:
            try:
                result = await _coordinator(client, user_repo).publish()
            except PublishError as e:
                # Keep the audit row; get_db rolls back on the re-raise
                await log_publish_attempt(
                    db, user_repo.id, user.id, "error",
                    status_code=e.status_code, ip_address=ip_address,
                )
                await db.commit()
                raise

    await log_publish_attempt(
        db, user_repo.id, user.id, result.state.value,
        commit_sha=result.commit_sha, ip_address=ip_address,
    )

    if result.state in FAILED_STATES:
        status_code, code = FAILED_STATES[result.state]
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "detail": result.message, "code": code},
        )

    return PublishResponse(
        success=True,
        message=result.message,
        up_to_date=result.up_to_date,
        commit_sha=result.commit_sha,
        merge_commit=result.commit_url,
    )
