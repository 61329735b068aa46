"""
Content endpoints.

Documents are read from the owner's workspace repository. Readers always
see the published branch; the owner may read the draft branch. Visibility
and the safety gate are checked per document; listings shown to readers
leave out private documents.
"""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from src.api.deps import (
    CurrentRole,
    CurrentUser,
    DbSession,
    OwnerRepo,
    OwnerUser,
    RepoFactory,
    WorkspaceRepo,
    get_client_ip,
)
from src.config import get_settings
from src.content.access import check_content_access
from src.content.authoring import collection_dir, document_path, new_update
from src.content.models import ContentDocument, ContentKind, Visibility
from src.content.repository import ContentRepositoryClient
from src.kernel.events.event_store import EventStore
from src.kernel.events.event_types import ContentWrittenEvent
from src.kernel.models.event_log import EventType
from src.kernel.models.user import User, UserRole
from src.kernel.workspace.workspace_service import WorkspaceService
from src.schemas.content import (
    DocumentEdit,
    DocumentResponse,
    DocumentWriteResponse,
    SlugListResponse,
    UpdateCreate,
)

router = APIRouter()


class Collection(str, Enum):
    PROJECTS = "projects"
    DOCS = "docs"


COLLECTION_KINDS = {
    Collection.PROJECTS: ContentKind.PROJECT,
    Collection.DOCS: ContentKind.DOC,
}


class Branch(str, Enum):
    MAIN = "main"
    DRAFT = "draft"


def _resolve(build, *args, **kwargs) -> str:
    """Build a repository path; invalid segments answer 400."""
    try:
        return build(*args, **kwargs)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _branch(role: UserRole, requested: Optional[Branch]) -> str:
    """Readers are pinned to the published branch."""
    settings = get_settings()
    if role == UserRole.OWNER and requested == Branch.DRAFT:
        return settings.draft_branch
    return settings.main_branch


async def _read(
    db: DbSession,
    user: User,
    role: UserRole,
    client: ContentRepositoryClient,
    path: str,
    branch: str,
    kind: ContentKind,
) -> DocumentResponse:
    document = await client.read_document(path, branch, kind=kind)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    is_owner = role == UserRole.OWNER
    acknowledged = False
    if not is_owner:
        acknowledged = await WorkspaceService(db).has_acknowledged(user.id, document.safety_code)
    decision = check_content_access(document.visibility, is_owner, acknowledged)
    if not decision.allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=decision.reason)
    return DocumentResponse(path=path, branch=branch, document=document)


async def _without_private(
    client: ContentRepositoryClient,
    base: str,
    branch: str,
    names: List[str],
    kind: ContentKind,
) -> List[str]:
    """Drop private documents, and entries without a readable document, from a listing."""
    def entry_path(name: str) -> str:
        if kind == ContentKind.UPDATE:
            return f"{base}/{name}.md"
        return f"{base}/{name}/index.md"

    documents = await asyncio.gather(
        *(client.read_document(entry_path(name), branch, kind=kind) for name in names)
    )
    return [
        name for name, document in zip(names, documents)
        if document is not None and document.visibility != Visibility.PRIVATE
    ]


async def _list(
    db: DbSession,
    role: UserRole,
    user_repo,
    factory: RepoFactory,
    path: str,
    branch: str,
    kind: ContentKind,
) -> SlugListResponse:
    """Slugs in a collection directory; readers never see private entries."""
    async with WorkspaceService(db).open_repository(user_repo, factory) as client:
        if kind == ContentKind.UPDATE:
            files = await client.list_names(path, branch, kind="file")
            names = [n[: -len(".md")] for n in files if n.endswith(".md")]
        else:
            names = await client.list_names(path, branch, kind="dir")
        if role != UserRole.OWNER:
            names = await _without_private(client, path, branch, names, kind)
    return SlugListResponse(items=names, total=len(names))


async def _edit(
    request: Request,
    data: DocumentEdit,
    user: User,
    user_repo,
    db: DbSession,
    factory: RepoFactory,
    path: str,
    kind: ContentKind,
) -> DocumentWriteResponse:
    """Apply a partial edit to a draft document and commit it with a fresh updated_at."""
    branch = get_settings().draft_branch
    changes = data.model_dump(exclude_unset=True)
    if "visibility" in changes:
        # The legacy gated flag would otherwise override the new visibility
        changes["gated"] = changes["visibility"] == Visibility.GATED
    changes["updated_at"] = datetime.now(timezone.utc)

    async with WorkspaceService(db).open_repository(user_repo, factory) as client:
        current = await client.read_document(path, branch, kind=kind)
        if current is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
        document = ContentDocument.model_validate({**current.model_dump(), **changes})
        commit = await client.write_document(
            path, branch, document, f"Edit {kind.value}: {document.title}"
        )

    await EventStore(db).record(
        EventType.CONTENT_WRITTEN,
        "user_repo",
        user_repo.id,
        ContentWrittenEvent(path=path, branch=branch, commit_sha=commit.sha),
        user_id=user.id,
        ip_address=get_client_ip(request),
    )
    return DocumentWriteResponse(
        path=path,
        branch=branch,
        commit_sha=commit.sha,
        commit_url=commit.html_url,
        document=document,
    )


# ---- Updates (declared before the generic collection routes) ----

@router.get("/updates/{category}", response_model=SlugListResponse)
async def list_updates(
    category: str,
    user: CurrentUser,
    role: CurrentRole,
    user_repo: WorkspaceRepo,
    db: DbSession,
    factory: RepoFactory,
    branch: Optional[Branch] = Query(None),
):
    """Update slugs in a category."""
    path = _resolve(collection_dir, ContentKind.UPDATE, category=category)
    return await _list(
        db, role, user_repo, factory, path, _branch(role, branch), ContentKind.UPDATE
    )


@router.get("/updates/{category}/{slug}", response_model=DocumentResponse)
async def get_update(
    category: str,
    slug: str,
    user: CurrentUser,
    role: CurrentRole,
    user_repo: WorkspaceRepo,
    db: DbSession,
    factory: RepoFactory,
    branch: Optional[Branch] = Query(None),
):
    path = _resolve(document_path, ContentKind.UPDATE, slug, category=category)
    async with WorkspaceService(db).open_repository(user_repo, factory) as client:
        return await _read(db, user, role, client, path, _branch(role, branch), ContentKind.UPDATE)


@router.post(
    "/updates",
    response_model=DocumentWriteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_update(
    request: Request,
    data: UpdateCreate,
    user: OwnerUser,
    user_repo: OwnerRepo,
    db: DbSession,
    factory: RepoFactory,
):
    """Create a new update on the draft branch."""
    settings = get_settings()
    try:
        path, document = new_update(
            data.title,
            data.category,
            categories=settings.update_categories,
            summary=data.summary,
            tags=data.tags,
            status=data.status,
            author=user.full_name or user.email,
            body=data.body,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    branch = settings.draft_branch
    async with WorkspaceService(db).open_repository(user_repo, factory) as client:
        commit = await client.write_document(
            path, branch, document, f"Add update: {document.title}"
        )

    await EventStore(db).record(
        EventType.CONTENT_WRITTEN,
        "user_repo",
        user_repo.id,
        ContentWrittenEvent(path=path, branch=branch, commit_sha=commit.sha),
        user_id=user.id,
        ip_address=get_client_ip(request),
    )
    return DocumentWriteResponse(
        path=path,
        branch=branch,
        commit_sha=commit.sha,
        commit_url=commit.html_url,
        document=document,
    )


@router.put("/updates/{category}/{slug}", response_model=DocumentWriteResponse)
async def edit_update(
    request: Request,
    category: str,
    slug: str,
    data: DocumentEdit,
    user: OwnerUser,
    user_repo: OwnerRepo,
    db: DbSession,
    factory: RepoFactory,
):
    """Edit an update on the draft branch."""
    path = _resolve(document_path, ContentKind.UPDATE, slug, category=category)
    return await _edit(request, data, user, user_repo, db, factory, path, ContentKind.UPDATE)


# ---- Streams ----

@router.get("/projects/{project}/streams", response_model=SlugListResponse)
async def list_streams(
    project: str,
    user: CurrentUser,
    role: CurrentRole,
    user_repo: WorkspaceRepo,
    db: DbSession,
    factory: RepoFactory,
    branch: Optional[Branch] = Query(None),
):
    path = _resolve(collection_dir, ContentKind.STREAM, project_slug=project)
    return await _list(
        db, role, user_repo, factory, path, _branch(role, branch), ContentKind.STREAM
    )


@router.get("/projects/{project}/streams/{slug}", response_model=DocumentResponse)
async def get_stream(
    project: str,
    slug: str,
    user: CurrentUser,
    role: CurrentRole,
    user_repo: WorkspaceRepo,
    db: DbSession,
    factory: RepoFactory,
    branch: Optional[Branch] = Query(None),
):
    path = _resolve(document_path, ContentKind.STREAM, slug, project_slug=project)
    async with WorkspaceService(db).open_repository(user_repo, factory) as client:
        response = await _read(db, user, role, client, path, _branch(role, branch), ContentKind.STREAM)
    # Soft reference: the parent is known from the path even if frontmatter omits it
    if not response.document.project_slug:
        response.document.project_slug = project
    return response


# ---- Projects and docs ----

@router.get("/{collection}", response_model=SlugListResponse)
async def list_collection(
    collection: Collection,
    user: CurrentUser,
    role: CurrentRole,
    user_repo: WorkspaceRepo,
    db: DbSession,
    factory: RepoFactory,
    branch: Optional[Branch] = Query(None),
):
    """Slugs of projects or docs."""
    kind = COLLECTION_KINDS[collection]
    path = _resolve(collection_dir, kind)
    return await _list(db, role, user_repo, factory, path, _branch(role, branch), kind)


@router.get("/{collection}/{slug}", response_model=DocumentResponse)
async def get_document(
    collection: Collection,
    slug: str,
    user: CurrentUser,
    role: CurrentRole,
    user_repo: WorkspaceRepo,
    db: DbSession,
    factory: RepoFactory,
    branch: Optional[Branch] = Query(None),
):
    kind = COLLECTION_KINDS[collection]
    path = _resolve(document_path, kind, slug)
    async with WorkspaceService(db).open_repository(user_repo, factory) as client:
        return await _read(db, user, role, client, path, _branch(role, branch), kind)


@router.put("/{collection}/{slug}", response_model=DocumentWriteResponse)
async def edit_document(
    request: Request,
    collection: Collection,
    slug: str,
    data: DocumentEdit,
    user: OwnerUser,
    user_repo: OwnerRepo,
    db: DbSession,
    factory: RepoFactory,
):
    """Edit a project or doc on the draft branch."""
    kind = COLLECTION_KINDS[collection]
    path = _resolve(document_path, kind, slug)
    return await _edit(request, data, user, user_repo, db, factory, path, kind)
