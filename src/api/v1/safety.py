"""
Safety acknowledgment endpoints.
"""

from fastapi import APIRouter, Request, status

from src.api.deps import CurrentUser, DbSession, get_client_ip
from src.kernel.workspace.workspace_service import WorkspaceService
from src.schemas.safety import SafetyAcknowledgeRequest, SafetyAcknowledgmentResponse

router = APIRouter()


@router.post(
    "/acknowledge",
    response_model=SafetyAcknowledgmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def acknowledge(
    request: Request,
    data: SafetyAcknowledgeRequest,
    user: CurrentUser,
    db: DbSession,
):
    """Sign a safety protocol; unlocks gated documents with that code."""
    ack = await WorkspaceService(db).acknowledge_safety(
        user.id,
        data.safety_code,
        protocol_version=data.protocol_version,
        ip_address=get_client_ip(request),
    )
    return SafetyAcknowledgmentResponse.model_validate(ack)
