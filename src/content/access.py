"""Reader access to documents based on visibility and safety acknowledgment."""

from dataclasses import dataclass
from typing import Optional

from src.content.models import Visibility


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[str] = None


def check_content_access(
    visibility: Visibility,
    is_owner: bool,
    has_acknowledged_safety: bool = False,
) -> AccessDecision:
    """Owners see everything; readers see public, and gated once acknowledged."""
    if visibility == Visibility.PUBLIC or is_owner:
        return AccessDecision(allowed=True)
    if visibility == Visibility.PRIVATE:
        return AccessDecision(allowed=False, reason="This content is private")
    if visibility == Visibility.GATED:
        if has_acknowledged_safety:
            return AccessDecision(allowed=True)
        return AccessDecision(allowed=False, reason="Safety acknowledgment required")
    return AccessDecision(allowed=False, reason="Unknown visibility setting")
