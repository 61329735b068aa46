"""
Typed content documents decoded from Markdown frontmatter.

ContentDocument is the single declared table of frontmatter keys: each field
lists its accepted keys (CMS camelCase and snake_case) and its default.
Missing keys take the default; unknown keys are ignored; values that cannot be
interpreted fall back to the default with a warning instead of failing.
"""

from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from src.logging_config import get_logger

logger = get_logger(__name__)


class ContentKind(str, Enum):
    """Collections stored in the workspace repository."""
    PROJECT = "project"
    STREAM = "stream"
    UPDATE = "update"
    DOC = "doc"


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Visibility(str, Enum):
    PUBLIC = "public"
    GATED = "gated"  # readers must acknowledge the safety protocol
    PRIVATE = "private"


class SafetyLevel(str, Enum):
    OPEN = "open"
    RESTRICTED = "restricted"
    CONTROLLED = "controlled"


class UpdateType(str, Enum):
    EXPERIMENT = "experiment"
    OBSERVATION = "observation"
    MILESTONE = "milestone"
    NOTE = "note"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


# Older CMS schemas used project/update statuses; map them onto the lifecycle
STATUS_ALIASES = {
    "active": DocumentStatus.PUBLISHED,
    "completed": DocumentStatus.PUBLISHED,
    "in-progress": DocumentStatus.DRAFT,
    "blocked": DocumentStatus.DRAFT,
    "paused": DocumentStatus.DRAFT,
}


def coerce_enum(
    enum_cls: Type[Enum],
    value: Any,
    default: Enum,
    aliases: Optional[Dict[str, Enum]] = None,
) -> Enum:
    """Interpret a raw frontmatter value as enum_cls, falling back to default."""
    if value is None or value == "":
        return default
    if isinstance(value, enum_cls):
        return value
    key = str(value).strip().lower()
    if aliases and key in aliases:
        return aliases[key]
    try:
        return enum_cls(key)
    except ValueError:
        logger.warning(
            "Unknown %s value %r, using %r", enum_cls.__name__, value, default.value
        )
        return default


def coerce_datetime(value: Any) -> Optional[datetime]:
    """Accept YAML dates/datetimes and ISO strings; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            logger.warning("Unparseable timestamp %r ignored", value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class MediaItem(BaseModel):
    """Image or video attached to a document."""

    type: MediaType = MediaType.IMAGE
    src: str
    alt: Optional[str] = None
    caption: Optional[str] = None
    embed: bool = False  # iframe/embed, e.g. YouTube

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v: Any) -> MediaType:
        return coerce_enum(MediaType, v, MediaType.IMAGE)


class VerificationInfo(BaseModel):
    verified: bool = False
    verifier: Optional[str] = None
    notes: Optional[str] = None


class ContentDocument(BaseModel):
    """A Markdown document with its decoded frontmatter."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    slug: str = ""
    id: str = ""
    title: str = ""
    kind: Optional[ContentKind] = None
    category: str = ""
    type: UpdateType = UpdateType.NOTE
    tags: List[str] = Field(default_factory=list)
    status: DocumentStatus = DocumentStatus.DRAFT
    visibility: Visibility = Visibility.PUBLIC
    gated: bool = False
    safety_level: SafetyLevel = Field(
        SafetyLevel.OPEN, validation_alias=AliasChoices("safety_level", "safetyLevel")
    )
    safety_code: Optional[str] = Field(
        None, validation_alias=AliasChoices("safety_code", "safetyCode")
    )
    summary: str = Field("", validation_alias=AliasChoices("summary", "description"))
    author: Optional[str] = None
    created_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("created_at", "createdAt", "startDate")
    )
    updated_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("updated_at", "updatedAt", "lastUpdated")
    )
    published_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("published_at", "publishDate", "date")
    )
    media: List[MediaItem] = Field(default_factory=list)
    verification: Optional[VerificationInfo] = None
    # Soft references, resolved at read time; dangling slugs are tolerated
    project_slug: Optional[str] = Field(
        None, validation_alias=AliasChoices("project_slug", "projectSlug", "parentProject")
    )
    stream_slug: Optional[str] = Field(
        None, validation_alias=AliasChoices("stream_slug", "streamSlug", "subProjectSlug")
    )
    video_url: Optional[str] = Field(
        None, validation_alias=AliasChoices("video_url", "videoUrl")
    )
    repo_target: str = Field(
        "personal", validation_alias=AliasChoices("repo_target", "repoTarget")
    )
    body: str = ""

    @field_validator("repo_target", mode="before")
    @classmethod
    def _repo_target(cls, v: Any) -> str:
        return str(v) if v else "personal"

    @field_validator("slug", "id", "title", "category", "summary", "body", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator(
        "safety_code", "author", "project_slug", "stream_slug", "video_url", mode="before"
    )
    @classmethod
    def _optional_text(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, (list, tuple, set)):
            return []
        seen: List[str] = []
        for tag in v:
            text = str(tag).strip() if tag is not None else ""
            if text and text not in seen:
                seen.append(text)
        return seen

    @field_validator("type", mode="before")
    @classmethod
    def _update_type(cls, v: Any) -> UpdateType:
        return coerce_enum(UpdateType, v, UpdateType.NOTE)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> DocumentStatus:
        return coerce_enum(DocumentStatus, v, DocumentStatus.DRAFT, STATUS_ALIASES)

    @field_validator("visibility", mode="before")
    @classmethod
    def _visibility(cls, v: Any) -> Visibility:
        return coerce_enum(Visibility, v, Visibility.PUBLIC)

    @field_validator("safety_level", mode="before")
    @classmethod
    def _safety_level(cls, v: Any) -> SafetyLevel:
        return coerce_enum(SafetyLevel, v, SafetyLevel.OPEN)

    @field_validator("gated", mode="before")
    @classmethod
    def _gated(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().lower() in ("true", "yes", "1")
        return bool(v)

    @field_validator("created_at", "updated_at", "published_at", mode="before")
    @classmethod
    def _timestamps(cls, v: Any) -> Optional[datetime]:
        return coerce_datetime(v)

    @field_validator("media", mode="before")
    @classmethod
    def _media(cls, v: Any) -> List[Any]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict) and item.get("src")]

    @field_validator("verification", mode="before")
    @classmethod
    def _verification(cls, v: Any) -> Any:
        if isinstance(v, bool):
            return {"verified": v}
        if isinstance(v, dict):
            return v
        return None

    @model_validator(mode="after")
    def _derived_defaults(self) -> "ContentDocument":
        if not self.title:
            self.title = self.slug or "(untitled)"
        if not self.id:
            self.id = self.slug
        # Legacy checkbox from the CMS schema
        if self.gated and self.visibility == Visibility.PUBLIC:
            self.visibility = Visibility.GATED
        return self

    @property
    def effective_timestamp(self) -> Optional[datetime]:
        """Most recent meaningful timestamp: updated, else published, else created."""
        return self.updated_at or self.published_at or self.created_at

    def frontmatter(self) -> Dict[str, Any]:
        """Canonical snake_case frontmatter mapping (body and kind excluded)."""
        data = self.model_dump(mode="json", exclude={"body", "kind"}, exclude_none=True)
        if not data.get("gated"):
            data.pop("gated", None)
        if not data.get("media"):
            data.pop("media", None)
        return data
