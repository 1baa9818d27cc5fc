"""Catalog and compatibility models."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CatalogModel(BaseModel):
    """Base for catalog payloads exchanged with the editor in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class CategoryId(str, Enum):
    """Catalog categories, in display order."""

    AI = "ai"
    HTTP = "http"
    DB = "db"
    UI = "ui"
    UTILITY = "utility"


class NodeSource(str, Enum):
    """Where a catalog entry comes from."""

    BUILTIN = "builtin"
    CUSTOM = "custom"
    EXTENSION = "extension"


class CompatibilityType(str, Enum):
    SDK = "sdk"
    APP = "app"


class CompatibilitySeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class NodeCompatibilityIssue(CatalogModel):
    type: CompatibilityType
    severity: CompatibilitySeverity
    message: str


class NodeCompatibilityResult(CatalogModel):
    """``compatible`` is true iff no issue has error severity."""

    compatible: bool = True
    issues: List[NodeCompatibilityIssue] = Field(default_factory=list)


class NodeCompatibilityContext(CatalogModel):
    """Versions of the running SDK and application."""

    sdk_version: Optional[str] = None
    app_version: Optional[str] = None


class NodeVersionBounds(CatalogModel):
    """Version bounds a node declares for the SDK and the app."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")

    min_sdk_version: Optional[str] = None
    max_sdk_version: Optional[str] = None
    min_app_version: Optional[str] = None
    max_app_version: Optional[str] = None


class WorkflowNodeCategory(CatalogModel):
    id: CategoryId
    name: str
    description: str
    icon: str
    color: str


class WorkflowNodeCategorySummary(WorkflowNodeCategory):
    count: int = 0


class WorkflowNodeCatalogEntry(CatalogModel):
    """A node type offered to the workflow editor."""

    id: str
    name: str
    description: str = ""
    icon: str = "package"
    icon_glyph: Optional[str] = None
    category: CategoryId
    color: str
    bg_color: str
    border_color: str
    version: str = "1.0.0"
    source: NodeSource = NodeSource.EXTENSION
    tags: List[str] = Field(default_factory=list)
    compatibility: Optional[NodeCompatibilityResult] = None


class CustomNode(BaseModel):
    """A workspace-authored node record as delivered by the node store.

    Records arrive in either camelCase or snake_case; every field is optional.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    id: Optional[str] = None
    slug: Optional[str] = None
    name: Optional[str] = None
    display_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    version: Optional[str] = None
    latest_version: Optional[str] = None
    icon: Optional[str] = None
    icon_url: Optional[str] = None
    tags: Optional[List[str]] = None
    min_sdk_version: Optional[str] = None
    max_sdk_version: Optional[str] = None


class WorkflowNodeCatalog(CatalogModel):
    nodes: List[WorkflowNodeCatalogEntry] = Field(default_factory=list)
    categories: List[WorkflowNodeCategorySummary] = Field(default_factory=list)
