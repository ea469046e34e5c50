from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


UNCLASSIFIED = "unclassified"
FALLBACK_EXPLANATION = "Showing all available issues"


# ------------------------- Ingestion -------------------------

class IssueRecord(BaseModel):
    """Canonical issue as produced by the tracker fetcher."""
    id: int
    repo: str
    title: str
    body: str = ""
    url: str = ""
    labels: List[str] = []
    assignees: List[str] = []
    state: str = "open"
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
    comments: int = Field(0, validation_alias=AliasChoices("comments", "commentCount"))

    @field_validator("body", "url", mode="before")
    @classmethod
    def null_text_to_empty(cls, v):
        # Trackers send null for an empty description
        return "" if v is None else v

    @field_validator("labels", "assignees", mode="before")
    @classmethod
    def null_list_to_empty(cls, v):
        return [] if v is None else v

    @property
    def is_available(self) -> bool:
        return len(self.assignees) == 0


class IngestFailure(BaseModel):
    issueId: int
    repo: str
    error: str


class IngestReport(BaseModel):
    processed: int = 0
    persisted: List[int] = []
    unclassified: List[int] = []
    failed: List[IngestFailure] = []


# ------------------------- Intent -------------------------

class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ANY = "any"


class Area(str, Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    DOCS = "docs"
    TESTING = "testing"
    API = "api"
    ANY = "any"


class IssueType(str, Enum):
    BUG = "bug"
    FEATURE = "feature"
    ENHANCEMENT = "enhancement"
    DOCUMENTATION = "documentation"
    ANY = "any"


class Intent(BaseModel):
    difficulty: Difficulty = Difficulty.ANY
    area: Area = Area.ANY
    type: IssueType = IssueType.ANY
    keywords: List[str] = []
    explanation: str = FALLBACK_EXPLANATION

    @classmethod
    def fallback(cls) -> "Intent":
        """The most permissive intent: every available issue matches."""
        return cls(
            difficulty=Difficulty.ANY,
            area=Area.ANY,
            type=IssueType.ANY,
            keywords=[],
            explanation=FALLBACK_EXPLANATION,
        )


# ------------------------- Query results -------------------------

class IssueResult(BaseModel):
    id: int
    title: str
    url: Optional[str] = None
    filePath: str
    comments: int = 0
    isAvailable: bool = True
    assignees: List[str] = []


class QueryAnswer(BaseModel):
    issues: List[IssueResult]
    intent: Intent
    explanation: str
    count: int


class IssueSummary(BaseModel):
    id: int
    repo: str
    title: str
    url: Optional[str] = None
    filePath: Optional[str] = None
    comments: int = 0
    isAvailable: bool = True
    assignees: List[str] = []
    state: Optional[str] = None
    updatedAt: Optional[str] = None


# ------------------------- Read views -------------------------

class IssueNode(BaseModel):
    id: int
    repo: Optional[str] = None
    title: str
    url: Optional[str] = None
    isAvailable: bool = True


class FileNode(BaseModel):
    path: str


class RelatedIssue(BaseModel):
    id: int
    title: str
    isAvailable: bool = True


class IssueGraphView(BaseModel):
    issue: IssueNode
    file: Optional[FileNode] = None
    assignees: List[str] = []
    labels: List[str] = []
    relatedIssues: List[RelatedIssue] = []


class NamedCount(BaseModel):
    name: str
    count: int


class Availability(BaseModel):
    available: int = 0
    claimed: int = 0


class GraphSampleEntry(BaseModel):
    issueId: int
    issueTitle: str
    filePath: str
    isAvailable: bool = True
    assignees: List[str] = []


class AnalyticsView(BaseModel):
    labels: List[NamedCount] = []
    files: List[NamedCount] = []
    availability: Availability = Availability()
    graphSample: List[GraphSampleEntry] = []
