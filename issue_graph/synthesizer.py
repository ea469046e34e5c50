"""
Query synthesis: compiles a repository + Intent into a parameterized Cypher
recommendation query.

Every intent field contributes at most one predicate; the predicates are
ANDed together with the mandatory repository equality. Ordering (fewest
comments first, issue id as tie-break) and the row cap do not depend on the
intent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .cypher import (
    AllOf,
    AnyOf,
    CommentRange,
    LabelExists,
    ParameterBinder,
    PathContains,
    Predicate,
    RepoEquals,
    TitleContains,
)
from .models import Area, Difficulty, Intent, IssueType

RESULT_LIMIT = 10

BEGINNER_LABEL = "good-first-issue"
BEGINNER_MAX_COMMENTS = 5
ADVANCED_MIN_COMMENTS = 15

AREA_PATH_KEYWORDS: Dict[Area, Tuple[str, ...]] = {
    Area.FRONTEND: ("ui", "component", "frontend", "client", "view"),
    Area.BACKEND: ("api", "server", "backend", "service", "controller"),
    Area.DOCS: ("doc", "readme", "guide"),
    Area.TESTING: ("test", "spec"),
    # Area.API is accepted from the model but has no path rule yet
}

RECOMMENDATION_TEMPLATE = """
MATCH (i:Issue)-[:RELATES_TO]->(f:File)
WHERE {conditions}
OPTIONAL MATCH (i)-[:ASSIGNED_TO]->(u:User)
WITH i, f, collect(DISTINCT u.username) AS names
RETURN i.id AS id, i.title AS title, i.url AS url, f.path AS filePath,
       i.comments AS comments, i.isAvailable AS isAvailable,
       [name IN names WHERE name IS NOT NULL] AS assignees
ORDER BY comments ASC, id ASC
LIMIT $limit
"""


@dataclass(frozen=True)
class SynthesizedQuery:
    cypher: str
    params: Dict[str, Any]
    predicate: AllOf
    limit: int = RESULT_LIMIT


def difficulty_predicate(difficulty: Difficulty) -> Optional[Predicate]:
    if difficulty == Difficulty.BEGINNER:
        return AnyOf((LabelExists(BEGINNER_LABEL), CommentRange(maximum=BEGINNER_MAX_COMMENTS)))
    if difficulty == Difficulty.INTERMEDIATE:
        return CommentRange(minimum=BEGINNER_MAX_COMMENTS, maximum=ADVANCED_MIN_COMMENTS)
    if difficulty == Difficulty.ADVANCED:
        return CommentRange(minimum=ADVANCED_MIN_COMMENTS)
    return None


def area_predicate(area: Area) -> Optional[Predicate]:
    fragments = AREA_PATH_KEYWORDS.get(area)
    if not fragments:
        return None
    return AnyOf(tuple(PathContains(f) for f in fragments))


def type_predicate(issue_type: IssueType) -> Optional[Predicate]:
    if issue_type == IssueType.ANY:
        return None
    return LabelExists(issue_type.value)


def keyword_predicate(keywords: List[str]) -> Optional[Predicate]:
    if not keywords:
        return None
    return AnyOf(tuple(TitleContains(k) for k in keywords))


def build_predicate(repo: str, intent: Intent) -> AllOf:
    parts: List[Predicate] = [RepoEquals(repo)]
    for pred in (
        difficulty_predicate(intent.difficulty),
        area_predicate(intent.area),
        type_predicate(intent.type),
        keyword_predicate(intent.keywords),
    ):
        if pred is not None:
            parts.append(pred)
    return AllOf(tuple(parts))


def synthesize(repo: str, intent: Intent, limit: int = RESULT_LIMIT) -> SynthesizedQuery:
    """Compile ``intent`` into (cypher, params) scoped to ``repo``."""
    predicate = build_predicate(repo, intent)
    binder = ParameterBinder()
    conditions = predicate.to_cypher(binder)
    binder.bind("limit", limit)
    cypher = RECOMMENDATION_TEMPLATE.format(conditions=conditions).strip()
    return SynthesizedQuery(cypher=cypher, params=binder.params, predicate=predicate, limit=limit)
