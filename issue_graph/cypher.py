"""
Typed predicate nodes for the recommendation query.

Each node renders itself to a Cypher boolean expression through a
``ParameterBinder``; literal values only ever reach Neo4j as bound
parameters. The same nodes can be evaluated directly against an
``IssueCandidate`` (used by the in-memory graph backend).

Variables in the rendered text: ``i`` is the Issue, ``f`` the related File.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple


class ParameterBinder:
    """Allocates parameter names and records their values."""

    def __init__(self):
        self.params: Dict[str, Any] = {}

    def bind(self, hint: str, value: Any) -> str:
        name = hint
        n = 1
        while name in self.params:
            name = f"{hint}{n}"
            n += 1
        self.params[name] = value
        return f"${name}"


@dataclass(frozen=True)
class IssueCandidate:
    """Flattened Issue/File pair the predicates are evaluated against."""
    id: int
    repo: str
    title: str
    comments: int
    file_path: str
    labels: FrozenSet[str] = frozenset()


class Predicate:
    def to_cypher(self, binder: ParameterBinder) -> str:
        raise NotImplementedError

    def matches(self, candidate: IssueCandidate) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class RepoEquals(Predicate):
    repo: str

    def to_cypher(self, binder: ParameterBinder) -> str:
        return f"i.repo = {binder.bind('repo', self.repo)}"

    def matches(self, candidate: IssueCandidate) -> bool:
        return candidate.repo == self.repo


@dataclass(frozen=True)
class LabelExists(Predicate):
    name: str

    def to_cypher(self, binder: ParameterBinder) -> str:
        param = binder.bind("label", self.name)
        return f"EXISTS {{ MATCH (i)-[:HAS_LABEL]->(:Label {{name: {param}}}) }}"

    def matches(self, candidate: IssueCandidate) -> bool:
        return self.name in candidate.labels


@dataclass(frozen=True)
class CommentRange(Predicate):
    """Half-open range ``minimum <= comments < maximum``; either end optional."""
    minimum: Optional[int] = None
    maximum: Optional[int] = None

    def to_cypher(self, binder: ParameterBinder) -> str:
        parts = []
        if self.minimum is not None:
            parts.append(f"i.comments >= {binder.bind('minComments', self.minimum)}")
        if self.maximum is not None:
            parts.append(f"i.comments < {binder.bind('maxComments', self.maximum)}")
        if not parts:
            return "true"
        return " AND ".join(parts) if len(parts) == 1 else f"({' AND '.join(parts)})"

    def matches(self, candidate: IssueCandidate) -> bool:
        if self.minimum is not None and candidate.comments < self.minimum:
            return False
        if self.maximum is not None and candidate.comments >= self.maximum:
            return False
        return True


@dataclass(frozen=True)
class PathContains(Predicate):
    fragment: str

    def to_cypher(self, binder: ParameterBinder) -> str:
        return f"f.path CONTAINS {binder.bind('pathFragment', self.fragment)}"

    def matches(self, candidate: IssueCandidate) -> bool:
        return self.fragment in candidate.file_path


@dataclass(frozen=True)
class TitleContains(Predicate):
    """Case-insensitive title match; the keyword is stored lower-cased."""
    keyword: str

    def __post_init__(self):
        object.__setattr__(self, "keyword", self.keyword.lower())

    def to_cypher(self, binder: ParameterBinder) -> str:
        return f"toLower(i.title) CONTAINS {binder.bind('keyword', self.keyword)}"

    def matches(self, candidate: IssueCandidate) -> bool:
        return self.keyword in (candidate.title or "").lower()


@dataclass(frozen=True)
class AnyOf(Predicate):
    children: Tuple[Predicate, ...] = field(default_factory=tuple)

    def to_cypher(self, binder: ParameterBinder) -> str:
        if not self.children:
            return "false"
        return "(" + " OR ".join(c.to_cypher(binder) for c in self.children) + ")"

    def matches(self, candidate: IssueCandidate) -> bool:
        return any(c.matches(candidate) for c in self.children)


@dataclass(frozen=True)
class AllOf(Predicate):
    children: Tuple[Predicate, ...] = field(default_factory=tuple)

    def to_cypher(self, binder: ParameterBinder) -> str:
        if not self.children:
            return "true"
        return " AND ".join(c.to_cypher(binder) for c in self.children)

    def matches(self, candidate: IssueCandidate) -> bool:
        return all(c.matches(candidate) for c in self.children)
