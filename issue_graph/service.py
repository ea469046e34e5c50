"""
Recommendation service: wires intent extraction, query synthesis and the
graph store together, and shapes store rows into the public models.

Usage:
>>> from issue_graph.service import build_recommender
>>> svc = build_recommender()
>>> answer = svc.answer("acme/widgets", "find me a beginner issue")
>>> print(answer.count, answer.explanation)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .classifier import FilePathClassifier
from .config import AppConfig
from .ingest import IngestionService
from .intent import IntentExtractor
from .llm import OllamaClient
from .models import (
    AnalyticsView,
    FileNode,
    Intent,
    IssueGraphView,
    IssueResult,
    IssueSummary,
    QueryAnswer,
)
from .synthesizer import synthesize

logger = logging.getLogger(__name__)


def shape_issue_graph(row: Dict[str, Any]) -> IssueGraphView:
    path = row.get("filePath")
    return IssueGraphView(
        issue=row["issue"],
        file=FileNode(path=path) if path else None,
        assignees=[a for a in row.get("assignees") or [] if a],
        labels=[name for name in row.get("labels") or [] if name],
        relatedIssues=row.get("relatedIssues") or [],
    )


class IssueRecommender:
    def __init__(self, extractor: IntentExtractor, store):
        self.extractor = extractor
        self.store = store

    def answer(self, repo: str, query: str) -> QueryAnswer:
        """Answer a free-text question with up to ten issues from ``repo``.

        Raises QueryExecutionError if the graph cannot be read.
        """
        intent = self.extractor.extract_intent(query)
        return self.answer_intent(repo, intent)

    def answer_intent(self, repo: str, intent: Intent) -> QueryAnswer:
        query = synthesize(repo, intent)
        logger.debug("Recommendation query params: %s", query.params)
        rows = self.store.recommend(query)
        issues = [
            IssueResult(**{**row, "assignees": [a for a in row.get("assignees") or [] if a]})
            for row in rows
        ]
        return QueryAnswer(issues=issues, intent=intent, explanation=intent.explanation, count=len(issues))

    def issue_graph(self, issue_id: int, repo: Optional[str] = None) -> Optional[IssueGraphView]:
        row = self.store.issue_graph(issue_id, repo)
        if row is None:
            return None
        return shape_issue_graph(row)

    def analytics(self) -> AnalyticsView:
        return AnalyticsView.model_validate(self.store.analytics())

    def repositories(self) -> List[str]:
        return self.store.list_repositories()

    def issues(self, repo: Optional[str] = None) -> List[IssueSummary]:
        return [IssueSummary(**row) for row in self.store.list_issues(repo)]


def build_store(config: AppConfig):
    if config.graph_backend == "memory":
        from .memory_store import InMemoryGraphStore
        logger.info("Using in-memory graph store")
        return InMemoryGraphStore()
    from .graph_store import Neo4jGraphStore
    return Neo4jGraphStore(config.neo4j)


def build_recommender(config: Optional[AppConfig] = None, store=None, llm=None) -> IssueRecommender:
    config = config or AppConfig()
    llm = llm or OllamaClient(config.ollama)
    store = store or build_store(config)
    return IssueRecommender(IntentExtractor(llm, config.ollama), store)


def build_ingestion(config: Optional[AppConfig] = None, store=None, llm=None) -> IngestionService:
    config = config or AppConfig()
    llm = llm or OllamaClient(config.ollama)
    store = store or build_store(config)
    classifier = FilePathClassifier(llm, config.ingest, config.ollama)
    return IngestionService(classifier, store, config.ingest)
