"""
Neo4j access layer.

Graph layout:
- (:Issue {id, repo})  title, url, state, comments, createdAt, updatedAt, isAvailable
- (:File {path})
- (:Label {name})
- (:User {username})
- (Issue)-[:RELATES_TO]->(File), (Issue)-[:HAS_LABEL]->(Label), (Issue)-[:ASSIGNED_TO]->(User)

The driver pools connections internally; each public method opens its own
session and closes it on every exit path. Writes are single managed
transactions so a partially merged issue is never visible.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from neo4j import GraphDatabase, unit_of_work
from neo4j.exceptions import DriverError, Neo4jError

from .config import Neo4jConfig
from .errors import GraphStoreError, QueryExecutionError
from .models import IssueRecord

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    "CREATE CONSTRAINT issue_key IF NOT EXISTS FOR (i:Issue) REQUIRE (i.id, i.repo) IS UNIQUE",
    "CREATE CONSTRAINT file_path IF NOT EXISTS FOR (f:File) REQUIRE f.path IS UNIQUE",
    "CREATE CONSTRAINT label_name IF NOT EXISTS FOR (l:Label) REQUIRE l.name IS UNIQUE",
    "CREATE CONSTRAINT user_username IF NOT EXISTS FOR (u:User) REQUIRE u.username IS UNIQUE",
]

UPSERT_ISSUE = """
MERGE (i:Issue {id: $issueId, repo: $repo})
  ON CREATE SET i.createdAt = $createdAt
SET i.title = $title, i.url = $url, i.comments = $comments,
    i.state = $state, i.updatedAt = $updatedAt,
    i.isAvailable = $isAvailable
MERGE (f:File {path: $filePath})
MERGE (i)-[:RELATES_TO]->(f)
WITH i
FOREACH (labelName IN $labels |
  MERGE (l:Label {name: labelName})
  MERGE (i)-[:HAS_LABEL]->(l)
)
FOREACH (login IN $assignees |
  MERGE (u:User {username: login})
  MERGE (i)-[:ASSIGNED_TO]->(u)
)
"""

ISSUE_GRAPH = """
MATCH (i:Issue {id: $issueId})
WHERE $repo IS NULL OR i.repo = $repo
WITH i ORDER BY i.repo LIMIT 1
OPTIONAL MATCH (i)-[:RELATES_TO]->(f:File)
OPTIONAL MATCH (i)-[:HAS_LABEL]->(l:Label)
OPTIONAL MATCH (i)-[:ASSIGNED_TO]->(u:User)
OPTIONAL MATCH (f)<-[:RELATES_TO]-(other:Issue)
WHERE other <> i
RETURN i {.id, .repo, .title, .url, .isAvailable} AS issue,
       head(collect(DISTINCT f.path)) AS filePath,
       collect(DISTINCT l.name) AS labels,
       collect(DISTINCT u.username) AS assignees,
       collect(DISTINCT other {.id, .title, .isAvailable}) AS relatedIssues
"""

TOP_LABELS = """
MATCH (i:Issue)-[:HAS_LABEL]->(l:Label)
RETURN l.name AS name, count(DISTINCT i) AS count
ORDER BY count DESC, name ASC
LIMIT $limit
"""

TOP_FILES = """
MATCH (i:Issue)-[:RELATES_TO]->(f:File)
RETURN f.path AS name, count(DISTINCT i) AS count
ORDER BY count DESC, name ASC
LIMIT $limit
"""

AVAILABILITY = """
MATCH (i:Issue)
RETURN sum(CASE WHEN i.isAvailable THEN 1 ELSE 0 END) AS available,
       sum(CASE WHEN i.isAvailable THEN 0 ELSE 1 END) AS claimed
"""

GRAPH_SAMPLE = """
MATCH (i:Issue)-[:RELATES_TO]->(f:File)
OPTIONAL MATCH (i)-[:ASSIGNED_TO]->(u:User)
WITH i, f, collect(DISTINCT u.username) AS assignees
RETURN i.id AS issueId, i.title AS issueTitle, f.path AS filePath,
       i.isAvailable AS isAvailable, assignees
ORDER BY issueId ASC, filePath ASC
LIMIT $limit
"""

LIST_REPOSITORIES = """
MATCH (i:Issue)
RETURN DISTINCT i.repo AS repo
ORDER BY repo
"""

LIST_ISSUES = """
MATCH (i:Issue)-[:RELATES_TO]->(f:File)
WHERE $repo IS NULL OR i.repo = $repo
OPTIONAL MATCH (i)-[:ASSIGNED_TO]->(u:User)
WITH i, f, collect(DISTINCT u.username) AS assignees
RETURN i.id AS id, i.repo AS repo, i.title AS title, i.url AS url,
       f.path AS filePath, i.comments AS comments, i.isAvailable AS isAvailable,
       assignees, i.state AS state, i.updatedAt AS updatedAt
ORDER BY updatedAt DESC, id ASC
LIMIT $limit
"""

ANALYTICS_TOP_N = 10
GRAPH_SAMPLE_LIMIT = 50


def issue_params(issue: IssueRecord, file_path: str) -> Dict[str, Any]:
    return {
        "issueId": issue.id,
        "repo": issue.repo,
        "title": issue.title,
        "url": issue.url,
        "comments": issue.comments,
        "state": issue.state,
        "createdAt": issue.createdAt,
        "updatedAt": issue.updatedAt,
        "isAvailable": issue.is_available,
        "filePath": file_path,
        "labels": list(issue.labels),
        "assignees": list(issue.assignees),
    }


class Neo4jGraphStore:
    """Graph store backed by a Neo4j server."""

    def __init__(self, config: Optional[Neo4jConfig] = None, driver=None):
        self.config = config or Neo4jConfig()
        self.driver = driver or GraphDatabase.driver(
            self.config.uri,
            auth=(self.config.user, self.config.password),
            connection_timeout=self.config.timeout,
        )
        logger.info(f"Connected to Neo4j at {self.config.uri}")

    def close(self):
        """Close the Neo4j connection"""
        self.driver.close()

    def _session(self):
        if self.config.database:
            return self.driver.session(database=self.config.database)
        return self.driver.session()

    def _read(self, cypher: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        @unit_of_work(timeout=self.config.timeout)
        def work(tx):
            return [record.data() for record in tx.run(cypher, params or {})]

        try:
            with self._session() as session:
                return session.execute_read(work)
        except (Neo4jError, DriverError) as e:
            logger.error(f"Query execution failed: {e}")
            raise QueryExecutionError("Failed to query the issue graph", detail=str(e)) from e

    # --------------- Schema ---------------
    def init_schema(self):
        try:
            with self._session() as session:
                for stmt in SCHEMA_STATEMENTS:
                    session.run(stmt).consume()
        except (Neo4jError, DriverError) as e:
            raise GraphStoreError(f"Failed to create constraints: {e}") from e
        logger.info("Graph constraints ensured (%d statements)", len(SCHEMA_STATEMENTS))

    def verify_connectivity(self) -> bool:
        try:
            self.driver.verify_connectivity()
            return True
        except (Neo4jError, DriverError) as e:
            logger.warning("Neo4j not reachable: %s", e)
            return False

    # --------------- Writes ---------------
    def upsert_issue(self, issue: IssueRecord, file_path: str):
        """Merge one classified issue and its file, labels and assignees."""
        params = issue_params(issue, file_path)

        @unit_of_work(timeout=self.config.timeout)
        def work(tx):
            tx.run(UPSERT_ISSUE, params).consume()

        try:
            with self._session() as session:
                session.execute_write(work)
        except (Neo4jError, DriverError) as e:
            raise GraphStoreError(f"Failed to save issue #{issue.id} ({issue.repo}): {e}") from e
        logger.info("Saved Issue #%s → %s", issue.id, file_path)

    # --------------- Reads ---------------
    def recommend(self, query) -> List[Dict[str, Any]]:
        """Run a SynthesizedQuery and return its rows."""
        return self._read(query.cypher, query.params)

    def issue_graph(self, issue_id: int, repo: Optional[str] = None) -> Optional[Dict[str, Any]]:
        rows = self._read(ISSUE_GRAPH, {"issueId": issue_id, "repo": repo})
        if not rows or rows[0].get("issue") is None:
            return None
        return rows[0]

    def analytics(self) -> Dict[str, Any]:
        @unit_of_work(timeout=self.config.timeout)
        def work(tx):
            labels = [r.data() for r in tx.run(TOP_LABELS, limit=ANALYTICS_TOP_N)]
            files = [r.data() for r in tx.run(TOP_FILES, limit=ANALYTICS_TOP_N)]
            availability = tx.run(AVAILABILITY).single()
            sample = [r.data() for r in tx.run(GRAPH_SAMPLE, limit=GRAPH_SAMPLE_LIMIT)]
            return {
                "labels": labels,
                "files": files,
                "availability": {
                    "available": (availability["available"] if availability else 0) or 0,
                    "claimed": (availability["claimed"] if availability else 0) or 0,
                },
                "graphSample": sample,
            }

        try:
            with self._session() as session:
                return session.execute_read(work)
        except (Neo4jError, DriverError) as e:
            logger.error(f"Analytics query failed: {e}")
            raise QueryExecutionError("Failed to fetch analytics", detail=str(e)) from e

    def list_repositories(self) -> List[str]:
        return [r["repo"] for r in self._read(LIST_REPOSITORIES) if r.get("repo")]

    def list_issues(self, repo: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        return self._read(LIST_ISSUES, {"repo": repo, "limit": limit})
