"""
In-process graph store with the same interface and merge semantics as
``Neo4jGraphStore``. Recommendation queries are answered by evaluating the
synthesized predicate tree instead of the Cypher text.

Selected with GRAPH_BACKEND=memory; handy for demos and tests without a
Neo4j server. State lives only as long as the process.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set, Tuple

from .cypher import IssueCandidate
from .graph_store import ANALYTICS_TOP_N, GRAPH_SAMPLE_LIMIT
from .models import IssueRecord

logger = logging.getLogger(__name__)

IssueKey = Tuple[int, str]


class InMemoryGraphStore:
    def __init__(self):
        # Held for every read and write: one lock acquisition is one transaction
        self._lock = threading.RLock()
        self.issues: Dict[IssueKey, Dict[str, Any]] = {}
        self.files: Set[str] = set()
        self.labels: Set[str] = set()
        self.users: Set[str] = set()
        self.relates_to: Dict[IssueKey, Set[str]] = defaultdict(set)
        self.has_label: Dict[IssueKey, Set[str]] = defaultdict(set)
        self.assigned_to: Dict[IssueKey, Set[str]] = defaultdict(set)

    def close(self):
        pass

    def init_schema(self):
        pass

    def verify_connectivity(self) -> bool:
        return True

    # --------------- Writes ---------------
    def upsert_issue(self, issue: IssueRecord, file_path: str):
        key = (issue.id, issue.repo)
        with self._lock:
            node = self.issues.get(key)
            if node is None:
                node = {"id": issue.id, "repo": issue.repo, "createdAt": issue.createdAt}
                self.issues[key] = node
            node.update(
                title=issue.title,
                url=issue.url,
                comments=issue.comments,
                state=issue.state,
                updatedAt=issue.updatedAt,
                isAvailable=issue.is_available,
            )
            self.files.add(file_path)
            self.relates_to[key].add(file_path)
            for name in issue.labels:
                self.labels.add(name)
                self.has_label[key].add(name)
            for login in issue.assignees:
                self.users.add(login)
                self.assigned_to[key].add(login)
        logger.info("Saved Issue #%s → %s", issue.id, file_path)

    # --------------- Reads ---------------
    def _pairs(self):
        """Yield (key, issue, path) for every RELATES_TO edge."""
        for key, paths in self.relates_to.items():
            issue = self.issues[key]
            for path in sorted(paths):
                yield key, issue, path

    def recommend(self, query) -> List[Dict[str, Any]]:
        rows = []
        with self._lock:
            for key, issue, path in self._pairs():
                candidate = IssueCandidate(
                    id=issue["id"],
                    repo=issue["repo"],
                    title=issue.get("title") or "",
                    comments=issue.get("comments") or 0,
                    file_path=path,
                    labels=frozenset(self.has_label.get(key, ())),
                )
                if not query.predicate.matches(candidate):
                    continue
                rows.append({
                    "id": issue["id"],
                    "title": issue.get("title"),
                    "url": issue.get("url"),
                    "filePath": path,
                    "comments": issue.get("comments") or 0,
                    "isAvailable": issue.get("isAvailable", True),
                    "assignees": sorted(self.assigned_to.get(key, ())),
                })
        rows.sort(key=lambda r: (r["comments"], r["id"]))
        return rows[: query.limit]

    def issue_graph(self, issue_id: int, repo: Optional[str] = None) -> Optional[Dict[str, Any]]:
        with self._lock:
            keys = sorted(k for k in self.issues if k[0] == issue_id and (repo is None or k[1] == repo))
            if not keys:
                return None
            key = keys[0]
            issue = self.issues[key]
            paths = sorted(self.relates_to.get(key, ()))
            related = []
            for other_key, other_paths in self.relates_to.items():
                if other_key == key or not other_paths & set(paths):
                    continue
                other = self.issues[other_key]
                related.append({"id": other["id"], "title": other.get("title"), "isAvailable": other.get("isAvailable", True)})
            return {
                "issue": {k: issue.get(k) for k in ("id", "repo", "title", "url", "isAvailable")},
                "filePath": paths[0] if paths else None,
                "labels": sorted(self.has_label.get(key, ())),
                "assignees": sorted(self.assigned_to.get(key, ())),
                "relatedIssues": related,
            }

    def analytics(self) -> Dict[str, Any]:
        with self._lock:
            label_counts: Dict[str, int] = defaultdict(int)
            for names in self.has_label.values():
                for name in names:
                    label_counts[name] += 1
            file_counts: Dict[str, int] = defaultdict(int)
            for paths in self.relates_to.values():
                for path in paths:
                    file_counts[path] += 1

            def top(counts):
                ranked = sorted(counts.items(), key=lambda x: (-x[1], x[0]))[:ANALYTICS_TOP_N]
                return [{"name": n, "count": c} for n, c in ranked]

            available = sum(1 for i in self.issues.values() if i.get("isAvailable"))
            sample = [
                {
                    "issueId": issue["id"],
                    "issueTitle": issue.get("title") or "",
                    "filePath": path,
                    "isAvailable": issue.get("isAvailable", True),
                    "assignees": sorted(self.assigned_to.get(key, ())),
                }
                for key, issue, path in self._pairs()
            ]
            sample.sort(key=lambda r: (r["issueId"], r["filePath"]))
            return {
                "labels": top(label_counts),
                "files": top(file_counts),
                "availability": {"available": available, "claimed": len(self.issues) - available},
                "graphSample": sample[:GRAPH_SAMPLE_LIMIT],
            }

    def list_repositories(self) -> List[str]:
        with self._lock:
            return sorted({repo for _, repo in self.issues})

    def list_issues(self, repo: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [
                {
                    "id": issue["id"],
                    "repo": issue["repo"],
                    "title": issue.get("title"),
                    "url": issue.get("url"),
                    "filePath": path,
                    "comments": issue.get("comments") or 0,
                    "isAvailable": issue.get("isAvailable", True),
                    "assignees": sorted(self.assigned_to.get(key, ())),
                    "state": issue.get("state"),
                    "updatedAt": issue.get("updatedAt"),
                }
                for key, issue, path in self._pairs()
                if repo is None or issue["repo"] == repo
            ]
        rows.sort(key=lambda r: r["id"])
        rows.sort(key=lambda r: r["updatedAt"] or "", reverse=True)
        return rows[:limit]
