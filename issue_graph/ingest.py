"""
Ingestion: classify each issue to a file, then merge it into the graph.

Issues arrive as canonical records (usually a JSON dump produced by the
tracker fetcher). The batch is processed sequentially because the inference
endpoint is a single local resource. An issue the classifier cannot link to a
file is skipped; an issue whose write fails is logged and recorded in the
report, and the batch moves on.
"""

from __future__ import annotations

import json
import logging
from typing import Iterable, List, Optional

from pydantic import ValidationError

from .config import IngestConfig
from .errors import GraphStoreError
from .models import UNCLASSIFIED, IngestFailure, IngestReport, IssueRecord

logger = logging.getLogger(__name__)


def load_issues(path: str) -> List[IssueRecord]:
    """Read canonical issue records from a JSON file.

    Accepts either a top-level list or an object with an ``issues`` list.
    A record that does not validate is logged and skipped.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("issues") or []

    issues = []
    for pos, item in enumerate(data):
        try:
            issues.append(IssueRecord.model_validate(item))
        except ValidationError as e:
            ref = item.get("id") if isinstance(item, dict) else None
            logger.warning("Skipping record %d (id=%s): %d validation error(s)", pos, ref, e.error_count())
    return issues


class IngestionService:
    def __init__(self, classifier, store, config: Optional[IngestConfig] = None):
        self.classifier = classifier
        self.store = store
        self.config = config or IngestConfig()

    def ingest(self, issue: IssueRecord, file_path: str):
        """Merge one classified issue. Raises GraphStoreError on failure."""
        if file_path == UNCLASSIFIED:
            raise ValueError("unclassified issues are not persisted")
        self.store.upsert_issue(issue, file_path)

    def ingest_batch(self, issues: Iterable[IssueRecord], sample_size: Optional[int] = None) -> IngestReport:
        limit = self.config.sample_size if sample_size is None else sample_size
        report = IngestReport()

        for issue in list(issues)[:limit]:
            report.processed += 1
            file_path = self.classifier.classify(issue)
            if file_path == UNCLASSIFIED:
                report.unclassified.append(issue.id)
                continue
            try:
                self.ingest(issue, file_path)
            except GraphStoreError as e:
                logger.error("Failed to save Issue #%s: %s", issue.id, e)
                report.failed.append(IngestFailure(issueId=issue.id, repo=issue.repo, error=str(e)))
                continue
            report.persisted.append(issue.id)

        logger.info(
            "Ingestion finished: %d processed, %d saved, %d unclassified, %d failed",
            report.processed, len(report.persisted), len(report.unclassified), len(report.failed),
        )
        return report
