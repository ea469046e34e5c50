"""Tests for the classify-then-merge ingestion loop."""
import json

import pytest

from issue_graph.classifier import FilePathClassifier
from issue_graph.config import IngestConfig
from issue_graph.errors import GraphStoreError, LLMError
from issue_graph.ingest import IngestionService, load_issues
from issue_graph.models import UNCLASSIFIED, Intent
from issue_graph.synthesizer import synthesize

from tests.helpers import FakeLLM, make_issue


def _service(store, *replies, sample_size=30):
    classifier = FilePathClassifier(FakeLLM(*replies))
    return IngestionService(classifier, store, IngestConfig(sample_size=sample_size))


class TestIngestBatch:
    def test_classified_issues_are_persisted(self, store):
        svc = _service(store, "src/a.py", "src/b.py")

        report = svc.ingest_batch([make_issue(1), make_issue(2)])

        assert report.processed == 2
        assert report.persisted == [1, 2]
        assert set(store.issues) == {(1, "acme/widgets"), (2, "acme/widgets")}

    def test_unclassified_issue_is_not_persisted(self, store):
        svc = _service(store, "unknown", "src/b.py")

        report = svc.ingest_batch([make_issue(1), make_issue(2)])

        assert report.unclassified == [1]
        assert (1, "acme/widgets") not in store.issues
        rows = store.recommend(synthesize("acme/widgets", Intent.fallback()))
        assert [r["id"] for r in rows] == [2]

    def test_endpoint_error_degrades_to_unclassified(self, store):
        svc = _service(store, LLMError("down"), "src/b.py")

        report = svc.ingest_batch([make_issue(1), make_issue(2)])

        assert report.unclassified == [1]
        assert report.persisted == [2]

    def test_failed_write_does_not_stop_the_batch(self, store):
        real_upsert = store.upsert_issue

        def flaky(issue, path):
            if issue.id == 1:
                raise GraphStoreError("constraint violated")
            real_upsert(issue, path)

        store.upsert_issue = flaky
        svc = _service(store, "src/a.py", "src/b.py")

        report = svc.ingest_batch([make_issue(1), make_issue(2)])

        assert [f.issueId for f in report.failed] == [1]
        assert "constraint violated" in report.failed[0].error
        assert report.persisted == [2]

    def test_sample_size_bounds_the_batch(self, store):
        svc = _service(store, *["src/a.py"] * 5, sample_size=3)

        report = svc.ingest_batch([make_issue(n) for n in range(5)])

        assert report.processed == 3
        assert len(store.issues) == 3

    def test_ingest_refuses_unclassified(self, store):
        with pytest.raises(ValueError):
            _service(store).ingest(make_issue(1), UNCLASSIFIED)


class TestLoadIssues:
    def test_list_and_wrapped_forms(self, tmp_path):
        record = {"id": 3, "repo": "acme/widgets", "title": "t", "commentCount": 4}
        plain = tmp_path / "plain.json"
        plain.write_text(json.dumps([record]))
        wrapped = tmp_path / "wrapped.json"
        wrapped.write_text(json.dumps({"issues": [record]}))

        for path in (plain, wrapped):
            issues = load_issues(str(path))
            assert len(issues) == 1
            assert issues[0].comments == 4
            assert issues[0].is_available

    def test_null_body_is_loaded_and_ingested(self, tmp_path, store):
        records = [
            {"id": 1, "repo": "acme/widgets", "title": "Crash on save", "body": "x"},
            {"id": 2, "repo": "acme/widgets", "title": "No description", "body": None, "labels": None},
        ]
        path = tmp_path / "issues.json"
        path.write_text(json.dumps(records))

        issues = load_issues(str(path))

        assert [i.id for i in issues] == [1, 2]
        assert issues[1].body == ""
        assert issues[1].labels == []

        report = _service(store, "src/a.py", "src/b.py").ingest_batch(issues)
        assert report.persisted == [1, 2]

    def test_invalid_record_is_skipped(self, tmp_path):
        records = [
            {"id": 1, "repo": "acme/widgets", "title": "ok"},
            {"id": "not-a-number", "repo": "acme/widgets", "title": "bad"},
            {"id": 3, "repo": "acme/widgets", "title": "also ok"},
        ]
        path = tmp_path / "issues.json"
        path.write_text(json.dumps(records))

        assert [i.id for i in load_issues(str(path))] == [1, 3]
