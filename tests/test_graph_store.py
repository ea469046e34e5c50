"""Tests for the Neo4j store against a mocked driver."""
from unittest.mock import MagicMock

import pytest
from neo4j.exceptions import ServiceUnavailable

from issue_graph.config import Neo4jConfig
from issue_graph.errors import GraphStoreError, QueryExecutionError
from issue_graph.graph_store import GRAPH_SAMPLE, UPSERT_ISSUE, Neo4jGraphStore
from issue_graph.models import Intent
from issue_graph.synthesizer import synthesize

from tests.helpers import make_issue


def _record(data):
    rec = MagicMock()
    rec.data.return_value = data
    return rec


@pytest.fixture
def tx():
    return MagicMock()


@pytest.fixture
def session(tx):
    sess = MagicMock()
    sess.execute_write.side_effect = lambda work: work(tx)
    sess.execute_read.side_effect = lambda work: work(tx)
    return sess


@pytest.fixture
def driver(session):
    drv = MagicMock()
    drv.session.return_value.__enter__.return_value = session
    return drv


@pytest.fixture
def graph(driver):
    return Neo4jGraphStore(Neo4jConfig(uri="bolt://test:7687", timeout=5), driver=driver)


class TestUpsert:
    def test_single_write_transaction_with_merge_params(self, graph, session, tx):
        issue = make_issue(7, labels=["bug"], assignees=["alice"], comments=3)

        graph.upsert_issue(issue, "src/a.py")

        session.execute_write.assert_called_once()
        tx.run.assert_called_once()
        cypher, params = tx.run.call_args.args
        assert cypher == UPSERT_ISSUE
        assert params["issueId"] == 7
        assert params["repo"] == "acme/widgets"
        assert params["filePath"] == "src/a.py"
        assert params["labels"] == ["bug"]
        assert params["assignees"] == ["alice"]
        assert params["isAvailable"] is False
        assert params["comments"] == 3

    def test_unassigned_issue_is_available(self, graph, tx):
        graph.upsert_issue(make_issue(7), "src/a.py")
        assert tx.run.call_args.args[1]["isAvailable"] is True

    def test_merge_statement_shape(self):
        assert "MERGE (i:Issue {id: $issueId, repo: $repo})" in UPSERT_ISSUE
        assert "ON CREATE SET i.createdAt = $createdAt" in UPSERT_ISSUE
        assert "MERGE (i)-[:RELATES_TO]->(f)" in UPSERT_ISSUE
        assert "MERGE (i)-[:HAS_LABEL]->(l)" in UPSERT_ISSUE
        assert "MERGE (i)-[:ASSIGNED_TO]->(u)" in UPSERT_ISSUE
        assert "CREATE (" not in UPSERT_ISSUE

    def test_storage_error_is_wrapped(self, graph, session):
        session.execute_write.side_effect = ServiceUnavailable("down")

        with pytest.raises(GraphStoreError):
            graph.upsert_issue(make_issue(7), "src/a.py")

    def test_session_is_released_on_error(self, graph, driver, session):
        session.execute_write.side_effect = ServiceUnavailable("down")

        with pytest.raises(GraphStoreError):
            graph.upsert_issue(make_issue(7), "src/a.py")

        driver.session.return_value.__exit__.assert_called_once()


class TestReads:
    def test_recommend_runs_synthesized_query(self, graph, tx):
        row = {"id": 1, "title": "t", "url": "u", "filePath": "src/a.py", "comments": 0, "isAvailable": True, "assignees": []}
        tx.run.return_value = [_record(row)]
        query = synthesize("acme/widgets", Intent.fallback())

        assert graph.recommend(query) == [row]
        tx.run.assert_called_once_with(query.cypher, query.params)

    def test_read_failure_is_query_error(self, graph, session):
        session.execute_read.side_effect = ServiceUnavailable("down")

        with pytest.raises(QueryExecutionError) as exc:
            graph.recommend(synthesize("r", Intent.fallback()))

        assert exc.value.message == "Failed to query the issue graph"
        assert "down" in exc.value.detail

    def test_issue_graph_none_when_missing(self, graph, tx):
        tx.run.return_value = []
        assert graph.issue_graph(1) is None

    def test_issue_graph_passes_key(self, graph, tx):
        tx.run.return_value = [_record({"issue": {"id": 1}, "filePath": "a.py", "labels": [], "assignees": [], "relatedIssues": []})]

        assert graph.issue_graph(1, "acme/widgets")["filePath"] == "a.py"
        assert tx.run.call_args.args[1] == {"issueId": 1, "repo": "acme/widgets"}

    def test_database_is_selected(self, driver):
        store = Neo4jGraphStore(Neo4jConfig(database="issues"), driver=driver)
        store.list_repositories()
        driver.session.assert_called_with(database="issues")


class TestSchema:
    def test_constraints_for_every_identity(self, graph, session):
        graph.init_schema()

        statements = [c.args[0] for c in session.run.call_args_list]
        assert len(statements) == 4
        assert all("IF NOT EXISTS" in s for s in statements)
        assert any("(i.id, i.repo) IS UNIQUE" in s for s in statements)

    def test_schema_failure_is_store_error(self, graph, session):
        session.run.side_effect = ServiceUnavailable("down")

        with pytest.raises(GraphStoreError):
            graph.init_schema()


class TestAnalytics:
    def test_sample_carries_availability(self, graph, tx):
        sample_row = {"issueId": 1, "issueTitle": "t", "filePath": "src/a.py", "isAvailable": False, "assignees": ["alice"]}

        def run(cypher, **params):
            result = MagicMock()
            if cypher == GRAPH_SAMPLE:
                result.__iter__.return_value = [_record(sample_row)]
            else:
                result.__iter__.return_value = []
            result.single.return_value = {"available": 0, "claimed": 1}
            return result

        tx.run.side_effect = run

        data = graph.analytics()

        assert "i.isAvailable AS isAvailable" in GRAPH_SAMPLE
        assert data["graphSample"] == [sample_row]
        assert data["availability"] == {"available": 0, "claimed": 1}
