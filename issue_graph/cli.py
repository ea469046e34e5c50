"""
Command-line entry point.

Usage:
  issue-graph init-schema
  issue-graph ingest issues.json --sample 30
  issue-graph ask acme/widgets "find me a beginner issue"
  issue-graph issue 42 --repo acme/widgets
  issue-graph analytics
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from .config import AppConfig
from .errors import IssueGraphError, QueryExecutionError
from .ingest import load_issues
from .service import build_ingestion, build_recommender, build_store


def _print(obj):
    print(json.dumps(obj, indent=2, default=str))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="issue-graph", description="Issue/file graph recommender")
    parser.add_argument("--backend", choices=["neo4j", "memory"], default=None, help="Graph backend (default: GRAPH_BACKEND)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-schema", help="Create graph uniqueness constraints")

    p_ingest = sub.add_parser("ingest", help="Classify and merge issues from a JSON file")
    p_ingest.add_argument("file", help="JSON list of canonical issue records")
    p_ingest.add_argument("--sample", type=int, default=None, help="Process at most N issues (default: INGEST_SAMPLE_SIZE)")

    p_ask = sub.add_parser("ask", help="Recommend issues for a free-text question")
    p_ask.add_argument("repo", help="Repository, e.g. owner/name")
    p_ask.add_argument("query", help="Question, e.g. 'show me frontend bugs'")

    p_issue = sub.add_parser("issue", help="Show one issue with its file, labels and related issues")
    p_issue.add_argument("issue_id", type=int)
    p_issue.add_argument("--repo", default=None)

    sub.add_parser("analytics", help="Label/file/availability aggregates")
    return parser


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, stream=sys.stderr)

    cfg = AppConfig()
    if args.backend is not None:
        cfg.graph_backend = args.backend

    store = build_store(cfg)
    try:
        if args.command == "init-schema":
            store.init_schema()
            return 0

        if args.command == "ingest":
            issues = load_issues(args.file)
            report = build_ingestion(cfg, store=store).ingest_batch(issues, args.sample)
            _print(report.model_dump())
            return 1 if report.failed else 0

        recommender = build_recommender(cfg, store=store)
        if args.command == "ask":
            _print(recommender.answer(args.repo, args.query).model_dump(mode="json"))
        elif args.command == "issue":
            view = recommender.issue_graph(args.issue_id, args.repo)
            if view is None:
                print(f"error: issue #{args.issue_id} not found", file=sys.stderr)
                return 1
            _print(view.model_dump())
        elif args.command == "analytics":
            _print(recommender.analytics().model_dump())
        return 0
    except QueryExecutionError as e:
        print(f"error: {e.message}: {e.detail}", file=sys.stderr)
        return 1
    except (IssueGraphError, OSError, json.JSONDecodeError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
