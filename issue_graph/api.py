"""
HTTP surface for the issue recommender.

Routes map one-to-one onto ``IssueRecommender`` operations; no business logic
lives here.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from . import __version__
from .config import AppConfig
from .errors import QueryExecutionError
from .models import AnalyticsView, IssueGraphView, QueryAnswer
from .service import IssueRecommender, build_recommender

logger = logging.getLogger(__name__)


class QueryRequest(BaseModel):
    repo: str = Field(..., min_length=1)
    query: str = Field(..., min_length=1)


def _storage_error(e: QueryExecutionError) -> HTTPException:
    return HTTPException(status_code=500, detail={"error": e.message, "detail": e.detail})


def create_app(recommender: Optional[IssueRecommender] = None, config: Optional[AppConfig] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.recommender is None:
            app.state.recommender = build_recommender(config)
        yield
        app.state.recommender.store.close()

    app = FastAPI(
        title="Issue Graph",
        description="Natural-language issue recommendations over an issue/file graph",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.recommender = recommender

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_recommender(request: Request) -> IssueRecommender:
        return request.app.state.recommender

    @app.get("/")
    def read_root():
        return {"message": "Issue Graph", "version": __version__}

    @app.get("/health")
    def health_check(request: Request):
        store = get_recommender(request).store
        return {"status": "healthy", "graph_connected": store.verify_connectivity()}

    @app.get("/api/repos")
    def list_repos(request: Request):
        try:
            return {"repos": get_recommender(request).repositories()}
        except QueryExecutionError as e:
            raise _storage_error(e)

    @app.get("/api/issues")
    def list_issues(request: Request, repo: Optional[str] = Query(None, description="Repository, e.g. owner/name")):
        try:
            issues = get_recommender(request).issues(repo)
        except QueryExecutionError as e:
            raise _storage_error(e)
        return {"issues": [i.model_dump() for i in issues], "count": len(issues)}

    @app.post("/api/query", response_model=QueryAnswer)
    def query_issues(req: QueryRequest, request: Request):
        """Recommend issues for a free-text question."""
        try:
            return get_recommender(request).answer(req.repo, req.query)
        except QueryExecutionError as e:
            logger.error("/api/query failed: %s", e.detail)
            raise _storage_error(e)

    @app.get("/api/issues/{issue_id}/graph", response_model=IssueGraphView)
    def issue_graph(request: Request, issue_id: int, repo: Optional[str] = Query(None)):
        try:
            view = get_recommender(request).issue_graph(issue_id, repo)
        except QueryExecutionError as e:
            raise _storage_error(e)
        if view is None:
            raise HTTPException(status_code=404, detail=f"Issue #{issue_id} not found")
        return view

    @app.get("/api/analytics", response_model=AnalyticsView)
    def analytics(request: Request):
        try:
            return get_recommender(request).analytics()
        except QueryExecutionError as e:
            raise _storage_error(e)

    return app


def main():
    import os

    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.getenv("PORT", "3001")))


if __name__ == "__main__":
    main()
