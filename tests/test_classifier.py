"""Tests for file-path classification and answer sanitizing."""
import pytest

from issue_graph.classifier import FilePathClassifier, clean_file_path
from issue_graph.errors import LLMError
from issue_graph.models import UNCLASSIFIED

from tests.helpers import FakeLLM, make_issue


class TestCleanFilePath:
    @pytest.mark.parametrize(
        "raw",
        [
            "unknown",
            "has space.py",
            "a/" + "b" * 85 + ".py",
            "module.js",
            "",
        ],
    )
    def test_rejected_answers(self, raw):
        assert clean_file_path(raw) is None

    def test_plain_path_accepted_verbatim(self):
        assert clean_file_path("pkg/sub/mod.py") == "pkg/sub/mod.py"

    def test_only_first_line_is_used(self):
        assert clean_file_path("pkg/cache/redis.py\nBecause the issue mentions Redis.") == "pkg/cache/redis.py"

    def test_quotes_and_quote_markers_are_stripped(self):
        assert clean_file_path('> "pkg/cache/redis.py" ') == "pkg/cache/redis.py"
        assert clean_file_path("'pkg/a.py'") == "pkg/a.py"

    def test_trailing_code_fence_is_dropped(self):
        assert clean_file_path("pkg/a.py```") == "pkg/a.py"

    def test_quoted_unknown_is_rejected(self):
        assert clean_file_path('"unknown"') is None

    def test_exactly_80_characters_is_allowed(self):
        path = "p/" + "x" * 75 + ".py"
        assert len(path) == 80
        assert clean_file_path(path) == path

    def test_custom_extension(self):
        assert clean_file_path("src/app.ts", extension=".ts") == "src/app.ts"
        assert clean_file_path("src/app.py", extension=".ts") is None


class TestFilePathClassifier:
    def test_returns_cleaned_path(self):
        llm = FakeLLM('"langchain/cache/redis.py"')
        classifier = FilePathClassifier(llm)

        assert classifier.classify(make_issue(title="Redis cache TTL bug")) == "langchain/cache/redis.py"

    def test_prompt_carries_issue_text_and_repo(self):
        llm = FakeLLM("unknown")
        issue = make_issue(title="Docs typo", body="README has a typo", repo="acme/widgets")

        FilePathClassifier(llm).classify(issue)

        prompt = llm.prompts[0]
        assert "Title: Docs typo" in prompt
        assert "Body: README has a typo" in prompt
        assert "acme/widgets" in prompt

    def test_unknown_answer_is_unclassified(self):
        assert FilePathClassifier(FakeLLM("unknown")).classify(make_issue()) == UNCLASSIFIED

    def test_endpoint_failure_is_unclassified(self):
        llm = FakeLLM(LLMError("connection refused"))
        assert FilePathClassifier(llm).classify(make_issue()) == UNCLASSIFIED
