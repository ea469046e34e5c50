"""
File-path classification: asks the local model which source file an issue is
about and sanitizes the free-text answer into a path or ``UNCLASSIFIED``.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .config import IngestConfig, OllamaConfig
from .errors import LLMError
from .models import UNCLASSIFIED, IssueRecord

logger = logging.getLogger(__name__)

UNKNOWN_TOKEN = "unknown"

_EDGE_CHARS = re.compile(r"^[>\"'\s]+|[>\"'\s]+$")
_TRAILING_FENCE = re.compile(r"```.*$")


def clean_file_path(raw: str, extension: str = ".py", max_length: int = 80) -> Optional[str]:
    """Reduce a model answer to a relative path, or None if it is not one.

    Only the first line is considered. Quote marks, ``>`` and whitespace are
    trimmed from both ends and a trailing code fence is dropped before
    validation.
    """
    lines = (raw or "").strip().split("\n")
    candidate = _EDGE_CHARS.sub("", lines[0])
    candidate = _TRAILING_FENCE.sub("", candidate)

    if (
        candidate == UNKNOWN_TOKEN
        or " " in candidate
        or len(candidate) > max_length
        or not candidate.endswith(extension)
    ):
        return None
    return candidate


class FilePathClassifier:
    def __init__(self, llm, ingest_config: Optional[IngestConfig] = None, ollama_config: Optional[OllamaConfig] = None):
        self.llm = llm
        self.config = ingest_config or IngestConfig()
        self.temperature = (ollama_config or OllamaConfig()).classifier_temperature

    def build_prompt(self, issue: IssueRecord) -> str:
        ext = self.config.extension
        return (
            f"You are an expert developer working on the {issue.repo} repository. "
            "Analyze this GitHub issue and respond ONLY with the most relevant source code file path "
            f"in that repository. Use Unix-style relative paths ending with {ext}. "
            f'If no file is clearly mentioned, respond "{UNKNOWN_TOKEN}".\n\n'
            "Examples:\n"
            f'- Input: "Redis cache TTL bug" → Output: src/cache/redis{ext}\n'
            f'- Input: "Docs typo" → Output: {UNKNOWN_TOKEN}\n\n'
            "Now analyze:\n\n"
            f"Title: {issue.title}\n"
            f"Body: {issue.body or ''}\n\n"
            "Output:"
        )

    def classify(self, issue: IssueRecord) -> str:
        """Return the file path this issue relates to, or UNCLASSIFIED."""
        try:
            raw = self.llm.complete(self.build_prompt(issue), temperature=self.temperature)
        except LLMError as e:
            logger.error("Failed to classify issue #%s: %s", issue.id, e)
            return UNCLASSIFIED

        path = clean_file_path(raw, self.config.extension, self.config.max_path_length)
        if path is None:
            logger.debug("Issue #%s: no usable path in %r", issue.id, raw[:120])
            return UNCLASSIFIED

        logger.info("Issue #%s: %s", issue.id, path)
        return path
