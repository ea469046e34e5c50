"""
Completion client for a locally hosted Ollama server.

Only the single-shot ``/api/generate`` endpoint is used; streaming is off so
the whole answer arrives in one JSON body.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from .config import OllamaConfig
from .errors import LLMError

logger = logging.getLogger(__name__)


class OllamaClient:
    def __init__(self, config: Optional[OllamaConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or OllamaConfig()
        self._http = session or requests.Session()

    def complete(self, prompt: str, temperature: Optional[float] = None, model: Optional[str] = None) -> str:
        """Return the raw completion text for ``prompt``.

        Raises LLMError on transport failures, timeouts, non-2xx answers and
        bodies without a ``response`` string.
        """
        base = self.config.base_url.rstrip("/")
        payload = {
            "model": model or self.config.model,
            "prompt": prompt,
            "stream": False,
        }
        if temperature is not None:
            payload["options"] = {"temperature": temperature}

        try:
            resp = self._http.post(f"{base}/api/generate", json=payload, timeout=self.config.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            logger.error("Ollama call failed: %s", e)
            raise LLMError(f"Ollama request failed: {e}") from e
        except ValueError as e:
            raise LLMError(f"Ollama returned a non-JSON body: {e}") from e

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise LLMError("Ollama response is missing the 'response' field")
        return text.strip()

    def close(self):
        self._http.close()
