"""
Runtime configuration.

Every value can be set through the environment or a ``.env`` file next to the
project root:

- NEO4J_URI, NEO4J_USER, NEO4J_PASSWORD (or NEO4J_PASS), NEO4J_DATABASE
- NEO4J_TIMEOUT (seconds, connection + transaction)
- OLLAMA_BASE_URL, OLLAMA_MODEL, OLLAMA_TIMEOUT
- CLASSIFIER_TEMPERATURE, INTENT_TEMPERATURE
- CLASSIFIER_EXTENSION (default: .py)
- INGEST_SAMPLE_SIZE (default: 30)
- GRAPH_BACKEND (neo4j | memory)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

# Load .env file if it exists
from dotenv import load_dotenv

_env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env")
if os.path.exists(_env_path):
    load_dotenv(_env_path)


@dataclass
class Neo4jConfig:
    uri: str = os.getenv("NEO4J_URI", "bolt://localhost:7687")
    user: str = os.getenv("NEO4J_USER", "neo4j")
    password: str = os.getenv("NEO4J_PASSWORD", os.getenv("NEO4J_PASS", "admin123"))
    database: Optional[str] = os.getenv("NEO4J_DATABASE") or None
    timeout: float = float(os.getenv("NEO4J_TIMEOUT", "30"))


@dataclass
class OllamaConfig:
    base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    model: str = os.getenv("OLLAMA_MODEL", "qwen2:7b")
    timeout: float = float(os.getenv("OLLAMA_TIMEOUT", "120"))

    # Sampling temperature per task
    classifier_temperature: float = float(os.getenv("CLASSIFIER_TEMPERATURE", "0.7"))
    intent_temperature: float = float(os.getenv("INTENT_TEMPERATURE", "0.3"))


@dataclass
class IngestConfig:
    extension: str = os.getenv("CLASSIFIER_EXTENSION", ".py")
    max_path_length: int = 80
    sample_size: int = int(os.getenv("INGEST_SAMPLE_SIZE", "30"))


@dataclass
class AppConfig:
    neo4j: Neo4jConfig = field(default_factory=Neo4jConfig)
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    graph_backend: str = os.getenv("GRAPH_BACKEND", "neo4j").lower()
