from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    embedding_dimension: int = int(os.getenv("EMBEDDING_DIMENSION", "256"))
    fusion_k: int = int(os.getenv("AGLA_FUSION_K", "60"))
    bm25_k1: float = float(os.getenv("AGLA_BM25_K1", "1.2"))
    bm25_b: float = float(os.getenv("AGLA_BM25_B", "0.75"))
    bm25_avgdl: float = float(os.getenv("AGLA_BM25_AVGDL", "100"))
    graph_depth: int = int(os.getenv("AGLA_GRAPH_DEPTH", "2"))
    cache_ttl_seconds: float = float(os.getenv("AGLA_CACHE_TTL_SECONDS", "3600"))
    cache_max_entries: int = int(os.getenv("AGLA_CACHE_MAX_ENTRIES", "1024"))
    grader_max_retries: int = int(os.getenv("AGLA_GRADER_MAX_RETRIES", "2"))
    metrics_enabled: bool = _env_flag("AGLA_METRICS_ENABLED", "true")
    log_level: str = os.getenv("AGLA_LOG_LEVEL", "INFO")
    corpus_path_raw: str = os.getenv("AGLA_CORPUS_PATH", "")
    graph_path_raw: str = os.getenv("AGLA_GRAPH_PATH", "")
    similarity_backend_raw: str = os.getenv("AGLA_SIMILARITY_BACKEND", "overlap")
    api_keys_raw: str = os.getenv("AGLA_API_KEYS", "")
    allow_anonymous_raw: str = os.getenv("AGLA_ALLOW_ANONYMOUS", "true")

    @property
    def corpus_path(self) -> Path | None:
        raw = os.getenv("AGLA_CORPUS_PATH", self.corpus_path_raw).strip()
        return Path(raw) if raw else None

    @property
    def graph_path(self) -> Path | None:
        raw = os.getenv("AGLA_GRAPH_PATH", self.graph_path_raw).strip()
        return Path(raw) if raw else None

    @property
    def similarity_backend(self) -> str:
        return os.getenv("AGLA_SIMILARITY_BACKEND", self.similarity_backend_raw).strip().lower()

    @property
    def api_keys(self) -> set[str]:
        raw = os.getenv("AGLA_API_KEYS", self.api_keys_raw)
        return {value.strip() for value in raw.split(",") if value.strip()}

    @property
    def allow_anonymous(self) -> bool:
        raw = os.getenv("AGLA_ALLOW_ANONYMOUS", self.allow_anonymous_raw)
        return raw.lower() in {"1", "true", "yes"}


settings = Settings()
