from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("AGLA_ALLOW_ANONYMOUS", "true")
os.environ.pop("AGLA_API_KEYS", None)
os.environ.pop("AGLA_CORPUS_PATH", None)
os.environ.pop("AGLA_GRAPH_PATH", None)
os.environ.setdefault("AGLA_SIMILARITY_BACKEND", "overlap")
os.environ.setdefault("AGLA_METRICS_ENABLED", "true")
