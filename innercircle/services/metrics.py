from __future__ import annotations

import os

from prometheus_client import REGISTRY, CollectorRegistry, multiprocess

PROMETHEUS_MULTIPROC_DIR = (os.environ.get("PROMETHEUS_MULTIPROC_DIR") or "").strip()


def _get_metrics_registry() -> CollectorRegistry:
    """Aggregate per-worker samples when running under a multi-process server."""
    if PROMETHEUS_MULTIPROC_DIR:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return registry
    return REGISTRY
