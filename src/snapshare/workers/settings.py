"""Entry point for the maintenance worker.

    arq snapshare.workers.settings.WorkerSettings
"""

from __future__ import annotations

from snapshare.workers.maintenance import WorkerSettings

__all__ = ["WorkerSettings"]
