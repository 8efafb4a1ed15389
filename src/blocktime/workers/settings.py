"""arq worker settings module.

Import path for arq CLI: arq blocktime.workers.settings.WorkerSettings
"""

from __future__ import annotations

from blocktime.workers.notify_worker import WorkerSettings

__all__ = ["WorkerSettings"]
