"""arq worker settings module.

Import path for arq CLI: arq discipline.workers.settings.WorkerSettings
"""

from __future__ import annotations

from discipline.workers.decay_worker import DisciplineWorkerSettings as WorkerSettings

__all__ = ["WorkerSettings"]
