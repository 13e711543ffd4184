from __future__ import annotations

from neurocore.scheduler.snapshot_scheduler import SnapshotScheduler

__all__ = ["SnapshotScheduler"]
