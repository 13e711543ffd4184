from __future__ import annotations

import os


DB_PATH = os.getenv("DB_PATH", "data/neurocore.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", os.getenv("NEUROCORE_LOG_LEVEL", "INFO")).upper()
DEFAULT_PLAN = os.getenv("NEUROCORE_DEFAULT_PLAN", "expert").lower()
DEFAULT_USER_ID = os.getenv("NEUROCORE_USER_ID", "me")

# ── Store writes (session recording, combo hashes, snapshots) ────
STORE_RETRY_ATTEMPTS = int(os.getenv("NEUROCORE_STORE_RETRY_ATTEMPTS", "3"))
STORE_RETRY_BACKOFF_SECONDS = float(os.getenv("NEUROCORE_STORE_RETRY_BACKOFF", "0.5"))

# ── Scheduler ────────────────────────────────────────────────────
SNAPSHOT_INTERVAL_HOURS = int(os.getenv("NEUROCORE_SNAPSHOT_INTERVAL_HOURS", "24"))
