from __future__ import annotations

import logging

from config import DB_PATH as _DEFAULT_DB_PATH
from neurocore.engine import CognitiveEngine
from neurocore.storage.store import NeuroStore

logger = logging.getLogger(__name__)


def build_engine(db_path: str | None = None, *, plan_id: str | None = None) -> CognitiveEngine:
    resolved = db_path or _DEFAULT_DB_PATH
    store = NeuroStore(db_path=resolved)
    if plan_id:
        engine = CognitiveEngine(store, default_plan=plan_id)
    else:
        engine = CognitiveEngine(store)
    logger.debug("Engine built on %s (default plan=%s)", resolved, engine.default_plan)
    return engine
