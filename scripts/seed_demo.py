"""Seed a demo user with synthetic training history.

Usage::

    python scripts/seed_demo.py --days 30 --user demo --plan expert
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import random
import sys
from datetime import datetime, timedelta, timezone

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv

load_dotenv()

from config import LOG_LEVEL  # noqa: E402
from interfaces.engine_factory import build_engine  # noqa: E402
from neurocore.engine import CognitiveEngine  # noqa: E402

logger = logging.getLogger(__name__)

_GAMES = ("S1-AE", "S1-RA", "S2-CT", "S2-IN")
_CONTENT = ("podcast", "article", "book")


async def seed_day(engine: CognitiveEngine, user_id: str, day: datetime, rng: random.Random, dip: bool) -> None:
    base = 45.0 if dip else 65.0
    for hour, game_type in zip((8, 12, 17), rng.sample(_GAMES, 3)):
        score = max(0.0, min(100.0, rng.gauss(base, 8)))
        await engine.recorder.record_game_session(
            user_id,
            game_type,
            score,
            xp=rng.choice((10, 15, 20)),
            duration_minutes=rng.choice((5, 8, 12)),
            exercise_id=f"{game_type}-{day.date().isoformat()}-{hour}",
            difficulty=rng.choice(("easy", "medium", "hard")),
            now=day.replace(hour=hour),
        )
    if rng.random() < 0.7:
        await engine.recorder.record_recovery_session(
            user_id, rng.choice((20, 30, 45)), kind=rng.choice(("detox", "walk")), now=day.replace(hour=20)
        )
    if rng.random() < 0.4:
        await engine.recorder.record_content_completion(
            user_id, rng.choice(_CONTENT), duration_minutes=25, now=day.replace(hour=21)
        )


async def run(args: argparse.Namespace) -> None:
    engine = build_engine(args.db)
    rng = random.Random(args.seed)
    try:
        await engine.ensure_user(args.user, plan_id=args.plan, chrono_age=args.age)
        today = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
        for offset in range(args.days, 0, -1):
            day = today - timedelta(days=offset)
            # a two-week dip in the middle of the history
            dip = args.days // 3 <= offset < args.days // 3 + 14
            await seed_day(engine, args.user, day, rng, dip)
            await engine.persist_snapshot(args.user, now=day.replace(hour=23))
        board = await engine.dashboard(args.user)
        logger.info(
            "Seeded %d days for %s: network=%.1f rq=%.1f cognitive_age=%.1f",
            args.days,
            args.user,
            board.network_index,
            board.rq.value,
            board.cognitive_age.age,
        )
    finally:
        await engine.store.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed synthetic training history")
    parser.add_argument("--db", default=None, help="SQLite path (defaults to DB_PATH)")
    parser.add_argument("--user", default="demo")
    parser.add_argument("--plan", default="expert", choices=("light", "expert", "superhuman"))
    parser.add_argument("--days", type=int, default=30)
    parser.add_argument("--age", type=float, default=32.0)
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args()
    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
