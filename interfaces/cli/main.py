from __future__ import annotations

import asyncio
import json
import logging
import random
from uuid import uuid4

from dotenv import load_dotenv

load_dotenv()

from config import DEFAULT_USER_ID, LOG_LEVEL  # noqa: E402
from interfaces.engine_factory import build_engine  # noqa: E402
from neurocore.antirepetition.engine import ComboParams  # noqa: E402
from neurocore.engine import CognitiveEngine  # noqa: E402
from neurocore.gating.eligibility import GAME_TYPES  # noqa: E402
from neurocore.models import system_of  # noqa: E402

logger = logging.getLogger(__name__)

HELP = (
    "commands: dashboard | games | content | difficulty | "
    "play <S1-AE|S1-RA|S2-CT|S2-IN> <score> <xp> | detox <minutes> | snapshot | exit"
)

_STIMULUS_POOL = [f"stim-{i:02d}" for i in range(16)]
_TEMPO_MS = (600, 800, 1000, 1200)


def _print(data: dict) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _session_generator(game_type: str, difficulty: str, rng: random.Random):
    def generate(attempt: int) -> dict:
        return {
            "game_type": game_type,
            "difficulty": difficulty,
            "stimulus_ids": rng.sample(_STIMULUS_POOL, 4),
            "distractors": rng.sample(_STIMULUS_POOL, 2),
            "tempo_ms": rng.choice(_TEMPO_MS),
            "attempt": attempt,
        }

    return generate


def _session_params(session: dict) -> ComboParams:
    return ComboParams(
        stimulus_ids=session["stimulus_ids"],
        difficulty=session["difficulty"],
        distractor_set=session["distractors"],
        temporal_params={"tempo_ms": session["tempo_ms"]},
    )


async def _play(engine: CognitiveEngine, user_id: str, args: list[str]) -> None:
    if len(args) != 3 or args[0] not in GAME_TYPES:
        print(HELP)
        return
    game_type = args[0]
    try:
        score, xp = float(args[1]), float(args[2])
    except ValueError:
        print("score and xp must be numbers")
        return

    decisions = await engine.evaluate_games(user_id)
    decision = decisions[game_type]
    if not decision.enabled:
        _print(decision.to_dict())
        return

    advice = await engine.advise_difficulty(user_id)
    generated = await engine.anti_repetition.generate_session(
        user_id,
        game_type,
        system_of(game_type),
        _session_generator(game_type, advice.recommended, random.Random()),
        _session_params,
    )
    decision, result = await engine.play_game(
        user_id,
        game_type,
        score,
        xp,
        exercise_id=str(uuid4()),
        difficulty=advice.recommended,
    )
    _print(
        {
            "decision": decision.to_dict(),
            "session": generated.to_dict(),
            "record": result.to_dict() if result else None,
        }
    )


async def run_cli() -> None:
    engine = build_engine()
    user_id = DEFAULT_USER_ID
    await engine.ensure_user(user_id)
    print(f"NeuroCore CLI. {HELP}")

    try:
        while True:
            text = input("> ").strip()
            if text.lower() in {"exit", "quit", "q"}:
                print("Bye.")
                break
            if not text:
                continue

            command, *args = text.split()
            command = command.lower()
            if command == "dashboard":
                _print((await engine.dashboard(user_id)).to_dict())
            elif command == "games":
                decisions = await engine.evaluate_games(user_id)
                _print({k: v.to_dict() for k, v in decisions.items()})
            elif command == "content":
                _print((await engine.evaluate_content(user_id)).to_dict())
            elif command == "difficulty":
                _print((await engine.advise_difficulty(user_id)).to_dict())
            elif command == "play":
                await _play(engine, user_id, args)
            elif command == "detox" and len(args) == 1:
                try:
                    minutes = float(args[0])
                except ValueError:
                    print("minutes must be a number")
                    continue
                result = await engine.recorder.record_recovery_session(user_id, minutes, kind="detox")
                _print(result.to_dict())
            elif command == "snapshot":
                _print((await engine.persist_snapshot(user_id)).to_dict())
            else:
                print(HELP)
    finally:
        await engine.store.close()


def main() -> None:
    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
    asyncio.run(run_cli())


if __name__ == "__main__":
    main()
