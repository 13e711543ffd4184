"""Closed reason-code sets for gating decisions and their UI copy.

Gating logic only ever emits the codes below; turning a code into a
sentence happens here, so decisions and wording can be tested separately.
"""

from __future__ import annotations

from typing import Literal, get_args

GameReasonCode = Literal[
    "recovery-too-low",
    "sharpness-too-low",
    "sharpness-too-high",
    "readiness-too-low",
    "readiness-out-of-range",
    "cap-reached-daily-S1",
    "cap-reached-daily-S2",
    "cap-reached-weekly-S2",
    "cap-reached-weekly-insight",
    "superhuman-recovery-required",
]

ContentReasonCode = Literal[
    "recovery-support",
    "recovery-mode-light-only",
    "low-bandwidth-mode",
    "below-recovery-for-demand",
    "below-capacity-for-demand",
    "below-sharpness-for-demand",
    "daily-reading-limit",
    "weekly-book-limit",
]

DifficultyLockReason = Literal[
    "REC_TOO_LOW",
    "LOAD_TOO_HIGH",
    "READINESS_TOO_LOW",
    "REC_VERY_LOW",
    "LOAD_EXCEEDS_TC",
]

GAME_REASON_CODES: tuple[str, ...] = get_args(GameReasonCode)
CONTENT_REASON_CODES: tuple[str, ...] = get_args(ContentReasonCode)
DIFFICULTY_LOCK_REASONS: tuple[str, ...] = get_args(DifficultyLockReason)

_GAME_TEXT: dict[str, str] = {
    "recovery-too-low": "Recovery is {current} but this game needs {required}.",
    "sharpness-too-low": "Sharpness is {current} but this game needs {required}.",
    "sharpness-too-high": "Sharpness is already {current}; fast focus work is not needed above {required}.",
    "readiness-too-low": "Readiness is {current} but this game needs {required}.",
    "readiness-out-of-range": "Readiness {current} is above {required}; use Critical Thinking instead.",
    "cap-reached-daily-S1": "Daily fast-game limit reached ({current}/{required}).",
    "cap-reached-daily-S2": "Daily slow-game limit reached ({current}/{required}).",
    "cap-reached-weekly-S2": "Weekly slow-game limit reached ({current}/{required}).",
    "cap-reached-weekly-insight": "Weekly Insight limit reached ({current}/{required}).",
    "superhuman-recovery-required": "Your plan requires recovery {required} before slow games (now {current}).",
}

_CONTENT_TEXT: dict[str, str] = {
    "recovery-support": "Suggested: light content supports recovery without adding load.",
    "recovery-mode-light-only": "Available but not suggested during recovery. Light content preferred today.",
    "low-bandwidth-mode": "Available but cognitive bandwidth limited for high-demand content today.",
    "below-recovery-for-demand": "Available but recovery is below optimal for {demand} content.",
    "below-capacity-for-demand": "Available but deep work capacity limited for {demand} content.",
    "below-sharpness-for-demand": "Available but sharpness below optimal for {demand} content.",
    "daily-reading-limit": "Available, but today's reading is already done.",
    "weekly-book-limit": "Available, but this week's book sessions are complete.",
}

_DIFFICULTY_TEXT: dict[str, str] = {
    "REC_TOO_LOW": "Recovery too low for Hard.",
    "LOAD_TOO_HIGH": "Weekly load above the optimal window.",
    "READINESS_TOO_LOW": "Readiness too low for Hard.",
    "REC_VERY_LOW": "Recovery very low; only Easy is safe.",
    "LOAD_EXCEEDS_TC": "Weekly load exceeds training capacity.",
}

_DETOX_OR_WALK = ("Complete a detox session", "Take a walk")
_DETOX_OR_NO_SCREENS = ("Detox session", "No-screens break")
_FAST_GAME_FIRST = ("S1-AE session first", "Focus block")
_DELAY_OR_REST = ("Delay by 2-4 hours", "Short rest")

# keyed by (game type, reason); codes missing here offer no action
UNLOCK_ACTIONS: dict[tuple[str, str], tuple[str, ...]] = {
    ("S1-AE", "recovery-too-low"): _DETOX_OR_WALK,
    ("S1-RA", "recovery-too-low"): _DETOX_OR_WALK,
    ("S1-RA", "readiness-too-low"): _DELAY_OR_REST,
    ("S2-CT", "sharpness-too-low"): _FAST_GAME_FIRST,
    ("S2-CT", "readiness-too-low"): _DELAY_OR_REST,
    ("S2-CT", "recovery-too-low"): _DETOX_OR_NO_SCREENS,
    ("S2-CT", "superhuman-recovery-required"): _DETOX_OR_NO_SCREENS,
    ("S2-IN", "sharpness-too-low"): _FAST_GAME_FIRST,
    ("S2-IN", "recovery-too-low"): _DETOX_OR_NO_SCREENS,
    ("S2-IN", "readiness-too-low"): ("Short rest", "Low-demand activity first"),
    ("S2-IN", "superhuman-recovery-required"): _DETOX_OR_NO_SCREENS,
}


def unlock_actions(game_type: str, code: str) -> tuple[str, ...]:
    return UNLOCK_ACTIONS.get((game_type, code), ())


def _fmt(value: object) -> object:
    if isinstance(value, float):
        return f"{value:g}"
    return value


def describe_game_reason(code: str, current: float | int | None = None, required: float | int | None = None) -> str:
    return _GAME_TEXT[code].format(current=_fmt(current), required=_fmt(required))


def describe_content_reason(code: str, demand: str = "") -> str:
    return _CONTENT_TEXT[code].format(demand=demand.lower().replace("_", " "))


def describe_lock(reason: str) -> str:
    return _DIFFICULTY_TEXT[reason]
