from neurocore.gating.catalog import DEFAULT_CATALOG
from neurocore.gating.eligibility import (
    ContentCounts,
    GameCaps,
    GatingMetrics,
    evaluate_content,
    evaluate_game,
    evaluate_games,
    game_type_from_area,
    global_mode,
)
from neurocore.gating.reasons import (
    CONTENT_REASON_CODES,
    GAME_REASON_CODES,
    describe_content_reason,
    describe_game_reason,
)
from neurocore.plans import get_plan

GOOD = GatingMetrics(recovery=70.0, sharpness=70.0, readiness=65.0)
EXPERT = get_plan("expert")


def test_global_modes():
    assert global_mode(GatingMetrics(40.0, 90.0, 90.0)) == "RECOVERY_MODE"
    assert global_mode(GatingMetrics(60.0, 50.0, 50.0)) == "LOW_BANDWIDTH_MODE"
    assert global_mode(GOOD) == "FULL_CAPACITY_MODE"
    assert GOOD.s2_capacity == 68.0


def test_all_games_enabled_with_good_metrics():
    decisions = evaluate_games(GOOD, GameCaps(), EXPERT)
    assert {k: d.status for k, d in decisions.items()} == {
        "S1-AE": "enabled",
        "S1-RA": "enabled",
        "S2-CT": "enabled",
        "S2-IN": "enabled",
    }
    assert all(d.reason_code is None for d in decisions.values())


def test_fourth_s1_session_is_protected():
    caps = GameCaps(s1_daily_used=3)
    for game_type in ("S1-AE", "S1-RA"):
        decision = evaluate_game(game_type, GOOD, caps, EXPERT)
        assert decision.status == "protection"
        assert decision.reason_code == "cap-reached-daily-S1"
    assert evaluate_game("S2-CT", GOOD, caps, EXPERT).enabled


def test_caps_win_over_metric_failures():
    tired = GatingMetrics(recovery=20.0, sharpness=30.0, readiness=30.0)
    decision = evaluate_game("S2-CT", tired, GameCaps(s2_daily_used=1), EXPERT)
    assert decision.reason_code == "cap-reached-daily-S2"
    assert decision.status == "protection"
    assert [c.metric for c in decision.failed_checks] == ["Sharpness", "Readiness", "Recovery"]


def test_weekly_caps_use_plan_limits():
    light = get_plan("light")
    weekly = evaluate_game("S2-CT", GOOD, GameCaps(s2_weekly_used=light.s2_max_per_week), light)
    assert weekly.reason_code == "cap-reached-weekly-S2"
    insight = evaluate_game("S2-IN", GOOD, GameCaps(insight_weekly_used=light.insight_max_per_week), light)
    assert insight.reason_code == "cap-reached-weekly-insight"
    assert evaluate_game("S2-CT", GOOD, GameCaps(insight_weekly_used=9), light).enabled


def test_superhuman_requires_recovery_before_s2():
    plan = get_plan("superhuman")
    metrics = GatingMetrics(recovery=52.0, sharpness=90.0, readiness=65.0)
    decision = evaluate_game("S2-CT", metrics, GameCaps(), plan)
    assert decision.status == "protection"
    assert decision.reason_code == "superhuman-recovery-required"
    assert decision.details.required == 55.0
    assert "Detox session" in decision.unlock_actions
    assert evaluate_game("S1-RA", metrics, GameCaps(), plan).enabled


def test_first_failing_threshold_supplies_reason():
    decision = evaluate_game("S1-AE", GatingMetrics(40.0, 80.0, 60.0), GameCaps(), EXPERT)
    assert decision.status == "withheld"
    assert decision.reason_code == "recovery-too-low"
    assert decision.details.current == 40.0
    assert decision.details.required == 45.0
    assert len(decision.failed_checks) == 2
    assert "Complete a detox session" in decision.unlock_actions
    assert decision.reason == "Recovery is 40 but this game needs 45."


def test_insight_readiness_window():
    high = evaluate_game("S2-IN", GatingMetrics(70.0, 70.0, 75.0), GameCaps(), EXPERT)
    assert high.reason_code == "readiness-out-of-range"
    low = evaluate_game("S2-IN", GatingMetrics(70.0, 70.0, 45.0), GameCaps(), EXPERT)
    assert low.reason_code == "readiness-too-low"


def test_unlock_actions_depend_on_the_game():
    insight = evaluate_game("S2-IN", GatingMetrics(70.0, 70.0, 45.0), GameCaps(), EXPERT)
    assert insight.reason_code == "readiness-too-low"
    assert insight.unlock_actions == ["Short rest", "Low-demand activity first"]

    fast = evaluate_game("S1-RA", GatingMetrics(70.0, 70.0, 40.0), GameCaps(), EXPERT)
    assert fast.reason_code == "readiness-too-low"
    assert fast.unlock_actions == ["Delay by 2-4 hours", "Short rest"]

    slow = evaluate_game("S2-CT", GatingMetrics(45.0, 70.0, 65.0), GameCaps(), EXPERT)
    assert slow.reason_code == "recovery-too-low"
    assert slow.unlock_actions == ["Detox session", "No-screens break"]

    sharp = evaluate_game("S1-AE", GatingMetrics(70.0, 90.0, 60.0), GameCaps(), EXPERT)
    assert sharp.reason_code == "sharpness-too-high"
    assert sharp.unlock_actions == []


def test_plan_modifier_shifts_s2_thresholds():
    metrics = GatingMetrics(recovery=70.0, sharpness=66.0, readiness=62.0)
    assert evaluate_game("S2-CT", metrics, GameCaps(), EXPERT).enabled
    light = evaluate_game("S2-CT", metrics, GameCaps(), get_plan("light"))
    assert light.reason_code == "sharpness-too-low"
    assert light.details.required == 68.0


def test_game_gating_is_deterministic():
    metrics = GatingMetrics(recovery=48.0, sharpness=61.0, readiness=52.0)
    caps = GameCaps(s1_daily_used=1, s2_weekly_used=2)
    first = {k: d.to_dict() for k, d in evaluate_games(metrics, caps, EXPERT).items()}
    second = {k: d.to_dict() for k, d in evaluate_games(metrics, caps, EXPERT).items()}
    assert first == second


def test_every_withheld_decision_has_a_reason():
    for recovery in range(0, 101, 10):
        for sharpness in range(0, 101, 10):
            for readiness in range(0, 101, 10):
                metrics = GatingMetrics(float(recovery), float(sharpness), float(readiness))
                for decision in evaluate_games(metrics, GameCaps(), EXPERT).values():
                    if not decision.enabled:
                        assert decision.reason_code in GAME_REASON_CODES
                        assert decision.reason


def test_game_type_from_area():
    assert game_type_from_area("focus", "fast") == "S1-AE"
    assert game_type_from_area("creativity", "fast") == "S1-RA"
    assert game_type_from_area("reasoning", "slow") == "S2-CT"
    assert game_type_from_area("insight", "slow") == "S2-IN"
    assert game_type_from_area(None, None) == "S2-CT"


def test_content_full_capacity_ranks_by_fit():
    result = evaluate_content(DEFAULT_CATALOG, GatingMetrics(70.0, 80.0, 75.0))
    assert result.mode == "FULL_CAPACITY_MODE"
    assert result.s2_capacity == 78.0
    assert len(result.suggested) == len(DEFAULT_CATALOG)
    assert all(d.enabled for d in result.all_items)

    top = result.to_dict()["suggested"]
    assert len(top) == 3
    assert [item["id"] for item in top] == ["art-letters-stoic", "pod-freakonomics", "pod-hidden-brain"]
    assert top[0]["fit_score"] == 80.0
    fits = [d.fit_score for d in result.suggested]
    assert fits == sorted(fits, reverse=True)


def test_content_recovery_mode_suggests_light_only():
    result = evaluate_content(DEFAULT_CATALOG, GatingMetrics(30.0, 80.0, 80.0))
    assert result.mode == "RECOVERY_MODE"
    assert {d.item.demand for d in result.suggested} == {"LOW"}
    assert all(d.reason_code == "recovery-support" for d in result.suggested)
    assert all(d.reason_code == "recovery-mode-light-only" for d in result.not_suggested)
    assert all(d.enabled for d in result.all_items)


def test_content_low_bandwidth_and_tier_thresholds():
    low_bw = evaluate_content(DEFAULT_CATALOG, GatingMetrics(60.0, 50.0, 50.0))
    assert low_bw.mode == "LOW_BANDWIDTH_MODE"
    assert {d.item.demand for d in low_bw.suggested} == {"LOW", "MEDIUM"}
    assert {d.reason_code for d in low_bw.not_suggested} == {"low-bandwidth-mode"}

    # capacity 62: MEDIUM passes, HIGH fails on capacity
    full = evaluate_content(DEFAULT_CATALOG, GatingMetrics(60.0, 60.0, 65.0))
    reasons = {d.item.demand: d.reason_code for d in full.not_suggested}
    assert reasons["HIGH"] == "below-capacity-for-demand"
    assert reasons["VERY_HIGH"] == "below-capacity-for-demand"


def test_content_reading_limits():
    counts = ContentCounts(readings_today=1, book_sessions_week=0)
    result = evaluate_content(DEFAULT_CATALOG, GatingMetrics(70.0, 80.0, 75.0), counts)
    limited = [d for d in result.not_suggested if d.reason_code == "daily-reading-limit"]
    assert {d.item.content_type for d in limited} == {"article", "book"}
    assert all(d.item.content_type == "podcast" for d in result.suggested)

    books = evaluate_content(DEFAULT_CATALOG, GatingMetrics(70.0, 80.0, 75.0), ContentCounts(0, 3))
    assert {d.reason_code for d in books.not_suggested} == {"weekly-book-limit"}


def test_not_suggested_content_always_explains_itself():
    for recovery in (20.0, 50.0, 80.0):
        for sharpness in (30.0, 60.0, 90.0):
            result = evaluate_content(DEFAULT_CATALOG, GatingMetrics(recovery, sharpness, sharpness))
            for decision in result.not_suggested:
                assert decision.reason_code in CONTENT_REASON_CODES
                assert decision.reason


def test_reason_formatters():
    assert describe_game_reason("cap-reached-daily-S1", 3, 3) == "Daily fast-game limit reached (3/3)."
    assert "very high" in describe_content_reason("below-sharpness-for-demand", "VERY_HIGH")
