from datetime import timedelta

from assistant.core.config import Settings
from assistant.core.metrics import MetricsCollector


def test_settings_defaults():
    settings = Settings(_env_file=None)

    assert settings.staleness == timedelta(minutes=30)
    assert settings.new_intent_confidence_threshold == 0.8
    assert settings.announce_abandoned_actions is False


def test_settings_clock_uses_timezone():
    settings = Settings(_env_file=None, timezone="Asia/Kuala_Lumpur")

    now = settings.clock()

    assert now.tzinfo is not None


def test_cors_origins_are_deduplicated():
    settings = Settings(
        _env_file=None,
        frontend_origin="http://example.com/",
        additional_origins=["http://example.com", "http://other.com"],
    )

    assert settings.cors_origins == ["http://example.com", "http://other.com"]


def test_metrics_snapshot_counts_turns():
    metrics = MetricsCollector()

    metrics.record_turn("new_action", "INVITE_STUDENT")
    metrics.record_turn("continuation", "INVITE_STUDENT", completed=True)
    metrics.record_turn("unrecognized", None)

    snapshot = metrics.snapshot()
    assert snapshot.total_turns == 3
    assert snapshot.decisions == {"new_action": 1, "continuation": 1, "unrecognized": 1}
    assert snapshot.actions == {"INVITE_STUDENT": 2}
    assert snapshot.completed_actions == {"INVITE_STUDENT": 1}
