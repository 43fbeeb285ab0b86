# ==============================================================================
# Tests for SessionPipeline - End-to-End Scenarios
# ==============================================================================
"""
End-to-end scenarios over the in-memory pipeline: a clean session, a session
id shared by two users, and a session that runs far too long.
"""

from decimal import Decimal

from clickfunnel.core.models import AnomalyReason, SessionSummary
from clickfunnel.core.pipeline import SessionPipeline


def _scenario_events(make_event):
    return [
        # S1: one user, viewed then purchased 30 minutes later
        make_event("S1", 1, "viewed", minute=0),
        make_event("S1", 1, "purchased", minute=30),
        # S2: same session id recorded for two users
        make_event("S2", 1, "viewed", minute=0),
        make_event("S2", 2, "cart", minute=5),
        make_event("S2", 2, "purchased", minute=6),
        # S3: one user over 2000 minutes
        make_event("S3", 3, "viewed", minute=0),
        make_event("S3", 3, "cart", minute=2000),
    ]


class TestScenarios:
    """Tests for the three reference sessions."""

    def test_clean_session_flows_through(self, make_event):
        result = SessionPipeline().run(_scenario_events(make_event))

        s1 = [s for s in result.classification.clean_sessions if s.session_id == "S1"]
        assert len(s1) == 1
        assert s1[0].user_id == 1
        assert s1[0].duration_minutes == 30
        assert result.summaries["S1"] == SessionSummary(
            session_id="S1", viewed=1, carted=0, purchased=1, removed=0
        )

    def test_shared_session_quarantined_entirely(self, make_event):
        result = SessionPipeline().run(_scenario_events(make_event))

        identity = result.classification.quarantined_events(AnomalyReason.IDENTITY_VIOLATION)
        assert {e.session_id for e in identity} == {"S2"}
        assert {e.user_id for e in identity} == {1, 2}
        assert len(identity) == 3
        assert "S2" not in result.classification.clean_session_ids
        assert "S2" not in result.summaries

    def test_long_session_quarantined_by_duration(self, make_event):
        result = SessionPipeline().run(_scenario_events(make_event))

        duration = result.classification.quarantined_events(AnomalyReason.DURATION_VIOLATION)
        assert {e.session_id for e in duration} == {"S3"}
        assert "S3" not in result.summaries

    def test_summaries_only_for_clean_sessions(self, make_event):
        result = SessionPipeline().run(_scenario_events(make_event))
        assert set(result.summaries) == result.classification.clean_session_ids == {"S1"}

    def test_threshold_is_configurable(self, make_event):
        result = SessionPipeline(max_session_minutes=3000).run(_scenario_events(make_event))
        assert result.classification.clean_session_ids == {"S1", "S3"}

    def test_summarize_can_be_skipped(self, make_event):
        result = SessionPipeline().run(_scenario_events(make_event), summarize=False)
        assert result.summaries == {}

    def test_event_without_user_reported_not_counted(self, make_event):
        events = [
            make_event("S1", 1, "viewed", minute=0),
            make_event("S1", None, "purchased", minute=5),
        ]
        result = SessionPipeline().run(events)

        assert result.sessionized.report.missing_user_id == 1
        assert result.summaries["S1"] == SessionSummary(
            session_id="S1", viewed=1, carted=0, purchased=0, removed=0
        )


class TestPricesInPipeline:
    """Tests for the price stage running over every event."""

    def test_price_anomalies_split_before_analysis(self, make_event):
        events = [
            make_event("S1", 1, product_id=7, price="10.00"),
            make_event("S1", 1, product_id=7, price="15.00"),
            make_event("S1", 1, product_id=7, price="0.00"),
        ]
        result = SessionPipeline().run(events)

        assert len(result.price_anomalies) == 1
        assert [(v.product_id, v.variation_pct) for v in result.price_variations] == [
            (7, Decimal("50.00"))
        ]

    def test_quarantined_sessions_still_feed_price_analysis(self, make_event):
        events = [
            make_event("shared", 1, product_id=7, price="10.00"),
            make_event("shared", 2, product_id=7, price="20.00"),
        ]
        result = SessionPipeline().run(events)
        assert result.price_variations[0].variation_pct == Decimal("100.00")

    def test_partition_count_does_not_change_outputs(self, make_event):
        events = _scenario_events(make_event)
        single = SessionPipeline().run(events)
        sharded = SessionPipeline(partitions=5, workers=3).run(events)
        assert sharded.summaries == single.summaries
        assert sharded.price_variations == single.price_variations
