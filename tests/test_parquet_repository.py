# ==============================================================================
# Tests for Parquet Repositories
# ==============================================================================
"""
Tests for the Parquet event store, output repository and JSON watermark
store, using a temporary data directory per test.
"""

from datetime import datetime
from decimal import Decimal

from clickfunnel.core.models import PriceVariation, Session, SessionSummary


def _summary(session_id, viewed=1):
    return SessionSummary(session_id=session_id, viewed=viewed).to_db_record()


# ==============================================================================
# Event store
# ==============================================================================


class TestParquetEventStore:
    """Tests for ParquetEventStore."""

    def test_empty_store(self, event_store):
        assert event_store.load() == []
        assert event_store.max_event_id() == 0

    def test_append_and_load_round_trip(self, event_store, make_event):
        events = [make_event("s1", 1, price="12.34"), make_event("s2", 2, event_time=None)]
        assert event_store.append([e.to_db_record() for e in events]) == 2

        loaded = event_store.load()
        assert [r["event_id"] for r in loaded] == [1, 2]
        assert loaded[0]["price"] == Decimal("12.34")
        assert loaded[1]["event_time"] is None

    def test_append_skips_duplicate_keys(self, event_store, make_event):
        first = make_event("s1", 1, minute=0)
        again = first.model_copy(update={"event_id": 99})
        event_store.append([first.to_db_record()])

        assert event_store.append([again.to_db_record()]) == 0
        assert event_store.max_event_id() == 1

    def test_clear(self, event_store, make_event):
        event_store.append([make_event().to_db_record()])
        event_store.clear()
        assert event_store.load() == []


# ==============================================================================
# Output repository
# ==============================================================================


class TestParquetOutputRepository:
    """Tests for ParquetOutputRepository."""

    def test_summaries_insert_if_absent(self, output_repository):
        assert output_repository.insert_summaries([_summary("a"), _summary("b")]) == 2
        assert output_repository.insert_summaries([_summary("b", viewed=9), _summary("c")]) == 1

        totals = output_repository.get_funnel_totals()
        assert totals["sessions"] == 3
        assert totals["viewed"] == 3

    def test_clear_summaries(self, output_repository):
        output_repository.insert_summaries([_summary("a")])
        output_repository.clear_summaries()
        assert output_repository.get_funnel_totals() is None

    def test_prune_summaries(self, output_repository):
        output_repository.insert_summaries([_summary("a"), _summary("b"), _summary("c")])

        assert output_repository.prune_summaries({"a", "c", "z"}) == 1
        assert output_repository.get_funnel_totals()["sessions"] == 2
        assert output_repository.prune_summaries({"a", "c"}) == 0

    def test_prune_summaries_to_nothing(self, output_repository):
        output_repository.insert_summaries([_summary("a")])

        assert output_repository.prune_summaries(set()) == 1
        assert output_repository.get_funnel_totals() is None

    def test_save_outputs_replaces_each_table(self, output_repository, make_event):
        event = make_event("x", price="0.00").to_db_record()
        output_repository.save_outputs(
            sessions=[],
            quarantine={"identity-violation": [event], "duration-violation": []},
            price_anomalies=[event],
            price_variations=[],
        )

        assert output_repository.get_quarantine_counts() == {
            "identity-violation": {"sessions": 1, "events": 1}
        }

    def test_save_sessions_replaces(self, output_repository):
        session = Session(
            session_id="s1",
            user_id=1,
            session_start=datetime(2019, 10, 1, 10),
            session_end=datetime(2019, 10, 1, 10, 30),
        )
        output_repository.save_sessions([session.to_db_record()])
        assert output_repository.save_sessions([session.to_db_record()]) == 1

    def test_quarantine_replaced_per_reason(self, output_repository, make_event):
        output_repository.save_quarantine("identity-violation", [make_event("x").to_db_record()])
        output_repository.save_quarantine(
            "duration-violation",
            [make_event("y", minute=0).to_db_record(), make_event("y", minute=5).to_db_record()],
        )
        output_repository.save_quarantine("identity-violation", [make_event("z").to_db_record()])

        assert output_repository.get_quarantine_counts() == {
            "duration-violation": {"sessions": 1, "events": 2},
            "identity-violation": {"sessions": 1, "events": 1},
        }

    def test_price_variations_ordered_by_variation(self, output_repository):
        rows = [
            PriceVariation(
                product_id=pid,
                min_price=Decimal("10.00"),
                max_price=Decimal(max_price),
                variation_pct=Decimal(pct),
            ).to_db_record()
            for pid, max_price, pct in [(1, "11.00", "10.00"), (2, "20.00", "100.00")]
        ]
        output_repository.save_price_variations(rows)

        top = output_repository.get_price_variations(limit=1)
        assert top == [
            {
                "product_id": 2,
                "min_price": Decimal("10.00"),
                "max_price": Decimal("20.00"),
                "variation_pct": Decimal("100.00"),
            }
        ]

    def test_reset_removes_outputs(self, output_repository):
        output_repository.insert_summaries([_summary("a")])
        output_repository.reset()
        assert output_repository.get_funnel_totals() is None
        assert output_repository.get_quarantine_counts() == {}


# ==============================================================================
# Watermarks
# ==============================================================================


class TestJsonWatermarkStore:
    """Tests for JsonWatermarkStore."""

    def test_get_missing(self, watermark_store):
        assert watermark_store.get("session_summary") is None

    def test_set_get_clear(self, watermark_store):
        watermark_store.set("session_summary", "abc")
        watermark_store.set("other", "x")
        assert watermark_store.get("session_summary") == "abc"

        watermark_store.clear("session_summary")
        assert watermark_store.get("session_summary") is None
        assert watermark_store.get("other") == "x"
