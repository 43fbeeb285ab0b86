# ==============================================================================
# Tests for the CSV Loader
# ==============================================================================
"""
Tests for reading clickstream exports: type normalization, placeholders,
deduplication, event id assignment and loading into an event store.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from clickfunnel.infrastructure.loader import load_files, read_events_csv

HEADER = "event_time,event_type,product_id,category_id,category_code,brand,price,user_id,user_session"


def _write_csv(path, rows):
    path.write_text("\n".join([HEADER, *rows]) + "\n")
    return path


@pytest.fixture()
def sample_csv(tmp_path):
    return _write_csv(
        tmp_path / "2019-Oct.csv",
        [
            "2019-10-01 00:00:00 UTC,view,5802432,1487580009286598681,,runail,0.32,462033176,s-a",
            "2019-10-01 00:00:03 UTC,cart,5844397,1487580006317032337,,,2.38,462033176,s-a",
            "2019-10-01 00:00:07 UTC,remove_from_cart,5837166,1783999064103190764,,pnb,22.22,556138645,s-b",
            "2019-10-01 00:00:07 UTC,remove_from_cart,5837166,1783999064103190764,,pnb,22.22,556138645,s-b",
            "2019-10-01 00:00:09 UTC,purchase,5876812,1487580010100293687,,jessnail,,564506666,",
        ],
    )


class TestReadEventsCsv:
    """Tests for read_events_csv()."""

    def test_event_types_normalized(self, sample_csv):
        result = read_events_csv(sample_csv)
        assert [e.event_type for e in result.events] == ["viewed", "cart", "removed", "purchased"]

    def test_duplicates_dropped(self, sample_csv):
        result = read_events_csv(sample_csv)
        assert result.rows_read == 5
        assert result.duplicates_dropped == 1
        assert len(result.events) == 4

    def test_event_ids_monotonic_from_start(self, sample_csv):
        result = read_events_csv(sample_csv, start_id=101)
        assert [e.event_id for e in result.events] == [101, 102, 103, 104]
        assert result.next_event_id == 105

    def test_placeholders(self, sample_csv):
        result = read_events_csv(sample_csv)
        cart, purchase = result.events[1], result.events[3]
        assert cart.brand == "No Brand"
        assert purchase.session_id == "unknown"
        assert purchase.placeholder_session
        assert purchase.price == Decimal("0.00")
        assert result.placeholder_sessions == 1
        assert result.placeholder_brands == 1
        assert result.zero_prices == 1

    def test_custom_placeholders(self, sample_csv):
        result = read_events_csv(sample_csv, placeholder_session_id="n/a", placeholder_brand="-")
        assert result.events[3].session_id == "n/a"
        assert result.events[1].brand == "-"

    def test_fields_parsed(self, sample_csv):
        event = read_events_csv(sample_csv).events[0]
        assert event.event_time == datetime(2019, 10, 1, 0, 0, 0)
        assert event.user_id == 462033176
        assert event.session_id == "s-a"
        assert event.product_id == 5802432
        assert event.price == Decimal("0.32")
        assert not event.placeholder_session

    def test_limit(self, sample_csv):
        assert len(read_events_csv(sample_csv, limit=2).events) == 2


class TestLoadFiles:
    """Tests for load_files() against the Parquet event store."""

    def test_ids_continue_across_files(self, tmp_path, event_store, sample_csv):
        second = _write_csv(
            tmp_path / "2019-Nov.csv",
            ["2019-11-01 00:00:00 UTC,view,1,1,,acme,5.00,7,s-z"],
        )
        summaries = load_files(event_store, [sample_csv, second])

        assert [s.inserted for s in summaries] == [4, 1]
        assert event_store.max_event_id() == 5
        assert [r["event_id"] for r in event_store.load()] == [1, 2, 3, 4, 5]

    def test_reloading_same_file_stores_nothing(self, event_store, sample_csv):
        load_files(event_store, [sample_csv])
        summaries = load_files(event_store, [sample_csv])
        assert summaries[0].inserted == 0
        assert len(event_store.load()) == 4
