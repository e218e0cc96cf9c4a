"""
Unit tests for the SQLite primary and archive stores.
"""

from datetime import timedelta

import pytest

from surveillance.core.exceptions import StoreError
from surveillance.core.types import DiseaseCategory, Priority, SignalStatus, SourceTier


class TestSqliteSignalStore:
    """Tests for SqliteSignalStore."""

    def test_insert_and_get_round_trip(self, signal_store, make_signal, now):
        signal = make_signal(
            disease_name="Cholera",
            disease_category=DiseaseCategory.ENTERIC,
            source_tier=SourceTier.TIER_1,
            cross_border_risk=True,
            reported_cases=42,
            location_lat=0.3476,
            source_timestamp=now - timedelta(days=1),
        )
        signal_store.insert_signal(signal)

        stored = signal_store.get_signal(signal.id)

        assert stored == signal

    def test_get_missing(self, signal_store):
        assert signal_store.get_signal("missing") is None

    def test_fetch_untriaged_ordering(self, signal_store, make_signal, now):
        p3_old = make_signal(priority=Priority.P3, created_at=now - timedelta(hours=5))
        p1 = make_signal(priority=Priority.P1, created_at=now - timedelta(hours=9))
        p3_new = make_signal(priority=Priority.P3, created_at=now - timedelta(hours=1))
        p2 = make_signal(priority=Priority.P2)
        done = make_signal(priority=Priority.P1, status=SignalStatus.VALIDATED)
        for signal in (p3_old, p1, p3_new, p2, done):
            signal_store.insert_signal(signal)

        ids = [s.id for s in signal_store.fetch_untriaged(limit=10)]

        assert ids == [p1.id, p2.id, p3_new.id, p3_old.id]

    def test_fetch_untriaged_limit_and_filter(self, signal_store, make_signal):
        for priority in (Priority.P1, Priority.P2, Priority.P3, Priority.P4):
            signal_store.insert_signal(make_signal(priority=priority))

        assert len(signal_store.fetch_untriaged(limit=2)) == 2
        filtered = signal_store.fetch_untriaged(limit=10, priorities=["P2", "P4"])
        assert sorted(s.priority.value for s in filtered) == ["P2", "P4"]

    def test_update_signal(self, signal_store, make_signal, now):
        signal = make_signal()
        signal_store.insert_signal(signal)

        assert signal_store.update_signal(signal.id, {"status": "validated", "validated_at": now}) is True
        assert signal_store.update_signal("missing", {"analyst_notes": "x"}) is False

        stored = signal_store.get_signal(signal.id)
        assert stored.status == SignalStatus.VALIDATED
        assert stored.validated_at == now

    def test_update_rejects_unknown_columns(self, signal_store, make_signal):
        signal = make_signal()
        signal_store.insert_signal(signal)

        with pytest.raises(ValueError):
            signal_store.update_signal(signal.id, {"id": "other"})
        with pytest.raises(ValueError):
            signal_store.update_signal(signal.id, {"severity": 5})

    def test_delete(self, signal_store, make_signal):
        signals = [make_signal() for _ in range(3)]
        for signal in signals:
            signal_store.insert_signal(signal)

        assert signal_store.delete_signal(signals[0].id) is True
        assert signal_store.delete_signal(signals[0].id) is False
        assert signal_store.delete_signals([signals[1].id, signals[2].id, "missing"]) == 2
        assert signal_store.count_by_status() == {}

    def test_duplicate_insert_raises_store_error(self, signal_store, make_signal):
        signal = make_signal()
        signal_store.insert_signal(signal)

        with pytest.raises(StoreError):
            signal_store.insert_signal(signal)

    def test_fetch_archivable(self, signal_store, make_signal, now):
        old_validated = make_signal(status=SignalStatus.VALIDATED, validated_at=now - timedelta(days=10))
        old_dismissed = make_signal(status=SignalStatus.DISMISSED, validated_at=now - timedelta(days=8))
        recent = make_signal(status=SignalStatus.VALIDATED, validated_at=now - timedelta(days=1))
        pending = make_signal(status=SignalStatus.NEW)
        for signal in (old_validated, old_dismissed, recent, pending):
            signal_store.insert_signal(signal)

        ids = [s.id for s in signal_store.fetch_archivable(now - timedelta(days=7), limit=10)]

        assert ids == [old_validated.id, old_dismissed.id]

    def test_stale_and_retention_stats(self, signal_store, make_signal, now):
        cutoff = now.replace(hour=0, minute=0, second=0, microsecond=0)
        yesterday = now - timedelta(days=1)
        signal_store.insert_signal(make_signal(status=SignalStatus.NEW, created_at=yesterday))
        signal_store.insert_signal(make_signal(status=SignalStatus.VALIDATED, created_at=yesterday))
        signal_store.insert_signal(make_signal(status=SignalStatus.NEW))

        assert len(signal_store.list_stale(cutoff)) == 1
        stats = signal_store.retention_stats()
        assert stats.total == 3
        assert stats.buckets[0].date == now.strftime("%Y-%m-%d")
        assert stats.by_status() == {"new": 2, "validated": 1}

        assert signal_store.delete_stale(cutoff) == 1
        assert signal_store.count_validated() == 1

    def test_counts_and_dedupe_listing(self, signal_store, make_signal, now):
        first = make_signal(original_text="same", priority=Priority.P1, created_at=now - timedelta(hours=3))
        second = make_signal(original_text="same", priority=Priority.P2, created_at=now - timedelta(hours=2))
        signal_store.insert_signal(second)
        signal_store.insert_signal(first)

        assert signal_store.count_by_priority() == {"P1": 1, "P2": 1}
        rows = signal_store.list_for_dedupe()
        assert [r["id"] for r in rows] == [first.id, second.id]
        assert set(rows[0]) == {"id", "original_text", "created_at"}


class TestSqliteArchiveStore:
    """Tests for SqliteArchiveStore."""

    def test_requires_open(self, archive_store):
        with pytest.raises(StoreError, match="not open"):
            archive_store.ensure_schema()

    def test_ensure_schema_idempotent(self, archive_store):
        with archive_store:
            archive_store.ensure_schema()
            archive_store.ensure_schema()
            indexes = {
                row[1] for row in archive_store.conn.execute("PRAGMA index_list('signals_archive')")
            }
            assert {
                "idx_signals_archive_country",
                "idx_signals_archive_disease",
                "idx_signals_archive_created",
                "idx_signals_archive_status",
            } <= indexes
        assert archive_store.conn is None

    def test_upsert_inserts_projection(self, archive_store, make_signal, now):
        signal = make_signal(status=SignalStatus.VALIDATED, validated_at=now, triaged_by="analyst-1")

        with archive_store:
            archive_store.ensure_schema()
            archive_store.upsert(signal, synced_at=now)
            row = archive_store.get(signal.id)

        assert row["original_text"] == signal.original_text
        assert row["status"] == "validated"
        assert row["synced_at"].startswith("2026-03-15T14:30:00")
        assert "triaged_by" not in row
        assert "lingua_fidelity_score" not in row

    def test_upsert_updates_only_mutable_fields(self, archive_store, make_signal, now):
        signal = make_signal(status=SignalStatus.VALIDATED, validated_at=now, analyst_notes="first")
        later = now + timedelta(hours=2)

        with archive_store:
            archive_store.ensure_schema()
            archive_store.upsert(signal, synced_at=now)

            signal.analyst_notes = "second"
            signal.status = SignalStatus.DISMISSED
            signal.original_text = "edited text"
            archive_store.upsert(signal, synced_at=later)

            assert archive_store.count() == 1
            row = archive_store.get(signal.id)

        assert row["analyst_notes"] == "second"
        assert row["status"] == "dismissed"
        assert row["original_text"] != "edited text"
        assert row["synced_at"].startswith("2026-03-15T16:30:00")
