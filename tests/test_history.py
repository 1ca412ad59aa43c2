"""Tests for the persisted submission history."""
import json
import logging

import pytest
from sqlalchemy.exc import OperationalError

from imgverify import db
from imgverify.lib.history import HistoryStore, history_stats
from imgverify.models import (
    GpsCoordinates, HistoryEntry, MetadataResult, Setting, VerificationStatus,
)


def make_entry(n, status=VerificationStatus.VERIFIED):
    return HistoryEntry(
        id=f'id-{n}',
        hash=f'{n:064x}',
        file_name=f'photo_{n}.jpg',
        preview_url='data:image/jpeg;base64,AAAA',
        checked_at='2024-01-15T12:00:00.000Z',
        status=status,
        reason='Capture time and GPS location are present.',
        metadata=MetadataResult(
            capture_time='15 Jan 2024, 12:00',
            gps=GpsCoordinates(6.5, -3.3),
            device='Nikon Z6',
            location_name='Lagos, Nigeria' if n % 2 else None,
        ),
    )


def write_slot(value, slot='ivs-history'):
    db.session.add(Setting(key=slot, value=value))
    db.session.commit()


class TestLoad:
    """Tests for HistoryStore.load()."""

    def test_absent_slot(self, app):
        """Test that a missing slot loads as empty history."""
        assert HistoryStore().load() == []

    def test_corrupt_json(self, app):
        """Test that unparseable JSON loads as empty history."""
        write_slot('{not json')
        assert HistoryStore().load() == []

    def test_not_an_array(self, app):
        """Test that a JSON object instead of an array loads as empty."""
        write_slot(json.dumps({'entries': []}))
        assert HistoryStore().load() == []

    def test_skips_only_non_objects(self, app):
        """Test that non-object items are dropped and every object entry is kept."""
        good = make_entry(1).to_dict()
        write_slot(json.dumps([good, 'junk', 42, dict(good, id='id-2')]))
        entries = HistoryStore().load()
        assert [e.id for e in entries] == ['id-1', 'id-2']

    def test_legacy_entry_without_location_name(self, app):
        """Test that old entries load with absent locationName and sanitized GPS."""
        legacy = make_entry(2).to_dict()
        del legacy['metadata']['locationName']
        legacy['metadata']['gps'] = {'latitude': '6.5', 'longitude': 'NaN'}
        write_slot(json.dumps([legacy]))

        entry = HistoryStore().load()[0]
        assert entry.metadata.location_name is None
        assert entry.metadata.gps == GpsCoordinates(6.5, None)

    def test_entry_without_metadata(self, app):
        """Test that an entry with no metadata object gets empty metadata."""
        write_slot(json.dumps([{'hash': 'abc', 'status': 'Reused'}]))
        entry = HistoryStore().load()[0]
        assert entry.metadata == MetadataResult()
        assert entry.status == VerificationStatus.REUSED

    def test_unknown_status_kept_as_absent(self, app):
        """Test that entries with a missing or unknown status load with status None."""
        missing = make_entry(1).to_dict()
        del missing['status']
        unknown = dict(make_entry(2).to_dict(), status='Bogus')
        write_slot(json.dumps([missing, unknown]))

        entries = HistoryStore().load()
        assert [e.id for e in entries] == ['id-1', 'id-2']
        assert [e.status for e in entries] == [None, None]
        assert entries[0].to_dict()['status'] is None

    def test_entry_without_hash_kept(self, app):
        """Test that an entry lacking a hash loads with an empty hash."""
        write_slot(json.dumps([{'status': 'Verified', 'fileName': 'old.jpg'}]))
        entries = HistoryStore().load()
        assert len(entries) == 1
        assert entries[0].hash == ''
        assert entries[0].file_name == 'old.jpg'

    def test_missing_id_stable_across_loads(self, app):
        """Test that an entry with no id gets the same derived id on every load."""
        legacy = make_entry(3).to_dict()
        del legacy['id']
        write_slot(json.dumps([legacy]))

        store = HistoryStore()
        first = store.load()[0].id
        assert first
        assert store.load()[0].id == first

    def test_missing_ids_differ_per_entry(self, app):
        """Test that derived ids distinguish entries with different hashes."""
        one, two = make_entry(1).to_dict(), make_entry(2).to_dict()
        del one['id'], two['id']
        write_slot(json.dumps([one, two]))
        entries = HistoryStore().load()
        assert entries[0].id != entries[1].id

    def test_read_failure_returns_empty(self, app, monkeypatch, caplog):
        """Test that a database read error is logged and yields empty history."""
        def broken(*args, **kwargs):
            raise OperationalError('SELECT', {}, Exception('disk I/O error'))

        monkeypatch.setattr(db.session, 'execute', broken)
        with caplog.at_level(logging.WARNING):
            assert HistoryStore().load() == []
        assert 'Unable to read history' in caplog.text


class TestSave:
    """Tests for HistoryStore.save() and clear()."""

    def test_round_trip(self, app):
        """Test that saved entries load back equal and in order."""
        store = HistoryStore()
        entries = [make_entry(n) for n in range(5)]
        store.save(entries)
        assert store.load() == entries

    def test_save_load_idempotent(self, app):
        """Test that saving loaded entries changes nothing."""
        store = HistoryStore()
        store.save([make_entry(n) for n in range(3)])
        first = store.load()
        store.save(first)
        assert store.load() == first

    def test_legacy_entries_survive_prepend(self, app):
        """Test that a status-less legacy entry is still stored after a new submission."""
        legacy = make_entry(1).to_dict()
        del legacy['status']
        write_slot(json.dumps([legacy]))

        store = HistoryStore()
        store.prepend(make_entry(2))
        assert [e.id for e in store.load()] == ['id-2', 'id-1']

    def test_overwrites_existing(self, app):
        """Test that a save replaces the slot rather than adding a row."""
        store = HistoryStore()
        store.save([make_entry(1)])
        store.save([make_entry(2)])
        assert [e.id for e in store.load()] == ['id-2']
        assert db.session.query(Setting).count() == 1

    def test_stored_layout(self, app):
        """Test the camelCase JSON layout of the stored slot."""
        HistoryStore().save([make_entry(1)])
        setting = db.session.query(Setting).filter_by(key='ivs-history').one()
        stored = json.loads(setting.value)
        assert stored[0]['fileName'] == 'photo_1.jpg'
        assert stored[0]['metadata']['gps'] == {'latitude': 6.5, 'longitude': -3.3}
        assert stored[0]['metadata']['completeness'] == 'Complete'

    def test_save_truncates_to_capacity(self, app):
        """Test that save keeps at most capacity entries."""
        store = HistoryStore(capacity=3)
        store.save([make_entry(n) for n in range(5)])
        assert [e.id for e in store.load()] == ['id-0', 'id-1', 'id-2']

    def test_write_failure_logged_not_raised(self, app, monkeypatch, caplog):
        """Test that a failed commit is logged instead of raised."""
        def broken_commit():
            raise OperationalError('UPDATE', {}, Exception('database is locked'))

        monkeypatch.setattr(db.session, 'commit', broken_commit)
        with caplog.at_level(logging.WARNING):
            HistoryStore().save([make_entry(1)])
        assert 'Unable to save history' in caplog.text

    def test_clear(self, app):
        """Test that clear removes the stored slot."""
        store = HistoryStore()
        store.save([make_entry(1)])
        store.clear()
        assert store.load() == []
        assert db.session.query(Setting).count() == 0

    def test_clear_empty(self, app):
        """Test that clearing an absent slot is harmless."""
        HistoryStore().clear()
        assert HistoryStore().load() == []

    def test_separate_slots(self, app):
        """Test that different slot names do not share entries."""
        HistoryStore(slot='a').save([make_entry(1)])
        assert HistoryStore(slot='b').load() == []


class TestPrepend:
    """Tests for HistoryStore.prepend() ordering and capacity."""

    def test_newest_first(self, app):
        """Test that the latest entry is stored first."""
        store = HistoryStore()
        store.prepend(make_entry(1))
        store.prepend(make_entry(2))
        assert [e.id for e in store.load()] == ['id-2', 'id-1']

    def test_capacity_drops_oldest(self, app):
        """Test that the 21st entry evicts the oldest one."""
        store = HistoryStore()
        for n in range(20):
            store.prepend(make_entry(n))
        assert len(store.load()) == 20

        updated = store.prepend(make_entry(20))
        loaded = store.load()
        assert len(loaded) == 20
        assert loaded == updated
        assert loaded[0].id == 'id-20'
        assert 'id-0' not in [e.id for e in loaded]
        assert loaded[-1].id == 'id-1'

    def test_uses_given_entries(self, app):
        """Test that prepend builds on the caller's list when one is passed."""
        store = HistoryStore()
        store.save([make_entry(1)])
        updated = store.prepend(make_entry(2), entries=[])
        assert [e.id for e in updated] == ['id-2']

    def test_returns_update_when_save_fails(self, app, monkeypatch):
        """Test that the in-memory history still updates when persisting fails."""
        store = HistoryStore()

        def broken_commit():
            raise OperationalError('UPDATE', {}, Exception('read-only'))

        monkeypatch.setattr(db.session, 'commit', broken_commit)
        updated = store.prepend(make_entry(1), entries=[])
        assert [e.id for e in updated] == ['id-1']

    def test_contains(self, app):
        """Test hash membership before and after recording an entry."""
        store = HistoryStore()
        entry = make_entry(7)
        assert store.contains(entry.hash) is False
        store.prepend(entry)
        assert store.contains(entry.hash) is True

    def test_invalid_capacity(self):
        """Test that a non-positive capacity is rejected."""
        with pytest.raises(ValueError):
            HistoryStore(capacity=0)


class TestHistoryStats:
    """Tests for history_stats()."""

    def test_counts(self):
        """Test per-verdict counts."""
        entries = [
            make_entry(1, VerificationStatus.VERIFIED),
            make_entry(2, VerificationStatus.SUSPICIOUS),
            make_entry(3, VerificationStatus.SUSPICIOUS),
            make_entry(4, VerificationStatus.REUSED),
        ]
        assert history_stats(entries) == {'total': 4, 'verified': 1, 'suspicious': 2, 'reused': 1}

    def test_status_less_entries_count_in_total_only(self):
        """Test that entries without a status only add to the total."""
        entries = [make_entry(1), make_entry(2, status=None)]
        assert history_stats(entries) == {'total': 2, 'verified': 1, 'suspicious': 0, 'reused': 0}

    def test_empty(self):
        """Test counts for an empty history."""
        assert history_stats([]) == {'total': 0, 'verified': 0, 'suspicious': 0, 'reused': 0}
