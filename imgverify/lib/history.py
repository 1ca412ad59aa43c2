"""
Persisted submission history.

The history is a newest-first JSON array of entries kept in a single
row of the settings table. Every change is a full read-modify-write
through load()/save()/clear(); nothing is cached between calls and no
entry is ever edited in place.

Storage failures never reach the caller: a failed read yields an empty
history and a failed write is logged while the caller carries on with
its in-memory list. Concurrent writers are not coordinated; the last
write wins.
"""
from typing import Iterable, Optional
import json
import logging

from sqlalchemy.exc import SQLAlchemyError

from imgverify import db
from imgverify.lib.verification import contains_hash
from imgverify.models import HistoryEntry, Setting, VerificationStatus

logger = logging.getLogger(__name__)

DEFAULT_SLOT = 'ivs-history'
DEFAULT_CAPACITY = 20


class HistoryStore:
    """Capacity-bounded, newest-first submission history."""

    def __init__(self, slot: str = DEFAULT_SLOT, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self.slot = slot
        self.capacity = capacity

    def _get_setting(self) -> Optional[Setting]:
        return db.session.execute(
            db.select(Setting).filter_by(key=self.slot)
        ).scalar_one_or_none()

    def load(self) -> list[HistoryEntry]:
        """
        Read the stored history, newest first.

        Absent, unparseable or non-array state loads as empty. Items that are
        not objects are skipped; other entries load with absent fields.
        """
        try:
            setting = self._get_setting()
        except SQLAlchemyError as e:
            logger.warning(f"Unable to read history slot '{self.slot}': {e}")
            db.session.rollback()
            return []

        if setting is None or not setting.value:
            return []

        try:
            raw_entries = json.loads(setting.value)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"History slot '{self.slot}' is not valid JSON, ignoring")
            return []

        if not isinstance(raw_entries, list):
            logger.warning(f"History slot '{self.slot}' is not an array, ignoring")
            return []

        entries = []
        for raw in raw_entries:
            entry = HistoryEntry.from_dict(raw)
            if entry is None:
                logger.debug(f"Skipping non-object history item in '{self.slot}'")
                continue
            entries.append(entry)
        return entries[:self.capacity]

    def save(self, entries: Iterable[HistoryEntry]) -> None:
        """Persist entries in the given order, keeping at most capacity of them."""
        entries = list(entries)[:self.capacity]
        payload = json.dumps([entry.to_dict() for entry in entries])

        try:
            setting = self._get_setting()
            if setting is None:
                db.session.add(Setting(key=self.slot, value=payload))
            else:
                setting.value = payload
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning(f"Unable to save history to slot '{self.slot}': {e}")

    def clear(self) -> None:
        """Remove every stored entry."""
        try:
            setting = self._get_setting()
            if setting is not None:
                db.session.delete(setting)
                db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning(f"Unable to clear history slot '{self.slot}': {e}")

    def prepend(self, entry: HistoryEntry, entries: Optional[list[HistoryEntry]] = None) -> list[HistoryEntry]:
        """
        Add a new entry at the front, dropping the oldest beyond capacity.

        Args:
            entry: Newly created entry
            entries: Current history if the caller already loaded it

        Returns:
            The updated history, even if persisting it failed
        """
        if entries is None:
            entries = self.load()
        updated = [entry, *entries][:self.capacity]
        self.save(updated)
        return updated

    def contains(self, content_hash: str) -> bool:
        """True if the stored history already has this content hash."""
        return contains_hash(self.load(), content_hash)


def history_stats(entries: Iterable[HistoryEntry]) -> dict:
    """Counts of entries per verdict. Entries without a status count only in total."""
    entries = list(entries)
    counts = {status: 0 for status in VerificationStatus}
    for entry in entries:
        if entry.status is not None:
            counts[entry.status] += 1
    return {
        'total': len(entries),
        'verified': counts[VerificationStatus.VERIFIED],
        'suspicious': counts[VerificationStatus.SUSPICIOUS],
        'reused': counts[VerificationStatus.REUSED],
    }
