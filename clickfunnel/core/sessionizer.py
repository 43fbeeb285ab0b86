# ==============================================================================
# Sessionizer - Pure Domain Logic
# ==============================================================================
"""
Groups cleaned events into sessions keyed by (session_id, user_id).

The key is the pair rather than session_id alone so that the anomaly
classifier can see when one session id was recorded under several users.

Events missing a session id or user id cannot be attributed and are dropped.
Events missing a timestamp do not move the session boundaries. Both are
counted in a DataQualityReport instead of being silently absorbed.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from clickfunnel.core.models import DataQualityReport, Event, Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionizeResult:
    """Sessions emitted by the sessionizer plus the data-quality counts."""

    sessions: tuple[Session, ...]
    report: DataQualityReport = field(default_factory=DataQualityReport)


class Sessionizer:
    """
    Builds one Session per (session_id, user_id) pair.

    start = min(event_time), end = max(event_time). A pair with a single
    timestamped event has start == end and duration 0. A pair whose events
    all lack timestamps is unresolved and excluded.
    """

    def sessionize(self, events: Iterable[Event]) -> SessionizeResult:
        """
        Group events into sessions.

        Args:
            events: Cleaned events in any order

        Returns:
            SessionizeResult with sessions sorted by (session_id, user_id)
        """
        # (session_id, user_id) -> [start, end, event_count]
        bounds: dict[tuple[str, int], list] = {}
        missing_session = 0
        missing_user = 0
        missing_time = 0

        for event in events:
            if not event.session_id:
                missing_session += 1
                continue
            if event.user_id is None:
                missing_user += 1
                continue

            key = (event.session_id, event.user_id)
            entry = bounds.setdefault(key, [None, None, 0])
            entry[2] += 1

            timestamp = event.event_time
            if timestamp is None:
                missing_time += 1
                continue
            if entry[0] is None or timestamp < entry[0]:
                entry[0] = timestamp
            if entry[1] is None or timestamp > entry[1]:
                entry[1] = timestamp

        sessions = []
        unresolved = 0
        for (session_id, user_id), (start, end, count) in sorted(bounds.items()):
            if start is None:
                unresolved += 1
                continue
            sessions.append(self._build_session(session_id, user_id, start, end, count))

        report = DataQualityReport(
            missing_session_id=missing_session,
            missing_user_id=missing_user,
            missing_timestamp=missing_time,
            unresolved_sessions=unresolved,
        )
        if report.has_issues:
            logger.warning(
                "Sessionizer skipped records: missing_session_id=%d missing_user_id=%d "
                "missing_timestamp=%d unresolved_sessions=%d",
                missing_session,
                missing_user,
                missing_time,
                unresolved,
            )
        logger.info("Sessionized %d sessions from %d groups", len(sessions), len(bounds))
        return SessionizeResult(sessions=tuple(sessions), report=report)

    @staticmethod
    def _build_session(
        session_id: str, user_id: int, start: datetime, end: datetime, count: int
    ) -> Session:
        return Session(
            session_id=session_id,
            user_id=user_id,
            session_start=start,
            session_end=end,
            event_count=count,
        )
