# ==============================================================================
# Anomaly Classifier - Pure Domain Logic
# ==============================================================================
"""
Two sequential filters that remove sessions violating integrity assumptions.

Pass A (identity-violation):
    A session id recorded under more than one user, or a placeholder session
    id substituted for missing values, is not attributable to one person.
    Every session and every raw event under that id is quarantined.

Pass B (duration-violation):
    Runs on the Pass A survivors only. Sessions longer than the configured
    maximum (strictly greater than) are quarantined.

Each pass returns new collections; the input sessions and events are never
modified. Quarantined events are taken from the full event set passed in, so
the quarantine holds every raw event of a flagged session id regardless of
which user recorded it.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from clickfunnel.core.models import AnomalousSession, AnomalyReason, Event, Session

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSION_MINUTES = 1440
DEFAULT_PLACEHOLDER_SESSION_IDS = frozenset({"unknown"})


@dataclass(frozen=True)
class ClassificationResult:
    """
    Output of the anomaly classifier.

    Attributes:
        clean_sessions: Sessions that survived both passes
        clean_events: Events attributed to a clean (session_id, user_id) pair
        quarantine: Raw events per anomaly reason
        anomalies: One record per flagged session id
    """

    clean_sessions: tuple[Session, ...]
    clean_events: tuple[Event, ...]
    quarantine: dict[AnomalyReason, tuple[Event, ...]] = field(default_factory=dict)
    anomalies: tuple[AnomalousSession, ...] = ()

    @property
    def clean_session_ids(self) -> frozenset[str]:
        return frozenset(s.session_id for s in self.clean_sessions)

    def quarantined_events(self, reason: AnomalyReason) -> tuple[Event, ...]:
        return self.quarantine.get(reason, ())

    def session_counts(self) -> dict[str, int]:
        """Quarantined session ids per reason."""
        counts = {reason.value: 0 for reason in AnomalyReason}
        for anomaly in self.anomalies:
            counts[anomaly.reason.value] += 1
        return counts

    def event_counts(self) -> dict[str, int]:
        """Quarantined raw events per reason."""
        return {reason.value: len(self.quarantined_events(reason)) for reason in AnomalyReason}


class AnomalyClassifier:
    """
    Identity and duration filters over sessions.

    Args:
        max_session_minutes: Longest plausible session; longer ones are flagged
        placeholder_session_ids: Session ids known to be substituted placeholders
    """

    def __init__(
        self,
        max_session_minutes: int = DEFAULT_MAX_SESSION_MINUTES,
        placeholder_session_ids: Iterable[str] = DEFAULT_PLACEHOLDER_SESSION_IDS,
    ):
        if max_session_minutes < 0:
            raise ValueError("max_session_minutes must be non-negative")
        self.max_session_minutes = max_session_minutes
        self.placeholder_session_ids = frozenset(placeholder_session_ids)

    # --------------------------------------------------------------------------
    # Pass A
    # --------------------------------------------------------------------------

    def find_identity_violations(
        self, sessions: Iterable[Session], events: Iterable[Event] = ()
    ) -> dict[str, int]:
        """
        Find session ids shared by several users or carrying a placeholder.

        Args:
            sessions: All sessions from the sessionizer
            events: Raw events, scanned for the placeholder_session tag

        Returns:
            Dict mapping flagged session_id to its distinct user count
        """
        users: dict[str, set[int]] = defaultdict(set)
        for session in sessions:
            users[session.session_id].add(session.user_id)

        tagged = {e.session_id for e in events if e.placeholder_session and e.session_id}

        return {
            session_id: len(user_ids)
            for session_id, user_ids in users.items()
            if len(user_ids) > 1
            or session_id in self.placeholder_session_ids
            or session_id in tagged
        }

    # --------------------------------------------------------------------------
    # Pass B
    # --------------------------------------------------------------------------

    def find_duration_violations(self, sessions: Iterable[Session]) -> set[str]:
        """Session ids whose duration is strictly above the maximum."""
        return {s.session_id for s in sessions if s.duration_minutes > self.max_session_minutes}

    # --------------------------------------------------------------------------
    # Both passes
    # --------------------------------------------------------------------------

    def classify(self, sessions: Sequence[Session], events: Sequence[Event]) -> ClassificationResult:
        """
        Run Pass A then Pass B.

        Args:
            sessions: All sessions from the sessionizer
            events: The full deduplicated event set

        Returns:
            ClassificationResult with clean sessions/events and quarantine sets
        """
        events_by_session: dict[str, list[Event]] = defaultdict(list)
        for event in events:
            if event.session_id:
                events_by_session[event.session_id].append(event)

        identity = self.find_identity_violations(sessions, events)
        after_identity = tuple(s for s in sessions if s.session_id not in identity)

        duration = self.find_duration_violations(after_identity)
        clean_sessions = tuple(s for s in after_identity if s.session_id not in duration)

        anomalies = [
            AnomalousSession(
                session_id=session_id,
                reason=AnomalyReason.IDENTITY_VIOLATION,
                user_count=user_count,
                event_count=len(events_by_session.get(session_id, ())),
            )
            for session_id, user_count in sorted(identity.items())
        ]
        anomalies.extend(
            AnomalousSession(
                session_id=session_id,
                reason=AnomalyReason.DURATION_VIOLATION,
                user_count=1,
                event_count=len(events_by_session.get(session_id, ())),
            )
            for session_id in sorted(duration)
        )

        quarantine = {
            AnomalyReason.IDENTITY_VIOLATION: self._collect(events_by_session, identity),
            AnomalyReason.DURATION_VIOLATION: self._collect(events_by_session, duration),
        }

        # Only events the sessionizer attributed to a clean (session_id, user_id)
        clean_keys = {(s.session_id, s.user_id) for s in clean_sessions}
        clean_events = tuple(e for e in events if (e.session_id, e.user_id) in clean_keys)

        result = ClassificationResult(
            clean_sessions=clean_sessions,
            clean_events=clean_events,
            quarantine=quarantine,
            anomalies=tuple(anomalies),
        )
        logger.info(
            "Quarantined %d identity-violation sessions (%d events) and "
            "%d duration-violation sessions (%d events); %d sessions clean",
            len(identity),
            len(quarantine[AnomalyReason.IDENTITY_VIOLATION]),
            len(duration),
            len(quarantine[AnomalyReason.DURATION_VIOLATION]),
            len(clean_sessions),
        )
        return result

    @staticmethod
    def _collect(events_by_session: dict[str, list[Event]], session_ids) -> tuple[Event, ...]:
        collected = [e for sid in sorted(session_ids) for e in events_by_session.get(sid, ())]
        collected.sort(key=lambda e: e.event_id)
        return tuple(collected)
