"""
Incident Cooldown Tracker.

Per pollutant, two optional timestamps gate whether an alert may be sent:

  incident_started_at — when the current episode's incident timer was armed
  last_notified_at    — when an alert was last sent

An alert fires only when both windows have elapsed (or are unset); firing
re-arms both timers. A cycle without an episode resets both timers, so the
next qualifying cycle is always a new incident and alerts immediately.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional

from dustalert.ingestion.readings import POLLUTANTS

logger = logging.getLogger(__name__)


@dataclass
class CooldownState:
    """Cooldown timers for one pollutant type."""
    incident_started_at: Optional[datetime] = None
    last_notified_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.incident_started_at is not None

    def reset(self) -> None:
        self.incident_started_at = None
        self.last_notified_at = None


def _elapsed(since: Optional[datetime], window: timedelta, now: datetime) -> bool:
    return since is None or now >= since + window


class CooldownTracker:
    """
    Owns the CooldownState of every pollutant type.

    State is only changed through evaluate(), which performs the
    read-check-write for one pollutant under that pollutant's lock.
    """

    def __init__(
        self,
        incident_window: timedelta,
        notification_window: timedelta,
        pollutants: Iterable[str] = POLLUTANTS,
    ):
        self.incident_window = incident_window
        self.notification_window = notification_window
        self._states: Dict[str, CooldownState] = {p: CooldownState() for p in pollutants}
        self._locks: Dict[str, threading.Lock] = {p: threading.Lock() for p in self._states}

    def evaluate(self, pollutant: str, episode: bool, now: datetime) -> bool:
        """
        Decide whether an alert for `pollutant` may be sent now.

        Args:
            pollutant: Pollutant type, e.g. "PM10".
            episode: Whether this cycle found a qualifying group of sensors.
            now: Current time.

        Returns:
            True when the caller should send an alert. The timers have
            already been re-armed when this returns True.
        """
        with self._locks[pollutant]:
            state = self._states[pollutant]

            if not episode:
                if state.is_active:
                    logger.info("%s episode over — cooldown reset", pollutant)
                state.reset()
                return False

            if (
                _elapsed(state.incident_started_at, self.incident_window, now)
                and _elapsed(state.last_notified_at, self.notification_window, now)
            ):
                state.incident_started_at = now
                state.last_notified_at = now
                return True

            logger.debug(
                "%s alert suppressed: incident_started_at=%s last_notified_at=%s",
                pollutant, state.incident_started_at, state.last_notified_at,
            )
            return False

    def state(self, pollutant: str) -> CooldownState:
        """Copy of the current state for `pollutant`."""
        with self._locks[pollutant]:
            return replace(self._states[pollutant])
