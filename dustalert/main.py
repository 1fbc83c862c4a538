"""
DustAlert — Pipeline Main Entry Point

Every poll interval (APScheduler, one firing at a time):
  1. List sensor ids (configured + optional area discovery)
  2. Fetch every sensor concurrently and predict PM10 / PM2.5 levels
  3. Per pollutant: rank sensors above the threshold
  4. Per pollutant: pass the cooldown gate
  5. Per pollutant: compose the alert and hand it to the transport

A failure inside one firing is logged and never stops the schedule.
"""

import logging
import signal
import sys
import time
from datetime import datetime, timezone
from functools import partial
from typing import Callable, List, Optional

from dustalert.alerts.composer import Alert, compose
from dustalert.alerts.transport import AlertTransport, AlertTransportError, build_transport
from dustalert.config import Settings, load_settings
from dustalert.cooldown.tracker import CooldownTracker
from dustalert.ingestion.aggregator import FetchOne, fetch_all, fetch_sensor_reading
from dustalert.ingestion.readings import POLLUTANTS, SensorReading
from dustalert.ingestion.sensor_directory import SensorDirectoryError, list_sensor_ids
from dustalert.rules.ranker import is_episode, rank

logger = logging.getLogger("dustalert.main")

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertPipeline:
    """
    One instance per process. Owns the cooldown state, so alerts are
    rate-limited for as long as the process lives.
    """

    def __init__(
        self,
        settings: Settings,
        transport: AlertTransport,
        list_sensors: Optional[Callable[[], list]] = None,
        fetch_one: Optional[FetchOne] = None,
        clock: Clock = _utcnow,
    ):
        self.settings = settings
        self.transport = transport
        self.tracker = CooldownTracker(settings.incident_window, settings.notification_window)
        self.list_sensors = list_sensors or partial(list_sensor_ids, settings)
        self.fetch_one = fetch_one or partial(fetch_sensor_reading, timeout=settings.request_timeout)
        self.clock = clock

    def check(self, readings: List[SensorReading], now: datetime) -> List[Alert]:
        """Rank, gate and send per pollutant. Returns the alerts attempted."""
        sent = []
        for pollutant in POLLUTANTS:
            try:
                alert = self._check_pollutant(readings, pollutant, now)
            except Exception:
                logger.exception("%s check failed", pollutant)
                continue
            if alert is not None:
                sent.append(alert)
        return sent

    def _check_pollutant(self, readings: List[SensorReading], pollutant: str,
                         now: datetime) -> Optional[Alert]:
        ranked = rank(readings, pollutant, self.settings.thresholds[pollutant])
        episode = is_episode(ranked, self.settings.sensor_limit)
        if episode:
            logger.debug(
                "%s above %.0f: %s", pollutant, self.settings.thresholds[pollutant],
                [(r.sensor_id, r.value_for(pollutant)) for r in ranked],
            )
        if not self.tracker.evaluate(pollutant, episode, now):
            return None

        alert = compose(
            ranked,
            pollutant,
            self.settings.region_name,
            language=self.settings.language,
            resolve_name=self.settings.sensor_name,
            now=now,
        )
        self._send(alert)
        return alert

    def _send(self, alert: Alert) -> None:
        try:
            self.transport.send(alert.text)
        except AlertTransportError as exc:
            logger.error("Failed to send %s alert via %s: %s", alert.pollutant, self.transport.name, exc)
            return
        logger.info("%s alert sent via %s", alert.pollutant, self.transport.name)

    def run_cycle(self, now: Optional[datetime] = None) -> List[Alert]:
        """
        Run one firing of the pipeline. Never raises.

        Returns:
            Alerts handed to the transport during this firing.
        """
        logger.info("── Poll cycle starting ──")
        try:
            try:
                sensor_ids = self.list_sensors()
            except SensorDirectoryError as exc:
                logger.warning("Sensor directory unavailable, skipping cycle: %s", exc)
                return []

            readings = fetch_all(sensor_ids, self.fetch_one, self.settings.max_workers)
            alerts = self.check(readings, now or self.clock())
        except Exception:
            logger.exception("Poll cycle failed")
            return []
        logger.info("── Poll cycle complete — %d alert(s) ──", len(alerts))
        return alerts


# ── Main entry point ──────────────────────────────────────────────────────────

_running = True


def _shutdown(sig, frame):
    global _running
    logger.info("Shutdown signal (%s) — stopping scheduler.", sig)
    _running = False


def main() -> None:
    from apscheduler.schedulers.background import BackgroundScheduler

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [DUSTALERT] %(levelname)s %(name)s — %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stdout,
    )

    settings = load_settings()
    logging.getLogger().setLevel(settings.log_level)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    pipeline = AlertPipeline(settings, build_transport(settings))

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        func=pipeline.run_cycle,
        trigger="interval",
        seconds=settings.poll_interval.total_seconds(),
        next_run_time=datetime.now(timezone.utc),  # run immediately on start
        id="sensor_poll",
        name="Sensor Poll",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(
        "Scheduler started — polling %d configured sensors every %.0fs (region=%s)",
        len(settings.sensors), settings.poll_interval.total_seconds(), settings.region_name,
    )

    try:
        while _running:
            time.sleep(1)
    finally:
        logger.info("Stopping scheduler…")
        scheduler.shutdown(wait=False)
        logger.info("DustAlert stopped cleanly.")


if __name__ == "__main__":
    main()
