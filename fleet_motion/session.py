"""Session controller: runs one MotionClassifier per monitoring session for a
service, seeds it from the store, persists the final reading and raises the
mileage-limit notification.

Sensor callbacks may arrive on any thread; `on_sample` serializes them with a
lock so the classifier only ever sees one sample at a time, in arrival order.
Marking a service as monitored happens under the lock; the final reading,
notifications and listener callbacks happen after it is released.
"""

import logging
import threading
from typing import Callable, List, Optional

from fleet_motion.errors import StoreError
from fleet_motion.motion_classifier.classifier import MotionClassifier, monotonic_ms
from fleet_motion.motion_classifier.types import ClassificationEvent, FinalReading
from fleet_motion.remote_config import ThresholdProvider
from fleet_motion.store import ServiceReading, ServiceStore

logger = logging.getLogger(__name__)

DEFAULT_BROADCAST_INTERVAL_MS = 500
DEFAULT_NOTIFICATION_COOLDOWN_MS = 30 * 60 * 1000

Listener = Callable[[str, ClassificationEvent], None]
Notifier = Callable[[str, FinalReading], None]


class MonitoringSession:
    def __init__(
        self,
        store: ServiceStore,
        thresholds: ThresholdProvider = None,
        notifier: Notifier = None,
        user_id: str = "",
        clock: Callable[[], int] = None,
        broadcast_interval_ms: int = DEFAULT_BROADCAST_INTERVAL_MS,
        notification_cooldown_ms: int = DEFAULT_NOTIFICATION_COOLDOWN_MS,
    ):
        self.store = store
        self.thresholds = thresholds or ThresholdProvider()
        self.notifier = notifier
        self.user_id = user_id
        self.broadcast_interval_ms = broadcast_interval_ms
        self.notification_cooldown_ms = notification_cooldown_ms
        self._clock = clock or monotonic_ms

        self._lock = threading.Lock()
        self._listeners: List[Listener] = []
        self.classifier: Optional[MotionClassifier] = None
        self.service_id: Optional[str] = None
        self.vehicle_id: Optional[str] = None
        self._last_broadcast_ms: Optional[int] = None
        self._last_notification_ms: Optional[int] = None

    # ── State ─────────────────────────────────────────────────────────────

    @property
    def is_monitoring(self) -> bool:
        return self.classifier is not None and self.classifier.is_monitoring

    @property
    def total_movement(self) -> float:
        return self.classifier.total_movement if self.classifier is not None else 0.0

    def add_listener(self, listener: Listener):
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def start(self, service_id: str, vehicle_id: str = None) -> bool:
        """Start monitoring a service. Returns False if a session is already running.

        The stored running total and mileage limit are read before the first
        sample is accepted, so accumulation never restarts from zero.
        Raises ServiceNotFoundError for unknown services.
        """
        with self._lock:
            if self.is_monitoring:
                logger.warning("Already monitoring service %s; start(%s) ignored",
                               self.service_id, service_id)
                return False

            service = self.store.get_service(service_id)
            cfg = self.thresholds.motion_config(mileage_limit=service.mileage_limit)

            # Mark the service before any sample can reach the limit and stop it
            try:
                self.store.start_monitoring(service_id)
            except StoreError as e:
                logger.error("Could not mark service %s as monitoring: %s", service_id, e)

            classifier = MotionClassifier(clock=self._clock)
            classifier.start(seed_total=service.total_movement, config=cfg)

            self.classifier = classifier
            self.service_id = service_id
            self.vehicle_id = vehicle_id or service.vehicle_id
            self._last_broadcast_ms = None

        logger.info("Monitoring started for service %s (vehicle %s): seed=%.3f limit=%.3f",
                    service_id, self.vehicle_id, service.total_movement, cfg.mileage_limit)
        return True

    def stop(self) -> Optional[FinalReading]:
        """Stop the running session and persist its reading. None if idle."""
        with self._lock:
            if not self.is_monitoring:
                return None
            reading = self.classifier.stop()
            service_id = self.service_id

        self._finish(service_id, reading)
        return reading

    def reset(self, service_id: str):
        """Zero the accumulated movement of a service, live and stored."""
        with self._lock:
            live = self.classifier is not None and self.service_id == service_id
            if live:
                self.classifier.reset()
            still_monitoring = live and self.classifier.is_monitoring

        self.store.reset_readings(service_id)
        if still_monitoring:
            self.store.start_monitoring(service_id)

    # ── Sample path ───────────────────────────────────────────────────────

    def on_sample(self, x: float, y: float, z: float,
                  timestamp_ms: int = None) -> Optional[ClassificationEvent]:
        """Feed one accelerometer sample. Late samples after stop are ignored."""
        if timestamp_ms is None:
            timestamp_ms = self._clock()

        with self._lock:
            if self.classifier is None:
                return None
            event = self.classifier.ingest_xyz(x, y, z, timestamp_ms)
            if event is None:
                return None
            service_id = self.service_id

            broadcast = event.limit_reached or (
                self._last_broadcast_ms is None
                or timestamp_ms - self._last_broadcast_ms > self.broadcast_interval_ms
            )
            if broadcast:
                self._last_broadcast_ms = timestamp_ms

        if event.limit_reached:
            logger.info("Mileage limit reached for service %s: total=%.3f",
                        service_id, event.total_movement)
            self._finish(service_id, event.final_reading)
            self._notify_limit(service_id, event.final_reading)

        if broadcast:
            self._dispatch(service_id, event)
        return event

    # ── Side effects ──────────────────────────────────────────────────────

    def _finish(self, service_id: str, reading: FinalReading):
        if reading.total_movement > 0 or reading.limit_reached:
            try:
                self.store.add_reading(ServiceReading(
                    service_id=service_id,
                    user_id=self.user_id,
                    total_movement=reading.total_movement,
                    duration_ms=reading.duration_ms,
                    is_vehicle_movement=reading.is_vehicle_movement,
                    is_completed=True,
                ))
            except StoreError as e:
                logger.error("Could not save final reading for service %s (total=%.3f): %s",
                             service_id, reading.total_movement, e)
        try:
            self.store.stop_monitoring(service_id)
        except StoreError as e:
            logger.error("Could not mark service %s as stopped: %s", service_id, e)
        logger.info("Monitoring stopped for service %s: total=%.3f duration=%dms",
                    service_id, reading.total_movement, reading.duration_ms)

    def _notify_limit(self, service_id: str, reading: FinalReading):
        if self.notifier is None:
            return
        now = self._clock()
        if (self._last_notification_ms is not None
                and now - self._last_notification_ms < self.notification_cooldown_ms):
            logger.debug("Mileage notification for %s suppressed by cooldown", service_id)
            return
        self._last_notification_ms = now
        try:
            self.notifier(service_id, reading)
        except Exception:
            logger.exception("Mileage notifier failed for service %s", service_id)

    def _dispatch(self, service_id: str, event: ClassificationEvent):
        for listener in list(self._listeners):
            try:
                listener(service_id, event)
            except Exception:
                logger.exception("Listener %r failed", listener)
