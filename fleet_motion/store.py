"""Durable storage for services and their session readings.

`ServiceStore` defines the operations the session controller and reporting
need. `InMemoryServiceStore` keeps everything in dicts; `JsonServiceStore`
additionally writes the whole state to a JSON file after every change.

A reading's `total_movement` is the service's absolute running total at the
end of the session (sessions are seeded from the stored total), so adding a
reading sets the service total rather than adding to it.
"""

import json
import logging
import os
import tempfile
import threading
import time
import uuid
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Callable, List, Optional

from fleet_motion.errors import ServiceNotFoundError, StoreError
from fleet_motion.motion_classifier.config import DEFAULT_MILEAGE_LIMIT

logger = logging.getLogger(__name__)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class ServiceStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


@dataclass
class ServiceRecord:
    id: str
    vehicle_ids: list = field(default_factory=list)
    name: str = ""
    status: ServiceStatus = ServiceStatus.ACTIVE
    total_movement: float = 0.0
    is_monitoring: bool = False
    last_reading_time: int = 0
    mileage_limit: float = DEFAULT_MILEAGE_LIMIT

    @property
    def vehicle_id(self) -> str:
        return self.vehicle_ids[0] if self.vehicle_ids else ""

    def to_dict(self) -> dict:
        d = asdict(self)
        d["status"] = self.status.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "ServiceRecord":
        d = dict(d)
        d["status"] = ServiceStatus(d.get("status", ServiceStatus.ACTIVE.value))
        return cls(**d)


@dataclass
class ServiceReading:
    service_id: str
    total_movement: float = 0.0
    duration_ms: int = 0
    is_vehicle_movement: bool = False
    is_completed: bool = False
    user_id: str = ""
    timestamp: int = 0
    id: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "ServiceReading":
        return cls(**d)


@dataclass
class ServiceStatusSummary:
    service_id: str
    total_readings: int
    total_movement: float
    average_movement: float
    is_monitoring: bool
    last_reading_time: int
    is_mileage_exceeded: bool


def mileage_risk(total_movement: float, average_movement: float) -> str:
    if total_movement > 15000:
        return "HIGH"
    if total_movement > 10000:
        return "MEDIUM"
    if average_movement > 100:
        return "LOW"
    return "MINIMAL"


class ServiceStore:
    """Storage interface. Subclasses implement the record-level primitives."""

    def __init__(self, clock: Callable[[], int] = None):
        self._clock = clock or _wall_clock_ms

    # ── Primitives ────────────────────────────────────────────────────────

    def create_service(self, service: ServiceRecord) -> ServiceRecord:
        raise NotImplementedError

    def get_service(self, service_id: str) -> ServiceRecord:
        """Return the service or raise ServiceNotFoundError."""
        raise NotImplementedError

    def update_service(self, service: ServiceRecord) -> ServiceRecord:
        raise NotImplementedError

    def list_services(self) -> List[ServiceRecord]:
        raise NotImplementedError

    def add_reading(self, reading: ServiceReading) -> ServiceReading:
        raise NotImplementedError

    def get_readings(self, service_id: str) -> List[ServiceReading]:
        """Readings for a service, newest first."""
        raise NotImplementedError

    def reset_readings(self, service_id: str) -> None:
        raise NotImplementedError

    def delete_service(self, service_id: str) -> None:
        """Remove a service and all of its readings."""
        raise NotImplementedError

    def services_for_vehicle(self, vehicle_id: str) -> List[ServiceRecord]:
        return [s for s in self.list_services() if vehicle_id in s.vehicle_ids]

    # ── Monitoring flags ──────────────────────────────────────────────────

    def start_monitoring(self, service_id: str) -> ServiceRecord:
        service = self.get_service(service_id)
        return self.update_service(replace(
            service,
            is_monitoring=True,
            status=ServiceStatus.ACTIVE,
            last_reading_time=self._clock(),
        ))

    def stop_monitoring(self, service_id: str) -> ServiceRecord:
        service = self.get_service(service_id)
        return self.update_service(replace(
            service, is_monitoring=False, status=ServiceStatus.COMPLETED,
        ))

    def active_service_for_vehicle(self, vehicle_id: str) -> Optional[ServiceRecord]:
        for service in self.services_for_vehicle(vehicle_id):
            if service.is_monitoring:
                return service
        return None

    # ── Reporting ─────────────────────────────────────────────────────────

    def check_mileage_status(self, service_id: str) -> bool:
        """True when the service's running total has reached its limit."""
        service = self.get_service(service_id)
        return service.mileage_limit > 0 and service.total_movement >= service.mileage_limit

    def status_summary(self, service_id: str) -> ServiceStatusSummary:
        service = self.get_service(service_id)
        readings = self.get_readings(service_id)
        n = len(readings)
        average = sum(r.total_movement for r in readings) / n if n else 0.0
        return ServiceStatusSummary(
            service_id=service_id,
            total_readings=n,
            total_movement=service.total_movement,
            average_movement=average,
            is_monitoring=service.is_monitoring,
            last_reading_time=max((r.timestamp for r in readings), default=0),
            is_mileage_exceeded=self.check_mileage_status(service_id),
        )

    def analytics(self, service_id: str) -> dict:
        service = self.get_service(service_id)
        readings = self.get_readings(service_id)
        totals = [r.total_movement for r in readings]
        timestamps = [r.timestamp for r in readings]
        average = sum(totals) / len(totals) if totals else 0.0
        span_ms = max(timestamps) - min(timestamps) if timestamps else 0

        readings_per_hour = 0.0
        if len(readings) >= 2 and span_ms > 0:
            readings_per_hour = len(readings) / (span_ms / 3_600_000)

        return {
            "total_readings": len(readings),
            "total_movement": service.total_movement,
            "average_movement": average,
            "max_movement": max(totals, default=0.0),
            "min_movement": min(totals, default=0.0),
            "duration": span_ms,
            "readings_per_hour": readings_per_hour,
            "mileage_risk": mileage_risk(service.total_movement, average),
        }

    def export(self, service_id: str) -> str:
        """JSON document with the service, its readings and an export timestamp."""
        service = self.get_service(service_id)
        readings = self.get_readings(service_id)
        return json.dumps({
            "service": service.to_dict(),
            "readings": [r.to_dict() for r in readings],
            "export_date": self._clock(),
            "total_readings": len(readings),
        }, indent=2)


class InMemoryServiceStore(ServiceStore):
    def __init__(self, clock: Callable[[], int] = None):
        super().__init__(clock)
        self._lock = threading.RLock()
        self._services = {}
        self._readings = []

    def _flush(self):
        """Hook for persistent subclasses; called with the lock held after each change."""

    def _snapshot(self):
        return dict(self._services), list(self._readings)

    def _commit(self, snapshot):
        """Flush, restoring the pre-change state if the write fails."""
        try:
            self._flush()
        except StoreError:
            self._services, self._readings = snapshot
            raise

    def create_service(self, service: ServiceRecord) -> ServiceRecord:
        with self._lock:
            if not service.id:
                service = replace(service, id=uuid.uuid4().hex)
            if service.id in self._services:
                raise StoreError(f"Service already exists: {service.id}")
            snapshot = self._snapshot()
            self._services[service.id] = service
            self._commit(snapshot)
            return service

    def get_service(self, service_id: str) -> ServiceRecord:
        with self._lock:
            try:
                return self._services[service_id]
            except KeyError:
                raise ServiceNotFoundError(service_id) from None

    def update_service(self, service: ServiceRecord) -> ServiceRecord:
        with self._lock:
            if service.id not in self._services:
                raise ServiceNotFoundError(service.id)
            snapshot = self._snapshot()
            self._services[service.id] = service
            self._commit(snapshot)
            return service

    def list_services(self) -> List[ServiceRecord]:
        with self._lock:
            return list(self._services.values())

    def add_reading(self, reading: ServiceReading) -> ServiceReading:
        with self._lock:
            service = self.get_service(reading.service_id)
            reading = replace(
                reading,
                id=reading.id or uuid.uuid4().hex,
                timestamp=reading.timestamp or self._clock(),
            )
            snapshot = self._snapshot()
            self._readings.append(reading)
            self._services[service.id] = replace(
                service,
                total_movement=reading.total_movement,
                last_reading_time=reading.timestamp,
            )
            self._commit(snapshot)
            logger.debug("Reading %s stored for service %s: total=%.3f",
                         reading.id, reading.service_id, reading.total_movement)
            return reading

    def get_readings(self, service_id: str) -> List[ServiceReading]:
        with self._lock:
            readings = [r for r in self._readings if r.service_id == service_id]
        return sorted(readings, key=lambda r: r.timestamp, reverse=True)

    def reset_readings(self, service_id: str) -> None:
        with self._lock:
            service = self.get_service(service_id)
            snapshot = self._snapshot()
            self._readings = [r for r in self._readings if r.service_id != service_id]
            self._services[service_id] = replace(
                service,
                total_movement=0.0,
                status=ServiceStatus.ACTIVE,
                is_monitoring=False,
            )
            self._commit(snapshot)
            logger.info("Readings reset for service %s", service_id)

    def delete_service(self, service_id: str) -> None:
        with self._lock:
            self.get_service(service_id)
            snapshot = self._snapshot()
            del self._services[service_id]
            self._readings = [r for r in self._readings if r.service_id != service_id]
            self._commit(snapshot)
            logger.info("Service %s deleted", service_id)


class JsonServiceStore(InMemoryServiceStore):
    """In-memory store mirrored to a single JSON file."""

    def __init__(self, path: str, clock: Callable[[], int] = None):
        super().__init__(clock)
        self.path = path
        if os.path.exists(path):
            self._load()

    def _load(self):
        try:
            with open(self.path) as f:
                data = json.load(f)
            self._services = {
                sid: ServiceRecord.from_dict(d)
                for sid, d in data.get("services", {}).items()
            }
            self._readings = [ServiceReading.from_dict(d) for d in data.get("readings", [])]
        except (OSError, ValueError, TypeError) as e:
            raise StoreError(f"Could not load store from {self.path}: {e}") from e

    def _flush(self):
        data = {
            "services": {sid: s.to_dict() for sid, s in self._services.items()},
            "readings": [r.to_dict() for r in self._readings],
        }
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StoreError(f"Could not write store to {self.path}: {e}") from e
