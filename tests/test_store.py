import json

import pytest
from fleet_motion.errors import ServiceNotFoundError, StoreError
from fleet_motion.store import (
    InMemoryServiceStore,
    JsonServiceStore,
    ServiceReading,
    ServiceRecord,
    ServiceStatus,
    mileage_risk,
)


class FakeClock:
    def __init__(self, t: int = 1_700_000_000_000):
        self.t = t

    def __call__(self) -> int:
        return self.t


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    s = InMemoryServiceStore(clock=clock)
    s.create_service(ServiceRecord(id="svc-1", vehicle_ids=["veh-1"], name="Oil change",
                                   mileage_limit=1000.0))
    return s


class TestServices:
    def test_get_unknown_raises(self, store):
        with pytest.raises(ServiceNotFoundError):
            store.get_service("nope")

    def test_create_assigns_id(self, store):
        svc = store.create_service(ServiceRecord(id=""))
        assert svc.id
        assert store.get_service(svc.id) == svc

    def test_duplicate_create_raises(self, store):
        with pytest.raises(StoreError):
            store.create_service(ServiceRecord(id="svc-1"))

    def test_vehicle_id_is_first_vehicle(self, store):
        assert store.get_service("svc-1").vehicle_id == "veh-1"
        assert ServiceRecord(id="x").vehicle_id == ""

    def test_start_and_stop_monitoring(self, store, clock):
        svc = store.start_monitoring("svc-1")
        assert svc.is_monitoring
        assert svc.status == ServiceStatus.ACTIVE
        assert svc.last_reading_time == clock.t
        assert store.active_service_for_vehicle("veh-1").id == "svc-1"

        svc = store.stop_monitoring("svc-1")
        assert not svc.is_monitoring
        assert svc.status == ServiceStatus.COMPLETED
        assert store.active_service_for_vehicle("veh-1") is None


class TestReadings:
    def test_add_reading_sets_running_total(self, store, clock):
        r = store.add_reading(ServiceReading(service_id="svc-1", total_movement=250.0,
                                             is_completed=True))
        assert r.id
        assert r.timestamp == clock.t
        assert store.get_service("svc-1").total_movement == 250.0

        clock.t += 1000
        store.add_reading(ServiceReading(service_id="svc-1", total_movement=400.0))
        # readings carry the absolute total, not a delta
        assert store.get_service("svc-1").total_movement == 400.0

    def test_readings_newest_first(self, store, clock):
        for total in (10.0, 20.0, 30.0):
            store.add_reading(ServiceReading(service_id="svc-1", total_movement=total))
            clock.t += 1000
        assert [r.total_movement for r in store.get_readings("svc-1")] == [30.0, 20.0, 10.0]

    def test_add_reading_for_unknown_service(self, store):
        with pytest.raises(ServiceNotFoundError):
            store.add_reading(ServiceReading(service_id="nope", total_movement=1.0))

    def test_reset_readings(self, store):
        store.start_monitoring("svc-1")
        store.add_reading(ServiceReading(service_id="svc-1", total_movement=900.0))
        store.reset_readings("svc-1")
        svc = store.get_service("svc-1")
        assert svc.total_movement == 0.0
        assert svc.status == ServiceStatus.ACTIVE
        assert not svc.is_monitoring
        assert store.get_readings("svc-1") == []


class TestReporting:
    def test_mileage_status(self, store):
        assert store.check_mileage_status("svc-1") is False
        store.add_reading(ServiceReading(service_id="svc-1", total_movement=1000.0))
        assert store.check_mileage_status("svc-1") is True

    def test_status_summary(self, store, clock):
        store.add_reading(ServiceReading(service_id="svc-1", total_movement=200.0))
        clock.t += 5000
        store.add_reading(ServiceReading(service_id="svc-1", total_movement=600.0))
        summary = store.status_summary("svc-1")
        assert summary.total_readings == 2
        assert summary.total_movement == 600.0
        assert summary.average_movement == pytest.approx(400.0)
        assert summary.last_reading_time == clock.t
        assert summary.is_mileage_exceeded is False

    def test_analytics(self, store, clock):
        store.add_reading(ServiceReading(service_id="svc-1", total_movement=100.0))
        clock.t += 3_600_000
        store.add_reading(ServiceReading(service_id="svc-1", total_movement=300.0))
        a = store.analytics("svc-1")
        assert a["total_readings"] == 2
        assert a["max_movement"] == 300.0
        assert a["min_movement"] == 100.0
        assert a["duration"] == 3_600_000
        assert a["readings_per_hour"] == pytest.approx(2.0)
        assert a["mileage_risk"] == "LOW"

    def test_analytics_without_readings(self, store):
        a = store.analytics("svc-1")
        assert a["total_readings"] == 0
        assert a["readings_per_hour"] == 0.0
        assert a["mileage_risk"] == "MINIMAL"

    @pytest.mark.parametrize("total,avg,expected", [
        (20000.0, 0.0, "HIGH"),
        (12000.0, 0.0, "MEDIUM"),
        (500.0, 150.0, "LOW"),
        (500.0, 50.0, "MINIMAL"),
    ])
    def test_mileage_risk_bands(self, total, avg, expected):
        assert mileage_risk(total, avg) == expected

    def test_export_is_json(self, store):
        store.add_reading(ServiceReading(service_id="svc-1", total_movement=5.0))
        data = json.loads(store.export("svc-1"))
        assert data["service"]["id"] == "svc-1"
        assert data["service"]["status"] == "ACTIVE"
        assert data["total_readings"] == 1
        assert data["readings"][0]["total_movement"] == 5.0


class TestJsonServiceStore:
    def test_state_survives_reopen(self, tmp_path, clock):
        path = str(tmp_path / "store.json")
        s = JsonServiceStore(path, clock=clock)
        s.create_service(ServiceRecord(id="svc-1", vehicle_ids=["veh-1"], mileage_limit=500.0))
        s.add_reading(ServiceReading(service_id="svc-1", total_movement=123.5,
                                     is_vehicle_movement=True, is_completed=True))
        s.stop_monitoring("svc-1")

        reopened = JsonServiceStore(path, clock=clock)
        svc = reopened.get_service("svc-1")
        assert svc.total_movement == 123.5
        assert svc.mileage_limit == 500.0
        assert svc.status == ServiceStatus.COMPLETED
        assert svc.vehicle_ids == ["veh-1"]
        readings = reopened.get_readings("svc-1")
        assert len(readings) == 1
        assert readings[0].is_vehicle_movement

    def test_corrupt_file_raises_store_error(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json")
        with pytest.raises(StoreError):
            JsonServiceStore(str(path))

    def test_failed_write_rolls_back_and_cleans_up(self, tmp_path, clock):
        path = tmp_path / "store.json"
        s = JsonServiceStore(str(path), clock=clock)
        s.create_service(ServiceRecord(id="svc-1", mileage_limit=500.0))

        # a directory in place of the store file makes every write fail
        path.unlink()
        path.mkdir()

        with pytest.raises(StoreError):
            s.create_service(ServiceRecord(id="t"))
        with pytest.raises(ServiceNotFoundError):
            s.get_service("t")

        with pytest.raises(StoreError):
            s.add_reading(ServiceReading(service_id="svc-1", total_movement=42.0))
        assert s.get_service("svc-1").total_movement == 0.0
        assert s.get_readings("svc-1") == []

        with pytest.raises(StoreError):
            s.delete_service("svc-1")
        assert s.get_service("svc-1").id == "svc-1"

        leftovers = sorted(p.name for p in tmp_path.iterdir())
        assert leftovers == ["store.json"]


class TestVehicleLookup:
    def test_services_for_vehicle(self, store):
        store.create_service(ServiceRecord(id="svc-2", vehicle_ids=["veh-2", "veh-1"]))
        store.create_service(ServiceRecord(id="svc-3", vehicle_ids=["veh-3"]))
        assert sorted(s.id for s in store.services_for_vehicle("veh-1")) == ["svc-1", "svc-2"]
        assert store.services_for_vehicle("veh-9") == []

    def test_delete_service_removes_readings(self, store):
        store.add_reading(ServiceReading(service_id="svc-1", total_movement=10.0))
        store.delete_service("svc-1")
        with pytest.raises(ServiceNotFoundError):
            store.get_service("svc-1")
        assert store.get_readings("svc-1") == []
        assert store.services_for_vehicle("veh-1") == []

    def test_delete_unknown_service_raises(self, store):
        with pytest.raises(ServiceNotFoundError):
            store.delete_service("nope")
