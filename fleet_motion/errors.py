"""Exception hierarchy for fleet_motion.

The classifier itself never raises; these cover the store, the session
controller and the offline tools.
"""


class FleetMotionError(Exception):
    """Base class for all fleet_motion errors."""


class StoreError(FleetMotionError):
    """A service store read or write failed."""


class ServiceNotFoundError(StoreError):
    def __init__(self, service_id: str):
        super().__init__(f"Service not found: {service_id}")
        self.service_id = service_id


class SampleLogError(FleetMotionError):
    """A sample log could not be read or is missing required columns."""
