class BuildTrackerError(Exception):
    """Base exception for the build tracker.

    status_code is the HTTP status the API layer reports for this error.
    """

    status_code: int = 500

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class InvalidStatusError(BuildTrackerError):
    """Raised when a status is outside the allowed set."""

    status_code = 400

    def __init__(self, status: str, allowed: tuple[str, ...]):
        self.status = status
        self.allowed = allowed
        super().__init__(f"Invalid status '{status}'. Allowed: {', '.join(allowed)}")


class ItemNotFoundError(BuildTrackerError):
    """Raised when an item id does not exist in a drone's build tree."""

    status_code = 404

    def __init__(self, serial: str, item_id: str):
        self.serial = serial
        self.item_id = item_id
        super().__init__(f"Item '{item_id}' not found on drone '{serial}'")


class DroneNotFoundError(BuildTrackerError):
    """Raised when no drone is registered under a serial."""

    status_code = 404

    def __init__(self, serial: str):
        self.serial = serial
        super().__init__(f"Drone '{serial}' not found")


class DroneAlreadyExistsError(BuildTrackerError):
    """Raised when registering a serial that is already taken."""

    status_code = 409

    def __init__(self, serial: str):
        self.serial = serial
        super().__init__(f"Drone with serial '{serial}' already exists")


class DroneBusyError(BuildTrackerError):
    """Raised when the per-drone write lock could not be acquired in time."""

    status_code = 409

    def __init__(self, serial: str, waited: float):
        self.serial = serial
        self.waited = waited
        super().__init__(f"Drone '{serial}' is busy; lock not acquired within {waited}s")


class PersistenceError(BuildTrackerError):
    """Raised when a storage write fails mid-transition."""

    status_code = 503

    pass


class NotificationError(BuildTrackerError):
    """Raised when a notification could not be delivered. Never surfaces to API callers."""

    pass


class WeightModelError(BuildTrackerError):
    """Raised when a weight model document is malformed."""

    pass
