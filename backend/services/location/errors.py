"""
Run-level errors for the nearby-locations pipeline.

Only failures that end a run are raised. Per-record geocode failures and
cache I/O problems are logged and degraded inside the services.
"""


class NearbyError(Exception):
    """Base class. user_message is safe to show to the end user."""

    user_message = "Something went wrong"

    def __init__(self, user_message: str = None, detail: str = None):
        self.user_message = user_message or self.user_message
        super().__init__(detail or self.user_message)


class LocationUnavailableError(NearbyError):
    user_message = "Could not determine your current location"


class NoValidLocationsError(NearbyError):
    user_message = "No valid locations found in CSV"
