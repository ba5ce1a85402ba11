from typing import Optional


class SprawlError(Exception):
    """Base class for errors raised while tracking or processing a scan."""


class TransportError(SprawlError):
    """
    The scanner could not be reached, answered with an error status, or
    returned a payload that does not match the expected shape.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ResultsFetchError(TransportError):
    """Transport failure of the one-shot results fetch after a completed scan."""


class ScanFailed(SprawlError):
    """The scan job itself reached the FAILED state."""

    def __init__(self, job):
        super().__init__(f"Scan {job.id} failed")
        self.job = job
