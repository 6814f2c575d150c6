"""
scrollsense/errors.py
Exception types shared across the pipeline.

Neither of these ever reaches the host process: loaders and writers catch
them, log, and carry on in a degraded mode.
"""


class ConfigLoadError(Exception):
    """A keyword, veto, or config resource is missing or malformed."""

    def __init__(self, path, reason: str):
        self.path   = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class PersistenceFailure(Exception):
    """A write or read against the session/feedback store failed."""
