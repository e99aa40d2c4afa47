from __future__ import annotations


class ConfigurationError(Exception):
    """Raised when recommendation configuration (module, tier map, flag metadata) cannot be loaded.

    Fatal for the request: no recommendation can be produced without it.
    """

    def __init__(self, message: str, *, source: str | None = None):
        super().__init__(message)
        self.message = message
        self.source = source
