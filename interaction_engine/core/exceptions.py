"""
Drug Interaction Engine - Error Types
"""


class InteractionEngineError(Exception):
    """Base class for engine errors"""


class ExternalUnavailable(InteractionEngineError):
    """An external terminology or interaction service call failed or timed out"""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")


class InvalidOverlayRecord(InteractionEngineError, ValueError):
    """A curated interaction record is malformed (e.g. drugs is not a two-name pair)"""
