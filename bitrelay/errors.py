"""Errors raised inside the relay."""


class RelayError(Exception):
    """Base error for bitrelay."""


class ConfigError(RelayError):
    """Raised when settings from the environment or command line are invalid."""


class DeliveryFailure(RelayError):
    """Raised when a frame could not be sent to one connection."""

    def __init__(self, conn_id: str, reason: str):
        super().__init__(f"send to {conn_id} failed: {reason}")
        self.conn_id = conn_id
        self.reason = reason
