"""Error taxonomy for the pairing engine."""


class PairingError(Exception):
    """Base class for all pairing engine errors."""


class DecodeError(PairingError):
    """A raw line could not be decoded into a Record."""

    def __init__(self, line: str, reason: str):
        super().__init__(f"cannot decode line ({reason}): {line[:200]!r}")
        self.line = line
        self.reason = reason


class StoreWriteError(PairingError):
    """Persisting one paired event failed."""


class StoreConnectionError(PairingError):
    """The event store could not be opened or its schema created."""


class WorkerFailure(PairingError):
    """A worker loop terminated on an unexpected exception."""

    def __init__(self, worker_name: str, cause: BaseException):
        super().__init__(f"{worker_name} failed: {cause!r}")
        self.worker_name = worker_name
        self.cause = cause
