class SquishError(Exception):
    """Base class for every error raised by the shortener core."""


class InvalidInput(SquishError):
    def __init__(self, raw_input: str, reason: str):
        self.raw_input = raw_input
        self.reason = reason
        self.message = f"Invalid URL '{raw_input}': {reason}"
        super().__init__(self.message)


class NotFound(SquishError):
    def __init__(self, record_type: str, identifier: str):
        self.record_type = record_type
        self.identifier = identifier
        self.message = f"{record_type} not found for identifier: {identifier}"
        super().__init__(self.message)


class StorageError(SquishError):
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        self.message = f"Storage operation '{operation}' failed: {details}"
        super().__init__(self.message)


class AliasConflict(StorageError):
    """Raised when an insert loses the race for an alias to another writer."""

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__("insert", f"alias '{alias}' is already taken")


class ExhaustedKeyspace(SquishError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        self.message = f"No free alias found after {attempts} attempts"
        super().__init__(self.message)


class InfraError(SquishError):
    """Unrecoverable startup failure. The process must not keep running."""

    def __init__(self, details: str):
        self.details = details
        self.message = f"Startup failed: {details}"
        super().__init__(self.message)
