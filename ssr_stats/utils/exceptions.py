"""
Custom exceptions for the stats core with caller-facing error messages.
"""

class StatsException(Exception):
    """Base exception for stats-related errors."""
    status_code = 500

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class InvalidStateError(StatsException):
    """Raised when an operation is attempted on data in the wrong state."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, f"Operation rejected: {message}")

class NotFoundError(StatsException):
    """Raised when a player, leaderboard or score does not exist."""
    status_code = 404

    def __init__(self, kind: str, identifier):
        super().__init__(
            f"{kind} '{identifier}' not found",
            f"{kind.capitalize()} '{identifier}' was not found."
        )
        self.kind = kind
        self.identifier = identifier

class StoreError(StatsException):
    """Raised when the backing store fails during an operation."""
    status_code = 503

    def __init__(self, operation: str, details: str = None):
        super().__init__(
            f"Store error during {operation}: {details}",
            "Statistics are temporarily unavailable. Please try again later."
        )
        self.operation = operation

class TokenValidationError(StatsException):
    """Raised when an upstream API payload does not have the expected shape."""
    status_code = 422

    def __init__(self, token_type: str, reason: str):
        super().__init__(
            f"Invalid {token_type} token: {reason}",
            f"Received malformed {token_type} data."
        )
        self.token_type = token_type
