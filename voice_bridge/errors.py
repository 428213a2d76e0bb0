"""Exception types raised by the Voice Bridge core.

Every error carries an ``error_type`` string so callers (logging, the tool
loop) can categorize it without isinstance chains.
"""


class VoiceBridgeError(Exception):
    """Base error for all failures local to one request."""

    error_type = "error"

    def __init__(self, message: str, error_type: str = None):
        super().__init__(message)
        if error_type:
            self.error_type = error_type


class ValidationError(VoiceBridgeError):
    """Missing or malformed input."""

    error_type = "validation_error"


class NotFoundError(VoiceBridgeError):
    """Entity unknown to the hub."""

    error_type = "not_found"


class RemoteError(VoiceBridgeError):
    """Non-success response from the hub."""

    error_type = "remote_error"

    def __init__(self, status: int, body: str = "", message: str = None):
        self.status = status
        self.body = body
        if message is None:
            message = f"Hub request failed: {status}"
            if body:
                message = f"{message} - {body}"
        super().__init__(message)


class HubTimeoutError(RemoteError):
    """Hub request exceeded the configured timeout."""

    error_type = "timeout"

    def __init__(self, timeout: float, path: str = ""):
        super().__init__(
            0, "", message=f"Hub request to '{path}' timed out after {timeout:.1f}s"
        )
        self.timeout = timeout


class UnknownToolError(VoiceBridgeError):
    """A tool name outside the catalog was requested."""

    error_type = "unknown_tool"


class ToolLoopLimitError(VoiceBridgeError):
    """The model kept requesting tools past the round ceiling."""

    error_type = "tool_loop_limit"


class LLMError(VoiceBridgeError):
    """Model API failure, categorized like quota vs. generic errors."""

    error_type = "api_error"
