"""Error taxonomy for conversation turns."""


class AgentError(Exception):
    """Base class for turn processing errors."""

    error_code = "CONVERSATION_FAILED"


class SessionNotFoundError(AgentError):
    """The requested session id is unknown to the store."""

    error_code = "SESSION_NOT_FOUND"


class InvalidSessionStateError(AgentError):
    """The session cannot take a turn (already completed, or missing goal on create)."""

    error_code = "INVALID_SESSION_STATE"


class ModelCallError(AgentError):
    """The language model could not be reached or returned an API error."""


class PersistenceFailureError(AgentError):
    """The turn could not be committed."""


class StoreError(Exception):
    """Raised by stores when a write fails."""


class TransientStoreError(StoreError):
    """A write failed for a reason worth retrying (locked or busy database)."""
