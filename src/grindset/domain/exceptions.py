class GrindsetError(Exception):
    """Base class for all grindset errors."""


class GrindAlreadyActiveError(GrindsetError):
    """A grind is already open for this user.

    Raised instead of silently overwriting the open grind, which would drop
    its elapsed time without a persisted record. Use ``switch_subject`` to
    close the current grind and start another.
    """

    def __init__(self, user_id: str, subject_id: str):
        super().__init__(f"User '{user_id}' is already grinding '{subject_id}'")
        self.user_id = user_id
        self.subject_id = subject_id


class RepositoryError(GrindsetError):
    """A persistence adapter failed to read or write."""


class ConfigurationError(GrindsetError):
    """The resolved configuration cannot be used (e.g. a backend missing its URL)."""
