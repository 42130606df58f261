"""
Exceptions raised by the bracket engine.
"""


class BracketError(Exception):
    """Base class for all bracket engine errors."""
    pass


class InvalidInputError(BracketError, ValueError):
    """Input rejected before any bracket or standings work is done."""
    pass


class InconsistentStateError(BracketError, AssertionError):
    """A generator produced a link to a match that does not exist."""
    pass


class ConcurrentUpdateConflict(BracketError):
    """A versioned standings save found a newer row than the one it read."""

    def __init__(self, registration_id, expected_version, actual_version):
        self.registration_id = registration_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Standings for {registration_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
