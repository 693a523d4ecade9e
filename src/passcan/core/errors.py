"""Exception types for passcan."""


class PasscanError(Exception):
    """Base exception for passcan errors."""

    pass


class LoadError(PasscanError):
    """Rule catalog could not be loaded (malformed or conflicting rules).

    Raised before any scan starts. When the failure is attributable to a
    single rule, ``rule_id`` names it and the message is prefixed with it.
    """

    def __init__(self, message: str, rule_id: str | None = None):
        self.rule_id = rule_id
        if rule_id is not None:
            message = f"rule '{rule_id}': {message}"
        super().__init__(message)


class WatchError(PasscanError):
    """The filesystem watcher failed to start or died during a session.

    Terminal for watch mode only; the last report stays valid.
    """

    pass
