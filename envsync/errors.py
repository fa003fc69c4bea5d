"""Exception hierarchy for the comparison and sync engine.

Everything inherits from SyncError so callers can catch application-level
failures in one place. Fetch-phase errors abort a compare run; sync-phase
errors are collected per key and surfaced together as SyncBatchError.
"""


class SyncError(Exception):
    """Base exception for all envsync errors."""
    pass


class ConfigurationError(SyncError):
    """Raised when a store's domain or access token is not configured."""
    pass


class FetchError(SyncError):
    """Raised when a query against a store fails at transport or API level."""

    def __init__(self, environment, entity_type, message: str):
        super().__init__(f"Fetching {entity_type.value} from {environment.value} failed: {message}")
        self.environment = environment
        self.entity_type = entity_type


class WriteError(SyncError):
    """Raised when a mutation against a store fails at transport or API level."""

    def __init__(self, environment, entity_type, message: str):
        super().__init__(f"Writing {entity_type.value} to {environment.value} failed: {message}")
        self.environment = environment
        self.entity_type = entity_type


class DetailFetchError(SyncError):
    """Raised when the detail record for one key cannot be fetched during comparison."""

    def __init__(self, key: str, environment, cause: Exception | str):
        super().__init__(f"Could not fetch details of {key} from {environment.value}: {cause}")
        self.key = key
        self.environment = environment
        self.cause = cause


class NotFoundError(SyncError):
    """Raised when a sync is requested for a key with no id on the source side."""

    def __init__(self, key: str, environment):
        super().__init__(f"{key} not found in {environment.value}")
        self.key = key
        self.environment = environment


class DependencyUnresolvedError(SyncError):
    """Raised when referenced entities have no id in the target environment."""

    def __init__(self, key: str, environment, missing: list[str]):
        super().__init__(
            f"{key} depends on {', '.join(missing)} which {'is' if len(missing) == 1 else 'are'} "
            f"not in {environment.value}"
        )
        self.key = key
        self.environment = environment
        self.missing = list(missing)


class ValidationError(SyncError):
    """Raised when a mutation comes back with user errors."""

    def __init__(self, key: str, user_errors: list[dict]):
        super().__init__("; ".join(e.get("message", "") for e in user_errors) or "Unknown validation error")
        self.key = key
        self.user_errors = list(user_errors)


class TransientWriteError(SyncError):
    """Throttled or unavailable store during a mutation; safe to retry."""
    pass


class SyncBatchError(SyncError):
    """Raised after a sync run in which at least one key failed."""

    def __init__(self, result):
        super().__init__(result.summary())
        self.result = result
