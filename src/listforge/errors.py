"""Exception hierarchy for ListForge.

Configuration errors are raised synchronously while lists are being
defined (``add``/``register``/``create_list``) and indicate a programming
mistake. Runtime errors are raised by list operations. Per-document
validation failures are never raised; see ``listforge.validation``.
"""


class ListForgeError(Exception):
    """Base class for all ListForge errors."""


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigurationError(ListForgeError):
    """A list or field definition is invalid."""

    def __init__(self, message: str, list_key: str | None = None, path: str | None = None):
        super().__init__(message)
        self.list_key = list_key
        self.path = path


class UnknownFieldType(ConfigurationError):
    """A field's ``type`` option does not resolve to a registered type."""

    def __init__(self, list_key: str | None, path: str | None, type_ref: object):
        super().__init__(
            f"Unrecognised field type {type_ref!r} for path '{path}' on list '{list_key}'",
            list_key=list_key,
            path=path,
        )
        self.type_ref = type_ref


class UnresolvedReference(ConfigurationError):
    """A relationship refers to a list that has not been created."""

    def __init__(self, list_key: str, path: str, ref: str):
        super().__init__(
            f"Relationship '{path}' on list '{list_key}' refers to unknown list '{ref}'",
            list_key=list_key,
            path=path,
        )
        self.ref = ref


class ListAlreadyRegistered(ConfigurationError):
    """``register()`` was called twice, or a field was added afterwards."""

    def __init__(self, list_key: str, detail: str = "has already been registered"):
        super().__init__(f"List '{list_key}' {detail}", list_key=list_key)


class DuplicateListKey(ConfigurationError):
    """Two lists with the same key were created in one context."""

    def __init__(self, list_key: str):
        super().__init__(f"List '{list_key}' already exists", list_key=list_key)


class FieldDefinitionError(ConfigurationError):
    """A field definition is malformed (bad path, missing option, ...)."""


# =============================================================================
# Runtime errors
# =============================================================================


class ListNotRegistered(ListForgeError):
    """An operation needing the compiled model ran before ``register()``."""

    def __init__(self, list_key: str, detail: str = "has not been registered"):
        super().__init__(f"List '{list_key}' {detail}")
        self.list_key = list_key


class UnknownFilterPath(ListForgeError):
    """A filter names a path that does not resolve to a field."""

    def __init__(self, list_key: str, path: str):
        super().__init__(f"Unknown filter path '{path}' on list '{list_key}'")
        self.list_key = list_key
        self.path = path


class UniqueValueExhausted(ListForgeError):
    """No free suffixed value was found within the retry limit."""

    def __init__(self, list_key: str, path: str, value: str, attempts: int):
        super().__init__(
            f"Could not find a unique value for '{path}' on list '{list_key}' "
            f"starting from '{value}' after {attempts} attempts"
        )
        self.list_key = list_key
        self.path = path
        self.value = value
        self.attempts = attempts


class BackendError(ListForgeError):
    """Wraps an error raised by the storage driver."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class Cancelled(ListForgeError):
    """A long-running list operation was cancelled by its caller."""


class ListNotFound(ListForgeError, KeyError):
    """No list with the given key exists in the context."""

    def __init__(self, list_key: str):
        super().__init__(f"Unknown list '{list_key}'")
        self.list_key = list_key

    def __str__(self) -> str:
        return str(self.args[0])
