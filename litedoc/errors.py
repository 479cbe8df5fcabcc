"""
Exception hierarchy for litedoc.

Configuration errors are fatal at registration time, translation errors are
raised per call before the store is touched, store errors wrap whatever the
embedded engine or the filesystem raised, and lookup errors flag a model name
that nothing registered.
"""


class LitedocError(Exception):
    """Base exception for all litedoc errors"""


class ConfigurationError(LitedocError):
    """Invalid connection or model configuration"""


class IdentityMissingError(ConfigurationError):
    """Connection config carries no identity"""

    def __init__(self):
        super().__init__("Connection is missing an identity")


class IdentityDuplicateError(ConfigurationError):
    """A connection with this identity is already registered"""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Connection '{identity}' is already registered")


class DuplicateModelError(ConfigurationError):
    """A model name was registered twice on one connection"""

    def __init__(self, model_name: str):
        self.model_name = model_name
        super().__init__(f"Model '{model_name}' is already registered")


class TranslationError(LitedocError, ValueError):
    """Criteria could not be translated into a native query"""


class StoreError(LitedocError):
    """The embedded store failed to carry out an operation"""


class UniqueConstraintError(StoreError):
    """A write or index build violated a unique constraint"""


class ConnectionFailedError(StoreError):
    """One or more model stores could not be opened"""

    def __init__(self, identity: str, original: BaseException):
        self.identity = identity
        self.original_error = original
        super().__init__(
            f"Failed to open stores for connection '{identity}'. "
            f"Is db_path properly configured? Error details: {original!r}"
        )


class UnknownModelError(LitedocError, LookupError):
    """A connection or model name that is not registered"""

    def __init__(self, name: str, kind: str = "Model"):
        self.name = name
        super().__init__(f"{kind} '{name}' is not registered")
