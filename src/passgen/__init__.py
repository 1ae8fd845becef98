# Passgen - Generated password lifecycle management
#
# Generates passwords on first use, keeps one previous generation for
# rollback, and migrates flat-file passwords into a key/value backend.

__version__ = "0.3.0"

from .core.exceptions import (
    BackendError,
    ConfigurationError,
    GenerationTimeout,
    LockTimeout,
    PassgenError,
    ValidationError,
)
from .lifecycle import PasswordLifecycleManager
from .operations import (
    environments,
    get_password,
    list_passwords,
    passgen,
    remove_password,
    set_password,
)

__all__ = [
    "__version__",
    "passgen",
    "get_password",
    "set_password",
    "remove_password",
    "list_passwords",
    "environments",
    "PasswordLifecycleManager",
    "PassgenError",
    "ValidationError",
    "GenerationTimeout",
    "LockTimeout",
    "BackendError",
    "ConfigurationError",
]
