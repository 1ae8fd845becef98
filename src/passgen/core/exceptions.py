"""
Passgen Exception Classes
"""


class PassgenError(Exception):
    """Base exception for passgen operations"""
    pass


class ValidationError(PassgenError, ValueError):
    """Raised when password options or identifiers are invalid"""
    pass


class GenerationTimeout(PassgenError, TimeoutError):
    """Raised when password generation exceeds its time bound"""

    def __init__(self, message: str, identifier: str = None):
        super().__init__(message)
        self.identifier = identifier


class LockTimeout(GenerationTimeout):
    """Raised when the legacy migration lock cannot be acquired in time"""
    pass


class BackendError(PassgenError):
    """Raised when a key/value backend operation fails"""
    pass


class ConfigurationError(BackendError):
    """Raised when the key/value backend configuration is invalid"""
    pass
