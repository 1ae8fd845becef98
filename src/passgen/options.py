"""
Password option parsing and validation.

All validation happens here, before any backend or filesystem access.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .core.config import DEFAULT_GEN_TIMEOUT_SECONDS, PassgenSettings
from .core.exceptions import ValidationError

_IDENTIFIER_RE = re.compile(r'^[a-zA-Z0-9._:/\-]+$')
_INTEGER_RE = re.compile(r'^\d+$')

BASE_OPTIONS: Dict[str, Any] = {
    "last": False,
    "length": None,
    "hash": False,
    "complexity": 0,
    "complex_only": False,
    "gen_timeout_seconds": DEFAULT_GEN_TIMEOUT_SECONDS,
}


@dataclass
class PasswordOptions:
    """Validated password options."""
    last: bool = False
    length: int = 32
    length_configured: bool = False
    hash: Union[bool, str] = False
    complexity: int = 0
    complex_only: bool = False
    gen_timeout_seconds: float = DEFAULT_GEN_TIMEOUT_SECONDS

    @property
    def metadata(self) -> Dict[str, Any]:
        """Backend metadata recorded alongside a password."""
        return {
            "complexity": self.complexity,
            "complex_only": self.complex_only,
        }


def validate_identifier(identifier: str) -> str:
    """Reject identifiers that could escape the key namespace."""
    if not isinstance(identifier, str) or not identifier:
        raise ValidationError("Identifier must be a non-empty string")
    if not _IDENTIFIER_RE.match(identifier):
        raise ValidationError(
            f"Identifier '{identifier}' contains disallowed characters"
        )
    if "/./" in identifier or "/../" in identifier:
        raise ValidationError(
            f"Identifier '{identifier}' contains '/./' or '/../' sequences"
        )
    # Dot-names are reserved for bookkeeping files such as the migration lock
    if any(segment.startswith(".") for segment in identifier.split("/")):
        raise ValidationError(
            f"Identifier '{identifier}' has a path segment starting with '.'"
        )
    return identifier


def _as_int(value: Any, label: str) -> int:
    if isinstance(value, bool) or not _INTEGER_RE.match(str(value)):
        raise ValidationError(f"{label} '{value}' must be an integer!")
    return int(value)


def build_options(
    password_options: Optional[Dict[str, Any]] = None,
    settings: Optional[PassgenSettings] = None,
) -> PasswordOptions:
    """Merge caller options over the defaults and validate them.

    ``length_configured`` records whether the caller passed ``length`` at
    all; only an explicit length may trigger rotation of an existing
    password.
    """
    settings = settings or PassgenSettings()
    password_options = dict(password_options or {})

    unknown = set(password_options) - set(BASE_OPTIONS)
    if unknown:
        raise ValidationError(
            f"Unknown password options: {', '.join(sorted(unknown))}"
        )

    merged = dict(BASE_OPTIONS)
    merged.update(password_options)

    length = merged["length"]
    if length is None:
        length = settings.default_password_length
    else:
        length = _as_int(length, "Length")
        if length == 0:
            length = settings.default_password_length
        elif length < settings.min_password_length:
            length = settings.min_password_length

    complexity = _as_int(merged["complexity"], "Complexity")
    if complexity > 2:
        raise ValidationError(f"Complexity '{complexity}' must be 0, 1 or 2!")

    hash_name = merged["hash"]
    if hash_name is True:
        hash_name = "sha256"
    if hash_name and hash_name not in settings.crypt_map:
        raise ValidationError(f"'{hash_name}' is not a valid hash.")

    timeout = merged["gen_timeout_seconds"]
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0:
        raise ValidationError(
            f"gen_timeout_seconds '{timeout}' must be a number >= 0!"
        )

    return PasswordOptions(
        last=bool(merged["last"]),
        length=length,
        length_configured=password_options.get("length") is not None,
        hash=hash_name or False,
        complexity=complexity,
        complex_only=bool(merged["complex_only"]),
        gen_timeout_seconds=timeout,
    )
