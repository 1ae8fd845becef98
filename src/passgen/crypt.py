"""
Modular crypt encoding of a password and salt.

Output is ``$<code>$<salt>$<digest>`` where the code identifies the
algorithm (md5 -> 1, sha256 -> 5, sha512 -> 6).  Digests come from
passlib using the standard 5000 rounds, so the rounds parameter stays
implicit in the output.
"""

from typing import Dict, Optional

from passlib.hash import md5_crypt, sha256_crypt, sha512_crypt

from .core.config import CRYPT_MAP
from .core.exceptions import ValidationError

_HANDLERS = {
    "md5": md5_crypt,
    "sha256": sha256_crypt,
    "sha512": sha512_crypt,
}

# md5-crypt only honours the first 8 salt characters
_MAX_SALT = {
    "md5": 8,
    "sha256": 16,
    "sha512": 16,
}

_SHA2_ROUNDS = 5000


def crypt_password(
    password: str,
    salt: str,
    algorithm: str = "sha256",
    crypt_map: Optional[Dict[str, str]] = None,
) -> str:
    """Hash ``password`` with ``salt`` into modular crypt format."""
    crypt_map = crypt_map or CRYPT_MAP
    if algorithm not in crypt_map or algorithm not in _HANDLERS:
        raise ValidationError(f"'{algorithm}' is not a valid hash.")

    handler = _HANDLERS[algorithm]
    salt = salt[:_MAX_SALT[algorithm]]
    try:
        if algorithm == "md5":
            return handler.using(salt=salt).hash(password)
        return handler.using(salt=salt, rounds=_SHA2_ROUNDS).hash(password)
    except ValueError as e:
        raise ValidationError(f"Cannot hash with salt '{salt}': {e}") from e
