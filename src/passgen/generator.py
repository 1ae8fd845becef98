"""
Random password generation.

Character classes by complexity:
  0 - alphanumeric only
  1 - alphanumeric plus the "safe" symbols ``@%-_+=~``
  2 - alphanumeric plus printable ASCII symbols

``complex_only`` restricts the output to the symbols added by the
requested complexity.  Characters are drawn with :mod:`secrets`,
alternating between character classes so that every class in play shows
up in the result.
"""

import logging
import secrets
import string
import time
from typing import List, Optional

from .core.exceptions import GenerationTimeout, ValidationError

logger = logging.getLogger(__name__)

ALPHANUMERIC = string.ascii_letters + string.digits
SAFE_SYMBOLS = "@%-_+=~"
# ' '..'/', '['..'`', '{'..'~'
PRINTABLE_SYMBOLS = (
    "".join(chr(c) for c in range(ord(" "), ord("/") + 1))
    + "".join(chr(c) for c in range(ord("["), ord("`") + 1))
    + "".join(chr(c) for c in range(ord("{"), ord("~") + 1))
)

_COMPLEXITY_SYMBOLS = {
    0: None,
    1: SAFE_SYMBOLS,
    2: PRINTABLE_SYMBOLS,
}


def charlists_for(complexity: int, complex_only: bool = False) -> List[str]:
    """Return the character classes used for a complexity level."""
    if complexity not in _COMPLEXITY_SYMBOLS:
        raise ValidationError(
            f"Complexity '{complexity}' must be one of 0, 1 or 2"
        )
    symbols = _COMPLEXITY_SYMBOLS[complexity]
    if symbols is None:
        return [ALPHANUMERIC]
    if complex_only:
        return [symbols]
    return [ALPHANUMERIC, symbols]


class RandomPasswordGenerator:
    """Bounded-time random string generator.

    Usage::

        gen = RandomPasswordGenerator()
        password = gen.generate(32, complexity=1, timeout_seconds=30)
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock

    def generate(
        self,
        length: int,
        complexity: int = 0,
        complex_only: bool = False,
        timeout_seconds: float = 30,
        identifier: Optional[str] = None,
    ) -> str:
        """Generate a random string.

        Args:
            length: Number of characters (>= 1).
            complexity: Character class breadth (0, 1 or 2).
            complex_only: Only use the symbols added by ``complexity``.
            timeout_seconds: Upper bound on generation time, 0 disables it.
            identifier: Name reported in the timeout error.

        Raises:
            ValidationError: Invalid length or complexity.
            GenerationTimeout: ``timeout_seconds`` elapsed.
        """
        if not isinstance(length, int) or isinstance(length, bool) or length < 1:
            raise ValidationError(f"Length '{length}' must be a positive integer")
        if timeout_seconds is None or timeout_seconds < 0:
            raise ValidationError(
                f"Timeout '{timeout_seconds}' must be a number >= 0"
            )

        charlists = charlists_for(complexity, complex_only)
        deadline = None
        if timeout_seconds > 0:
            deadline = self._clock() + timeout_seconds

        while True:
            password = self._draw(length, charlists, deadline, identifier)
            if self._covers(password, charlists):
                return password
            logger.debug("Regenerating password missing a character class")

    def _draw(self, length, charlists, deadline, identifier) -> str:
        chars = []
        last_list = None
        last_char = None
        for _ in range(length):
            if deadline is not None and self._clock() > deadline:
                raise GenerationTimeout(
                    f"password generation timed out for '{identifier}'",
                    identifier=identifier,
                )
            list_index = secrets.randbelow(len(charlists))
            if list_index == last_list:
                list_index = (list_index - 1) % len(charlists)
            last_list = list_index

            charlist = charlists[list_index]
            char_index = secrets.randbelow(len(charlist))
            if char_index == last_char:
                char_index = (char_index - 1) % len(charlist)
            last_char = char_index

            chars.append(charlist[char_index])
        return "".join(chars)

    @staticmethod
    def _covers(password: str, charlists: List[str]) -> bool:
        if len(password) < len(charlists):
            return True
        return all(any(c in charlist for c in password) for charlist in charlists)


_generator: Optional[RandomPasswordGenerator] = None


def get_generator() -> RandomPasswordGenerator:
    """Get the shared generator instance."""
    global _generator
    if _generator is None:
        _generator = RandomPasswordGenerator()
    return _generator
