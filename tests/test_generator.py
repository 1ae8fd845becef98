"""Tests for passgen.generator.

Covers:
  - Character classes per complexity level
  - complex_only restricts output to the added symbols
  - Bounded generation time
"""

import itertools
import string

import pytest

from passgen.core.exceptions import GenerationTimeout, ValidationError
from passgen.generator import (
    ALPHANUMERIC,
    PRINTABLE_SYMBOLS,
    SAFE_SYMBOLS,
    RandomPasswordGenerator,
    charlists_for,
)


@pytest.fixture
def generator():
    return RandomPasswordGenerator()


# ── Character classes ────────────────────────────────────────────────

class TestCharacterClasses:

    def test_printable_symbols_cover_expected_ranges(self):
        assert PRINTABLE_SYMBOLS.startswith(" !\"#$%&'()*+,-./")
        assert "[\\]^_`" in PRINTABLE_SYMBOLS
        assert PRINTABLE_SYMBOLS.endswith("{|}~")
        assert not any(c in PRINTABLE_SYMBOLS for c in ALPHANUMERIC)

    def test_safe_symbols_are_printable(self):
        assert all(c in PRINTABLE_SYMBOLS for c in SAFE_SYMBOLS)

    def test_charlists(self):
        assert charlists_for(0) == [ALPHANUMERIC]
        assert charlists_for(0, complex_only=True) == [ALPHANUMERIC]
        assert charlists_for(1) == [ALPHANUMERIC, SAFE_SYMBOLS]
        assert charlists_for(2, complex_only=True) == [PRINTABLE_SYMBOLS]

    def test_unknown_complexity_rejected(self):
        with pytest.raises(ValidationError):
            charlists_for(3)


# ── Generation ───────────────────────────────────────────────────────

class TestGenerate:

    def test_default_is_alphanumeric(self, generator):
        password = generator.generate(32)
        assert len(password) == 32
        assert set(password) <= set(ALPHANUMERIC)

    def test_complexity_one_mixes_safe_symbols(self, generator):
        password = generator.generate(32, complexity=1)
        assert len(password) == 32
        assert set(password) <= set(ALPHANUMERIC + SAFE_SYMBOLS)
        assert any(c in SAFE_SYMBOLS for c in password)
        assert any(c in ALPHANUMERIC for c in password)

    def test_complexity_one_complex_only(self, generator):
        password = generator.generate(32, complexity=1, complex_only=True)
        assert set(password) <= set(SAFE_SYMBOLS)

    def test_complexity_two_mixes_printable_symbols(self, generator):
        password = generator.generate(32, complexity=2)
        assert set(password) <= set(ALPHANUMERIC + PRINTABLE_SYMBOLS)
        assert any(c in PRINTABLE_SYMBOLS for c in password)

    def test_complexity_two_complex_only(self, generator):
        password = generator.generate(32, complexity=2, complex_only=True)
        assert len(password) == 32
        assert not any(c in string.ascii_letters + string.digits for c in password)

    def test_outputs_differ(self, generator):
        assert generator.generate(32) != generator.generate(32)

    @pytest.mark.parametrize("length", [0, -1, "32", True, 2.5])
    def test_invalid_length(self, generator, length):
        with pytest.raises(ValidationError):
            generator.generate(length)

    def test_negative_timeout_rejected(self, generator):
        with pytest.raises(ValidationError):
            generator.generate(8, timeout_seconds=-1)


# ── Timeout ──────────────────────────────────────────────────────────

class TestTimeout:

    def test_times_out_with_identifier(self):
        # Each clock read advances 10 seconds
        clock = itertools.count(0, 10).__next__
        generator = RandomPasswordGenerator(clock=clock)
        with pytest.raises(GenerationTimeout) as exc_info:
            generator.generate(32, timeout_seconds=1, identifier="db_admin")
        assert exc_info.value.identifier == "db_admin"

    def test_zero_timeout_never_expires(self):
        clock = itertools.count(0, 10).__next__
        generator = RandomPasswordGenerator(clock=clock)
        assert len(generator.generate(32, timeout_seconds=0)) == 32

    def test_timeout_is_a_timeout_error(self):
        assert issubclass(GenerationTimeout, TimeoutError)
