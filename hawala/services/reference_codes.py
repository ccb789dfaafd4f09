"""
Reference code generation for public transaction tracking.

Format: ``HW`` + 4-char time bucket + 10-char random suffix (16 chars total).

- The time bucket is the number of whole hours since 2020-01-01 UTC in
  base 36. It sorts codes roughly by creation time without exposing the
  exact timestamp.
- The suffix draws 10 symbols from a 32-symbol alphabet (digits and
  uppercase letters without I, L, O, U), i.e. 50 bits per code. With
  100,000 codes inside one hour bucket the birthday collision probability
  is below 1e-5; the storage uniqueness constraint catches the rest.

Tracking is public, so codes must not be guessable from their neighbours:
the suffix comes from ``secrets.SystemRandom`` unless a test injects a
seeded source.
"""

import re
import secrets
import string
from datetime import datetime, timezone
from typing import Callable, Protocol

from hawala.config import settings
from hawala.core.clock import utc_now

EPOCH = datetime(2020, 1, 1, tzinfo=timezone.utc)

TIME_ALPHABET = string.digits + string.ascii_uppercase
TIME_LENGTH = 4
SUFFIX_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
SUFFIX_LENGTH = 10

_WHITESPACE = re.compile(r"\s+")


class RandomSource(Protocol):
    def choice(self, seq): ...


def _base36(value: int, width: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(TIME_ALPHABET[rem])
    encoded = "".join(reversed(digits)) or "0"
    # wraps after ~190 years; keeps the total length fixed
    return encoded.rjust(width, "0")[-width:]


class ReferenceCodeGenerator:
    """Produces fixed-length, non-sequential tracking codes."""

    def __init__(
        self,
        prefix: str | None = None,
        random_source: RandomSource | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.prefix = (prefix or settings.REFERENCE_CODE_PREFIX).upper()
        if not self.prefix.isalpha():
            raise ValueError(f"Reference code prefix must be alphabetic: {self.prefix!r}")
        self._random = random_source or secrets.SystemRandom()
        self._clock = clock
        self._pattern = re.compile(
            rf"^{re.escape(self.prefix)}"
            rf"[0-9A-Z]{{{TIME_LENGTH}}}"
            rf"[{SUFFIX_ALPHABET}]{{{SUFFIX_LENGTH}}}$"
        )

    @property
    def length(self) -> int:
        return len(self.prefix) + TIME_LENGTH + SUFFIX_LENGTH

    def time_component(self, at: datetime | None = None) -> str:
        moment = at or self._clock()
        hours = int((moment - EPOCH).total_seconds() // 3600)
        return _base36(max(hours, 0), TIME_LENGTH)

    def generate(self) -> str:
        suffix = "".join(self._random.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
        return f"{self.prefix}{self.time_component()}{suffix}"

    @staticmethod
    def normalize(code: str) -> str:
        """Strip all whitespace and uppercase."""
        return _WHITESPACE.sub("", code or "").upper()

    def is_well_formed(self, code: str) -> bool:
        return bool(self._pattern.match(code))
