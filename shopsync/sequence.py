"""Human-readable sequence codes (RCP001, RET001, ...).

Codes are derived from the highest numeric suffix among the codes the
caller can see locally, plus a per-process high-water mark so two saves in
quick succession never compute the same value. Devices that are offline at
the same time can still collide; the remote table should enforce a unique
constraint on the code column.

A code whose local save fails is handed back with ``release``. Codes of
locally deleted records are not reused within the process.
"""

import logging
import re
import threading
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)

CODE_WIDTH = 3

_LEADING_DIGITS = re.compile(r"\d+")


def code_number(code: Optional[str], prefix: str) -> int:
    """Numeric suffix of ``code`` after ``prefix``; 0 when absent or non-numeric."""
    if not code or not isinstance(code, str) or not code.startswith(prefix):
        return 0
    match = _LEADING_DIGITS.match(code[len(prefix):])
    return int(match.group()) if match else 0


def format_code(prefix: str, number: int) -> str:
    return f"{prefix}{number:0{CODE_WIDTH}d}"


class SequenceAllocator:
    """Allocate the next code per prefix."""

    def __init__(self) -> None:
        self._issued: Dict[str, int] = {}
        self._lock = threading.Lock()

    def next_code(self, prefix: str, existing_codes: Iterable[Optional[str]]) -> str:
        """Return max(existing, issued) + 1 formatted with ``prefix``."""
        local_max = max((code_number(code, prefix) for code in existing_codes), default=0)
        with self._lock:
            number = max(local_max, self._issued.get(prefix, 0)) + 1
            self._issued[prefix] = number
        code = format_code(prefix, number)
        logger.debug(f"Allocated sequence code {code}")
        return code

    def release(self, prefix: str, code: str) -> None:
        """Hand back the most recently issued code after a failed save."""
        number = code_number(code, prefix)
        with self._lock:
            if number and self._issued.get(prefix) == number:
                self._issued[prefix] = number - 1

    def observe(self, prefix: str, code: Optional[str]) -> None:
        """Raise the high-water mark for an explicitly supplied code."""
        number = code_number(code, prefix)
        with self._lock:
            if number > self._issued.get(prefix, 0):
                self._issued[prefix] = number
