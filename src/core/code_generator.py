"""
Room code allocation.

Codes are short, human-typable and case-insensitive. They are not secrets, so the
only hard requirement is uniqueness among live rooms.
"""

import logging
import secrets
from typing import Callable

from src.core.errors import CodeGenerationError

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    """Canonical form used as the registry key."""
    return code.strip().upper()


class CodeGenerator:
    """
    Generates fixed-length codes from an upper-case alphanumeric alphabet,
    re-rolling whenever a candidate is already taken.
    """

    def __init__(self, length: int, alphabet: str, max_attempts: int):
        if length <= 0:
            raise ValueError("Code length must be positive")
        if not alphabet:
            raise ValueError("Code alphabet can't be empty")
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")

        self.length = length
        self.alphabet = normalize_code(alphabet)
        self.max_attempts = max_attempts

    def generate(self, is_taken: Callable[[str], bool]) -> str:
        """
        Returns a code for which `is_taken` is False.

        Raises:
            CodeGenerationError: every attempt collided.
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = self._roll()
            if not is_taken(candidate):
                return candidate
            logger.debug("Room code collision on %s (attempt %d)", candidate, attempt)

        logger.error("Could not allocate a room code after %d attempts", self.max_attempts)
        raise CodeGenerationError()

    def _roll(self) -> str:
        return "".join(secrets.choice(self.alphabet) for _ in range(self.length))
