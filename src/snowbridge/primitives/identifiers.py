"""Opaque handle identifiers"""

import secrets
import string
from typing import Container

ID_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
ID_LENGTH = 20


def generate_id(length: int = ID_LENGTH) -> str:
    """Return a random alphanumeric identifier drawn from a CSPRNG"""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


class IdentifierGenerator:
    """Produce identifiers that are unique among the ones already in use"""

    def __init__(self, length: int = ID_LENGTH, max_attempts: int = 16) -> None:
        if length < 1:
            raise ValueError("length must be positive")
        self.length = length
        self.max_attempts = max_attempts

    def new_id(self, taken: Container[str] = ()) -> str:
        """Draw identifiers until one is not contained in ``taken``

        Callers hold the lock of the registry that owns ``taken`` so the
        check and the following insert are atomic.
        """
        for _ in range(self.max_attempts):
            candidate = generate_id(self.length)
            if candidate not in taken:
                return candidate
        raise RuntimeError(
            f"Could not generate a unique identifier after {self.max_attempts} attempts"
        )
