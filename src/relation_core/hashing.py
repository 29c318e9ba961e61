"""Contact identifier normalization and hashing.

Requests are addressed to a hash of the recipient's phone number so the raw
number never needs to be stored. This is obfuscation, not proof of ownership.

Country codes are not canonicalized: ``+1 555 123 4567`` and ``555 123 4567``
normalize to different digit strings and therefore hash differently.
"""

import hashlib
import re

MIN_IDENTIFIER_DIGITS = 10

_NON_DIGITS = re.compile(r"\D")


class IdentityHasher:
    """Pure, deterministic hashing of contact identifiers.

    Example:
        >>> hasher = IdentityHasher()
        >>> hasher.hash("(555) 123-4567") == hasher.hash("555.123.4567")
        True
    """

    def __init__(self, min_digits: int = MIN_IDENTIFIER_DIGITS):
        self.min_digits = min_digits

    @staticmethod
    def normalize(raw_identifier: str) -> str:
        """Strip every non-digit character."""
        return _NON_DIGITS.sub("", raw_identifier or "")

    def is_valid(self, raw_identifier: str) -> bool:
        return len(self.normalize(raw_identifier)) >= self.min_digits

    def hash(self, raw_identifier: str) -> str:
        """Hash the normalized identifier.

        Args:
            raw_identifier: Phone number in any formatting

        Returns:
            Hex-encoded SHA-256 digest of the normalized digits
        """
        digits = self.normalize(raw_identifier)
        return hashlib.sha256(digits.encode("ascii")).hexdigest()
