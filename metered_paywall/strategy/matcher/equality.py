import hmac
from typing import Optional


class EqualityMatcher:
    """
    A matcher that compares two secrets for equality.

    Comparison is constant-time. A missing value never matches.
    """

    def __call__(self, presented: Optional[str], required: Optional[str]) -> bool:
        if not presented or not required:
            return False
        return hmac.compare_digest(presented.encode(), required.encode())

    def __str__(self) -> str:
        return "EqualityMatcher()"
