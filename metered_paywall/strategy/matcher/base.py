from typing import Protocol, TypeVar

T = TypeVar("T", contravariant=True)


class TokenMatcherStrategy(Protocol[T]):
    """
    Protocol for matching a presented value against a required one.

    Returns True if the presented value satisfies the requirement.
    """

    def __call__(self, presented: T, required: T) -> bool: ...


class NullMatcherStrategy(TokenMatcherStrategy[T]):
    """
    A null matcher strategy that never matches.
    Used for checks that are switched off because they are not configured.
    """

    def __call__(self, presented: T, required: T) -> bool:
        """Always return False regardless of the values."""
        return False

    def __str__(self) -> str:
        return "NullMatcherStrategy()"
