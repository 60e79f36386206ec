from typing import Optional, Protocol, TypeVar
from starlette.requests import Request


T_co = TypeVar("T_co", covariant=True)


class TokenExtractorStrategy(Protocol[T_co]):
    """
    Protocol for request value extraction strategies.
    Implementations pull one value (a session, a token, a descriptor) out of
    an incoming request, or None when the request does not carry it.
    """

    async def __call__(self, request: Request) -> Optional[T_co]: ...


class NullExtractorStrategy(TokenExtractorStrategy[None]):
    """
    A null extractor strategy that always returns None.
    Used in place of extractors that are not configured.
    """

    async def __call__(self, request: Request) -> None:
        return None

    def __str__(self) -> str:
        return "NullExtractorStrategy()"
