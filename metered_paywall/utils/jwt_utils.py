import jwt
import logging
from typing import Dict, Optional, Any, cast

from metered_paywall.models.access import Tier

logger = logging.getLogger(__name__)


def validate_jwt(
    token: str,
    secret: str,
    audience: str | None = None,
    algorithms: list[str] | None = None,
    verify_audience: bool = True,
) -> Optional[Dict[str, Any]]:
    """
    Validates a JWT token and returns its content as a dictionary.

    Args:
        token: The JWT token string to validate
        secret: The secret key used to sign the JWT
        audience: Expected audience, if any
        algorithms: List of allowed algorithms for decoding, defaults to ['HS256']
        verify_audience: Whether to verify the audience claim

    Returns:
        Dict containing the JWT payload if valid, None otherwise
    """
    if algorithms is None:
        algorithms = ["HS256"]

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=algorithms,
            audience=audience,
            options={"verify_exp": True, "verify_aud": verify_audience},
        )
        return cast(Dict[str, Any], payload)
    except jwt.ExpiredSignatureError:
        logger.warning("JWT validation failed: token has expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("JWT validation failed: %s", str(e))
        return None


def get_tier(token_content: Dict[str, Any], key: str = "tier") -> Tier:
    """
    Read the membership tier claim from the JWT content.

    The claim is produced by the subscription service and taken as is.
    A missing or unrecognised claim means FREE.
    """
    return Tier.parse(token_content.get(key))


def audience_from_forwarded_headers(headers: Any) -> Optional[str]:
    """Build the expected audience from X-Forwarded-* headers, if present."""
    fwd_host = headers.get("x-forwarded-host")
    fwd_proto = headers.get("x-forwarded-proto")
    fwd_port = headers.get("x-forwarded-port")

    if not (fwd_host and fwd_proto):
        return None
    port_part = f":{fwd_port}" if fwd_port and fwd_port not in ["80", "443"] else ""
    return f"{fwd_proto}://{fwd_host}{port_part}"
