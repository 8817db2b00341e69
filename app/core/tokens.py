"""
JWT codec for access tokens and email confirmation tokens, plus refresh token generation.

Claims are an ordered list of (type, value) pairs. Repeated claim types (roles) are
written as a JSON array and read back as repeated claims, so encode/decode round-trips
the claim list. Validation never raises: any failure returns None.
"""

import base64
import hmac
import logging
import secrets
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any, NamedTuple

import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
REFRESH_TOKEN_BYTES = 256

# Audience of email confirmation tokens; keeps them from being accepted as access tokens.
EMAIL_CONFIRMATION_AUDIENCE = "email-confirmation"

# Registered claims are managed by the codec and never appear in a claim list.
REGISTERED_CLAIMS = frozenset({"iss", "aud", "exp", "nbf", "iat", "jti"})


class ClaimTypes:
    """Claim names written into access tokens."""

    NAME_IDENTIFIER = "sub"
    GIVEN_NAME = "given_name"
    SURNAME = "family_name"
    NAME = "unique_name"
    EMAIL = "email"
    SECURITY_STAMP = "security_stamp"
    ROLE = "role"


class Claim(NamedTuple):
    type: str
    value: str


def get_claim_value(claims: Iterable[Claim], claim_type: str) -> str | None:
    """Return the first value of claim_type, or None."""
    for claim in claims:
        if claim.type == claim_type:
            return claim.value
    return None


def get_claim_values(claims: Iterable[Claim], claim_type: str) -> list[str]:
    return [c.value for c in claims if c.type == claim_type]


def claims_to_payload(claims: Iterable[Claim]) -> dict[str, Any]:
    """Fold an ordered claim list into a JWT payload; repeated types become arrays."""
    payload: dict[str, Any] = {}
    for claim in claims:
        if claim.type in REGISTERED_CLAIMS:
            raise ValueError(f"Claim type {claim.type!r} is reserved")
        if claim.type not in payload:
            payload[claim.type] = claim.value
        elif isinstance(payload[claim.type], list):
            payload[claim.type].append(claim.value)
        else:
            payload[claim.type] = [payload[claim.type], claim.value]
    return payload


def payload_to_claims(payload: dict[str, Any]) -> list[Claim]:
    """Expand a decoded JWT payload into claims, skipping registered claims."""
    claims: list[Claim] = []
    for claim_type, value in payload.items():
        if claim_type in REGISTERED_CLAIMS:
            continue
        if isinstance(value, list):
            claims.extend(Claim(claim_type, str(v)) for v in value)
        else:
            claims.append(Claim(claim_type, str(value)))
    return claims


def issue_access_token(
    claims: Iterable[Claim],
    issuer: str,
    audience: str,
    signing_key: str,
    ttl: timedelta,
    now: datetime | None = None,
) -> str:
    """Sign claims with HMAC-SHA256; iat = nbf = now, exp = now + ttl."""
    issued_at = now or datetime.now(UTC)
    payload = claims_to_payload(claims)
    payload.update(
        {
            "iss": issuer,
            "aud": audience,
            "nbf": issued_at,
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
    )
    return jwt.encode(payload, signing_key, algorithm=ALGORITHM)


def validate_access_token(
    token: str,
    issuer: str,
    audience: str,
    signing_key: str,
    check_expiry: bool = True,
) -> list[Claim] | None:
    """
    Verify signature, algorithm, issuer and audience (and expiry when check_expiry).

    Only HS256 is accepted; "none" and every other algorithm are rejected before the
    signature is checked. Returns the claim list, or None on any validation failure.
    """
    try:
        header = jwt.get_unverified_header(token)
        if header.get("alg") != ALGORITHM:
            logger.debug("Token rejected: unexpected algorithm %r", header.get("alg"))
            return None
        payload = jwt.decode(
            token,
            signing_key,
            algorithms=[ALGORITHM],
            audience=audience,
            issuer=issuer,
            options={"verify_exp": check_expiry, "require": ["exp", "iss", "aud"]},
        )
    except jwt.PyJWTError as e:
        logger.debug("Token rejected: %s", e)
        return None
    return payload_to_claims(payload)


def generate_refresh_token() -> str:
    """
    New refresh token: 256 bytes from the OS CSPRNG, base64-encoded.

    No uniqueness check is performed; collisions are bounded by the entropy.
    """
    return base64.b64encode(secrets.token_bytes(REFRESH_TOKEN_BYTES)).decode("ascii")


def issue_email_confirmation_token(
    user_id: str,
    email: str,
    issuer: str,
    signing_key: str,
    ttl: timedelta,
) -> str:
    """Token proving control of email for user_id; invalid once the address changes."""
    claims = [
        Claim(ClaimTypes.NAME_IDENTIFIER, user_id),
        Claim(ClaimTypes.EMAIL, email),
    ]
    return issue_access_token(claims, issuer, EMAIL_CONFIRMATION_AUDIENCE, signing_key, ttl)


def read_email_confirmation_token(
    token: str,
    issuer: str,
    signing_key: str,
) -> tuple[str, str] | None:
    """Return (user_id, email) from a valid, unexpired confirmation token, else None."""
    claims = validate_access_token(
        token, issuer, EMAIL_CONFIRMATION_AUDIENCE, signing_key, check_expiry=True
    )
    if claims is None:
        return None
    user_id = get_claim_value(claims, ClaimTypes.NAME_IDENTIFIER)
    email = get_claim_value(claims, ClaimTypes.EMAIL)
    if not user_id or not email:
        return None
    return user_id, email


def same_secret(a: str | None, b: str | None) -> bool:
    """Constant-time string comparison; None never matches."""
    if a is None or b is None:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
