"""Per-request session liveness check run after the access token itself has been validated."""

import hmac
import logging

from app.core.tokens import Claim, ClaimTypes, get_claim_value
from app.models import User
from app.services.credential_store import UserStore

logger = logging.getLogger(__name__)


def check_session(store: UserStore, claims: list[Claim]) -> User | None:
    """
    Return the caller's account when the session is still live, otherwise None.

    Fails closed when the account no longer exists, is locked out, or its security
    stamp differs from the one embedded in the token (password change, forced logout).
    """
    user_name = get_claim_value(claims, ClaimTypes.NAME)
    user = store.find_by_user_name(user_name)
    if user is None:
        logger.info("Session rejected: account not found")
        return None
    if store.is_locked_out(user):
        logger.info("Session rejected: account locked out", extra={"user_id": str(user.id)})
        return None
    token_stamp = get_claim_value(claims, ClaimTypes.SECURITY_STAMP) or ""
    if not hmac.compare_digest(token_stamp.encode("utf-8"), (user.security_stamp or "").encode("utf-8")):
        logger.info("Session rejected: security stamp changed", extra={"user_id": str(user.id)})
        return None
    return user
