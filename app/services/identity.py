"""
Identity service: login, registration, refresh-token exchange and logout.

Failures are raised as ServiceError subclasses (see app.services.errors); the API
layer turns them into problem responses. Credential failures share one generic
message so callers cannot tell which check failed.
"""

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from app.core.security import DUMMY_PASSWORD_HASH, verify_password
from app.core.tokens import (
    Claim,
    ClaimTypes,
    generate_refresh_token,
    get_claim_value,
    issue_access_token,
    issue_email_confirmation_token,
    read_email_confirmation_token,
    same_secret,
    validate_access_token,
)
from app.models import User
from app.schemas.auth import AuthResponse
from app.services.credential_store import UserStore, normalize_key, utcnow
from app.services.email import EmailSender, LoggingEmailSender
from app.services.errors import AuthenticationError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"
INVALID_ACCESS_TOKEN = "Invalid access token signature"
INVALID_ACCESS_TOKEN_DETAIL = "Couldn't verify the access token"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
INVALID_CONFIRMATION_TOKEN = "Invalid email confirmation token"

VERIFICATION_EMAIL_SUBJECT = "Verify your email address"


def build_claims(user: User, roles: list[str]) -> list[Claim]:
    """Access token claims in fixed order: identity fields, security stamp, then roles."""
    claims = [
        Claim(ClaimTypes.NAME_IDENTIFIER, str(user.id)),
        Claim(ClaimTypes.GIVEN_NAME, user.first_name),
        Claim(ClaimTypes.SURNAME, user.last_name or ""),
        Claim(ClaimTypes.NAME, user.user_name),
        Claim(ClaimTypes.EMAIL, user.email),
        Claim(ClaimTypes.SECURITY_STAMP, user.security_stamp or ""),
    ]
    claims.extend(Claim(ClaimTypes.ROLE, role) for role in roles)
    return claims


class IdentityService:
    def __init__(
        self,
        store: UserStore,
        settings: "Settings",
        email_sender: EmailSender | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.email_sender = email_sender or LoggingEmailSender()

    @property
    def _signing_key(self) -> str:
        return self.settings.JWT_SECURITY_KEY.get_secret_value()

    def validate_access_token(self, token: str, check_expiry: bool = True) -> list[Claim] | None:
        """Validate a token against the configured issuer, audience and key."""
        return validate_access_token(
            token,
            issuer=self.settings.JWT_ISSUER,
            audience=self.settings.JWT_AUDIENCE,
            signing_key=self._signing_key,
            check_expiry=check_expiry,
        )

    def _create_tokens(self, claims: list[Claim]) -> AuthResponse:
        access_token = issue_access_token(
            claims,
            issuer=self.settings.JWT_ISSUER,
            audience=self.settings.JWT_AUDIENCE,
            signing_key=self._signing_key,
            ttl=timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRATION_MINUTES),
        )
        return AuthResponse(access_token=access_token, refresh_token=generate_refresh_token())

    def _save_refresh_token(self, user: User, refresh_token: str) -> None:
        expires_at = utcnow() + timedelta(minutes=self.settings.REFRESH_TOKEN_EXPIRATION_MINUTES)
        self.store.set_refresh_token(user, refresh_token, expires_at)

    def login(self, user_name: str, password: str) -> AuthResponse:
        """
        Verify credentials and issue an access token plus a refresh token.

        On success the security stamp is rotated, so access tokens from earlier
        logins stop passing the session check.
        """
        user = self.store.find_by_user_name(user_name)
        if user is None:
            # Same bcrypt cost as a wrong password.
            verify_password(password, DUMMY_PASSWORD_HASH)
            logger.info("Login failed: unknown user")
            raise AuthenticationError(INVALID_CREDENTIALS)
        if self.store.is_locked_out(user):
            verify_password(password, DUMMY_PASSWORD_HASH)
            logger.info("Login failed: locked out", extra={"user_id": str(user.id)})
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not self.store.verify_password(user, password):
            if self.settings.LOCKOUT_ON_FAILURE:
                self.store.record_failed_access(user)
            logger.info("Login failed: wrong password", extra={"user_id": str(user.id)})
            raise AuthenticationError(INVALID_CREDENTIALS)

        self.store.reset_access_failed(user)
        self.store.update_security_stamp(user)
        claims = build_claims(user, self.store.roles_of(user))
        response = self._create_tokens(claims)
        self._save_refresh_token(user, response.refresh_token)
        logger.info("Login succeeded", extra={"user_id": str(user.id)})
        return response

    def register(
        self,
        first_name: str,
        last_name: str | None,
        email: str,
        user_name: str,
        password: str,
    ) -> None:
        """
        Create the account, add it to the default role and send the verification email.

        Nothing is committed until the email has been accepted by the sender; a send
        failure rolls the account back and is reported with the sender's messages.
        """
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            user_name=user_name,
        )
        self.store.create(user, password, commit=False)
        try:
            self.store.assign_role(user, self.settings.DEFAULT_ROLE, commit=False)
        except Exception:
            self.store.rollback()
            raise

        if self.settings.EMAIL_VERIFICATION_ENABLED:
            token = issue_email_confirmation_token(
                str(user.id),
                user.email,
                issuer=self.settings.JWT_ISSUER,
                signing_key=self._signing_key,
                ttl=timedelta(hours=self.settings.EMAIL_CONFIRMATION_EXPIRATION_HOURS),
            )
            body = f"Your email verification token:\n{token}"
            result = self.email_sender.send(user.email, VERIFICATION_EMAIL_SUBJECT, body)
            if not result.successful:
                self.store.rollback()
                logger.warning("Registration rolled back: verification email not sent")
                raise ValidationError("Registration failed", *result.error_messages)

        self.store.commit()
        logger.info("Registration completed", extra={"user_id": str(user.id)})

    def refresh_token(self, access_token: str, refresh_token: str) -> AuthResponse:
        """
        Exchange an access token (expiry not checked) and its refresh token for new ones.

        The new access token carries the claims of the presented one, not claims
        re-read from the store, so role changes since login are not reflected here.
        """
        claims = self.validate_access_token(access_token, check_expiry=False)
        if claims is None:
            raise AuthenticationError(INVALID_ACCESS_TOKEN, INVALID_ACCESS_TOKEN_DETAIL)

        user = self.store.find_by_id(get_claim_value(claims, ClaimTypes.NAME_IDENTIFIER))
        if (
            user is None
            or user.refresh_token is None
            or self.store.refresh_token_expired(user)
            or not same_secret(user.refresh_token, refresh_token)
        ):
            logger.info("Refresh rejected: invalid refresh token")
            raise AuthenticationError(INVALID_REFRESH_TOKEN)

        response = self._create_tokens(claims)
        self._save_refresh_token(user, response.refresh_token)
        return response

    def _user_from_claims(self, claims: list[Claim]) -> User:
        user = self.store.find_by_id(get_claim_value(claims, ClaimTypes.NAME_IDENTIFIER))
        if user is None:
            raise NotFoundError("User not found")
        return user

    def logout(self, claims: list[Claim]) -> None:
        """Clear the stored refresh token. Ending cookie/bearer sessions is up to the caller."""
        user = self._user_from_claims(claims)
        self.store.clear_refresh_token(user)
        logger.info("Logout", extra={"user_id": str(user.id)})

    def confirm_email(self, token: str) -> None:
        data = read_email_confirmation_token(
            token, issuer=self.settings.JWT_ISSUER, signing_key=self._signing_key
        )
        if data is None:
            raise ValidationError(INVALID_CONFIRMATION_TOKEN)
        user_id, email = data
        user = self.store.find_by_id(user_id)
        if user is None or user.normalized_email != normalize_key(email):
            raise ValidationError(INVALID_CONFIRMATION_TOKEN)
        if not user.email_confirmed:
            self.store.confirm_email(user)
            logger.info("Email confirmed", extra={"user_id": str(user.id)})

    def change_password(self, claims: list[Claim], current_password: str, new_password: str) -> None:
        """Change the password; every outstanding access and refresh token is invalidated."""
        user = self._user_from_claims(claims)
        self.store.change_password(user, current_password, new_password)
        logger.info("Password changed", extra={"user_id": str(user.id)})

    def get_profile(self, claims: list[Claim]) -> User:
        user = self.store.find_by_user_name(get_claim_value(claims, ClaimTypes.NAME))
        if user is None:
            raise NotFoundError("User not found")
        return user
