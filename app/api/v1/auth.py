"""Login, refresh, registration and logout endpoints, plus the auth dependencies (get_current_session)."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db
from app.core.tokens import Claim
from app.models import User
from app.schemas.auth import (
    AuthResponse,
    ConfirmEmailRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
)
from app.schemas.common import ProblemDetails
from app.services.credential_store import UserStore
from app.services.email import EmailSender, get_email_sender
from app.services.identity import IdentityService
from app.services.session_context import (
    SessionContext,
    get_session_contexts,
    read_access_token,
    sign_in_all,
    sign_out_all,
)
from app.services.session_gate import check_session

router = APIRouter()
# auto_error=False: the session cookie is an alternative to the header.
bearer_scheme = HTTPBearer(auto_error=False)

ERROR_RESPONSES = {
    400: {"model": ProblemDetails, "description": "Invalid request or credentials"},
}


@dataclass
class AuthenticatedSession:
    """Caller that passed token validation and the session liveness check."""

    user: User
    claims: list[Claim]


def get_user_store(db: Annotated[Session, Depends(get_db)]) -> UserStore:
    return UserStore(db, get_settings())


def get_email_sender_dependency() -> EmailSender:
    return get_email_sender(get_settings())


def get_identity_service(
    store: Annotated[UserStore, Depends(get_user_store)],
    email_sender: Annotated[EmailSender, Depends(get_email_sender_dependency)],
) -> IdentityService:
    return IdentityService(store, get_settings(), email_sender)


def get_session_contexts_dependency() -> list[SessionContext]:
    return get_session_contexts(get_settings())


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_session(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    store: Annotated[UserStore, Depends(get_user_store)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
    contexts: Annotated[list[SessionContext], Depends(get_session_contexts_dependency)],
) -> AuthenticatedSession:
    """
    Dependency: require a valid, unexpired access token (bearer header or session
    cookie) whose account is still live. Raises 401 otherwise.
    """
    token = credentials.credentials if credentials is not None else read_access_token(request, contexts)
    if token is None:
        raise _unauthorized("Not authenticated")
    claims = identity.validate_access_token(token, check_expiry=True)
    if claims is None:
        raise _unauthorized("Invalid or expired token")
    user = check_session(store, claims)
    if user is None:
        raise _unauthorized("Session is no longer valid")
    return AuthenticatedSession(user=user, claims=claims)


@router.post("/login", response_model=AuthResponse, responses=ERROR_RESPONSES)
def login(
    body: LoginRequest,
    response: Response,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
    contexts: Annotated[list[SessionContext], Depends(get_session_contexts_dependency)],
) -> AuthResponse:
    """
    Authenticate with user name and password; returns an access token and a refresh token.
    Include the access token in the Authorization header as: Bearer <accessToken>
    """
    result = identity.login(body.user_name, body.password)
    max_age = get_settings().ACCESS_TOKEN_EXPIRATION_MINUTES * 60
    sign_in_all(response, contexts, result.access_token, max_age)
    return result


@router.post("/refresh", response_model=AuthResponse, responses=ERROR_RESPONSES)
def refresh(
    body: RefreshTokenRequest,
    response: Response,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
    contexts: Annotated[list[SessionContext], Depends(get_session_contexts_dependency)],
) -> AuthResponse:
    """Exchange an expired access token and its refresh token for a new pair."""
    result = identity.refresh_token(body.access_token, body.refresh_token)
    max_age = get_settings().ACCESS_TOKEN_EXPIRATION_MINUTES * 60
    sign_in_all(response, contexts, result.access_token, max_age)
    return result


@router.post("/register", status_code=status.HTTP_200_OK, responses=ERROR_RESPONSES)
def register(
    body: RegisterRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> Response:
    """Create an account in the default role and send the email verification token."""
    identity.register(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        user_name=body.user_name,
        password=body.password,
    )
    return Response(status_code=status.HTTP_200_OK)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, responses=ERROR_RESPONSES)
def logout(
    session: Annotated[AuthenticatedSession, Depends(get_current_session)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
    contexts: Annotated[list[SessionContext], Depends(get_session_contexts_dependency)],
) -> Response:
    """Drop the stored refresh token and end the cookie session, if any."""
    identity.logout(session.claims)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    sign_out_all(response, contexts)
    return response


@router.post("/confirm-email", status_code=status.HTTP_204_NO_CONTENT, responses=ERROR_RESPONSES)
def confirm_email(
    body: ConfirmEmailRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> Response:
    """Mark the email address as verified using the token sent at registration."""
    identity.confirm_email(body.token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
