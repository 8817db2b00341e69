"""
Session contexts: where a request's access token comes from and how a session ends.

The bearer context reads the Authorization header and is stateless. The cookie
context keeps the same access token in an httpOnly cookie for browser navigation.
Both sit behind SessionContext so login/logout treat them uniformly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from fastapi import Request, Response
from fastapi.security.utils import get_authorization_scheme_param

if TYPE_CHECKING:
    from app.core.config import Settings


class SessionContext(Protocol):
    name: str

    def read_token(self, request: Request) -> str | None: ...

    def sign_in(self, response: Response, access_token: str, max_age: int) -> None: ...

    def sign_out(self, response: Response) -> None: ...


class BearerSessionContext:
    """Authorization: Bearer <token>. The client holds the token, so sign-in/out are no-ops."""

    name = "bearer"

    def read_token(self, request: Request) -> str | None:
        scheme, token = get_authorization_scheme_param(request.headers.get("authorization"))
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    def sign_in(self, response: Response, access_token: str, max_age: int) -> None:
        return None

    def sign_out(self, response: Response) -> None:
        return None


class CookieSessionContext:
    """
    Access token in an httpOnly cookie.

    httponly: not readable from JS. samesite=lax: not sent on cross-site POST.
    secure: HTTPS only when SECURE_COOKIES is set. max_age matches the token lifetime.
    """

    name = "cookie"

    def __init__(self, cookie_name: str, secure: bool = False) -> None:
        self.cookie_name = cookie_name
        self.secure = secure

    def read_token(self, request: Request) -> str | None:
        token = request.cookies.get(self.cookie_name)
        return token or None

    def sign_in(self, response: Response, access_token: str, max_age: int) -> None:
        response.set_cookie(
            self.cookie_name,
            value=access_token,
            httponly=True,
            samesite="lax",
            secure=self.secure,
            max_age=max_age,
        )

    def sign_out(self, response: Response) -> None:
        response.delete_cookie(
            self.cookie_name,
            httponly=True,
            samesite="lax",
            secure=self.secure,
        )


def get_session_contexts(settings: Settings) -> list[SessionContext]:
    """Bearer first, then the cookie context when enabled."""
    contexts: list[SessionContext] = [BearerSessionContext()]
    if settings.COOKIE_SESSION_ENABLED:
        contexts.append(CookieSessionContext(settings.COOKIE_NAME, settings.SECURE_COOKIES))
    return contexts


def read_access_token(request: Request, contexts: list[SessionContext]) -> str | None:
    for context in contexts:
        token = context.read_token(request)
        if token:
            return token
    return None


def sign_in_all(response: Response, contexts: list[SessionContext], access_token: str, max_age: int) -> None:
    for context in contexts:
        context.sign_in(response, access_token, max_age)


def sign_out_all(response: Response, contexts: list[SessionContext]) -> None:
    for context in contexts:
        context.sign_out(response)
