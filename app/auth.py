"""Session gate in front of every page and API route.

Sessions are issued and verified by Supabase Auth; this module only reads the
access token from the session cookie (or a bearer header) and decides whether
to let the request through, redirect it, or reject it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from config.settings import Settings
from trendseer.core.db import get_auth_client


logger = logging.getLogger(__name__)

AUTH_PAGES = {"/login", "/signup", "/forgot-password"}
EXEMPT_PREFIXES = ("/static/", "/favicon.ico", "/health")

SessionResolver = Callable[[str], Optional[Dict[str, Any]]]


def verify_session(token: str) -> Optional[Dict[str, Any]]:
    """Ask Supabase Auth who owns ``token``; ``None`` for anything invalid."""
    try:
        response = get_auth_client().auth.get_user(token)
    except Exception as exc:
        logger.warning("Session verification failed: %s", exc)
        return None
    user = getattr(response, "user", None)
    if user is None:
        return None
    return {"id": str(user.id), "email": getattr(user, "email", None)}


def session_token(request: Request, cookie_name: str) -> Optional[str]:
    token = request.cookies.get(cookie_name)
    if token:
        return token
    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def is_exempt(path: str) -> bool:
    return any(path == prefix.rstrip("/") or path.startswith(prefix) for prefix in EXEMPT_PREFIXES)


class AuthMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        settings: Settings,
        session_resolver: Optional[SessionResolver] = None,
    ) -> None:
        super().__init__(app)
        self.settings = settings
        self.session_resolver = session_resolver or verify_session

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not self.settings.auth_enabled or is_exempt(path):
            return await call_next(request)

        token = session_token(request, self.settings.auth_cookie_name)
        user = await run_in_threadpool(self.session_resolver, token) if token else None
        request.state.user = user

        on_auth_page = path in AUTH_PAGES
        if on_auth_page and user:
            return RedirectResponse("/", status_code=307)

        if not on_auth_page and not user:
            if path.startswith("/api/"):
                return JSONResponse({"error": "Not authenticated"}, status_code=401)
            logger.info("Redirecting anonymous request for %s to login", path)
            return RedirectResponse(
                f"/login?{urlencode({'redirectedFrom': path})}", status_code=307
            )

        return await call_next(request)
