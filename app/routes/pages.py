from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from config.settings import get_settings
from trendseer.core.db import get_auth_client, get_supabase_client


logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

router = APIRouter(tags=["pages"])


def _current_user(request: Request) -> Optional[dict]:
    return getattr(request.state, "user", None)


def _safe_redirect(target: Optional[str]) -> str:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return "/"


def _with_session(response: RedirectResponse, session) -> RedirectResponse:
    settings = get_settings()
    response.set_cookie(
        settings.auth_cookie_name,
        session.access_token,
        max_age=getattr(session, "expires_in", None) or 3600,
        httponly=True,
        samesite="lax",
        secure=settings.app_env.lower() == "production",
    )
    return response


@router.get("/", response_class=HTMLResponse)
def chat_page(request: Request):
    return templates.TemplateResponse(request, "index.html", {"user": _current_user(request)})


@router.get("/settings", response_class=HTMLResponse)
def settings_page(request: Request):
    return templates.TemplateResponse(request, "settings.html", {"user": _current_user(request)})


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request, redirectedFrom: Optional[str] = None):
    return templates.TemplateResponse(
        request, "login.html", {"mode": "login", "redirected_from": redirectedFrom}
    )


@router.post("/login")
def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    redirectedFrom: Optional[str] = Form(default=None),
):
    try:
        result = get_auth_client().auth.sign_in_with_password(
            {"email": email, "password": password}
        )
    except Exception as exc:
        logger.warning("Sign in failed for %s: %s", email, exc)
        return templates.TemplateResponse(
            request,
            "login.html",
            {"mode": "login", "error": "Invalid email or password", "redirected_from": redirectedFrom},
            status_code=400,
        )
    response = RedirectResponse(_safe_redirect(redirectedFrom), status_code=303)
    return _with_session(response, result.session)


@router.get("/signup", response_class=HTMLResponse)
def signup_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {"mode": "signup"})


@router.post("/signup")
def signup(request: Request, email: str = Form(...), password: str = Form(...)):
    try:
        result = get_auth_client().auth.sign_up({"email": email, "password": password})
    except Exception as exc:
        logger.warning("Sign up failed for %s: %s", email, exc)
        return templates.TemplateResponse(
            request, "login.html", {"mode": "signup", "error": str(exc)}, status_code=400
        )

    if result.user is not None:
        try:
            get_supabase_client().table("users").insert(
                {"id": str(result.user.id), "email": email}
            ).execute()
        except Exception as exc:
            logger.error("Error creating user record for %s: %s", email, exc)

    if result.session is not None:
        return _with_session(RedirectResponse("/", status_code=303), result.session)
    return templates.TemplateResponse(
        request,
        "login.html",
        {"mode": "login", "message": "Check your email to confirm your account, then sign in."},
    )


@router.get("/forgot-password", response_class=HTMLResponse)
def forgot_password_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {"mode": "forgot"})


@router.post("/forgot-password")
def forgot_password(request: Request, email: str = Form(...)):
    try:
        get_auth_client().auth.reset_password_for_email(
            email, {"redirect_to": str(request.url_for("login_page"))}
        )
    except Exception as exc:
        logger.warning("Password reset failed for %s: %s", email, exc)
        return templates.TemplateResponse(
            request, "login.html", {"mode": "forgot", "error": str(exc)}, status_code=400
        )
    return templates.TemplateResponse(
        request,
        "login.html",
        {"mode": "login", "message": "If that address has an account, a reset link is on its way."},
    )


@router.post("/logout")
def logout():
    response = RedirectResponse("/login", status_code=303)
    response.delete_cookie(get_settings().auth_cookie_name)
    return response
