from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Body, Request
from fastapi.responses import JSONResponse

from syncsketch.core.rate_limiter import rate_limit_ip
from syncsketch.db.models import User
from syncsketch.services.auth_service import AuthService
from syncsketch.services.session_service import CurrentUser, clear_session_cookie, set_session_cookie
from syncsketch.services.user_display import user_profile, user_summary

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _get_auth_service(request: Request) -> AuthService:
    svc = getattr(getattr(request.app, "state", None), "auth_service", None)
    if not svc:
        raise RuntimeError("AuthService not configured")
    return svc


@router.post("/signup/request-otp")
def request_signup_otp(request: Request, payload: dict = Body(default={})):
    rate_limit_ip(request, "auth:signup-otp", limit=5, window_seconds=300)
    result = _get_auth_service(request).request_signup_otp(payload)
    return {
        "message": "OTP sent successfully to your email",
        "data": {"email": result.email, "userName": result.user_name},
    }


@router.post("/signup/complete", status_code=201)
def complete_signup(request: Request, background_tasks: BackgroundTasks, payload: dict = Body(default={})):
    rate_limit_ip(request, "auth:signup-complete", limit=10, window_seconds=300)
    svc = _get_auth_service(request)
    result = svc.complete_signup(payload)
    response = JSONResponse(
        {"message": "User registered successfully", "user": user_summary(result.user), "token": result.token},
        status_code=201,
    )
    set_session_cookie(response, result.token, svc.settings)
    # FastAPI attaches the injected tasks to a returned Response without its own background
    background_tasks.add_task(svc.send_welcome, result.user)
    return response


@router.post("/signin")
def signin(request: Request, payload: dict = Body(default={})):
    rate_limit_ip(request, "auth:signin", limit=10, window_seconds=60)
    svc = _get_auth_service(request)
    result = svc.signin(payload)
    response = JSONResponse(
        {"message": "Signed in successfully", "token": result.token, "user": user_profile(result.user)}
    )
    set_session_cookie(response, result.token, svc.settings)
    return response


@router.post("/logout")
def logout(user: User = CurrentUser):
    response = JSONResponse({"message": "Logged out successfully"})
    clear_session_cookie(response)
    return response


@router.get("/profile")
def profile(user: User = CurrentUser):
    return {"message": "User profile retrieved successfully", "user": user_profile(user)}


@router.patch("/editProfile")
def edit_profile(request: Request, payload: dict = Body(default={}), user: User = CurrentUser):
    updated = _get_auth_service(request).edit_profile(user, payload)
    return {"message": "Profile updated successfully", "user": user_profile(updated)}


@router.patch("/changePassword")
def change_password(request: Request, payload: dict = Body(default={}), user: User = CurrentUser):
    _get_auth_service(request).change_password(user, payload)
    return {"message": "Password updated successfully"}


@router.post("/forgotPassword")
def forgot_password(request: Request, payload: dict = Body(default={})):
    rate_limit_ip(request, "auth:forgot", limit=5, window_seconds=300)
    _get_auth_service(request).request_password_reset(payload)
    return {"message": "If the email is registered, a password reset OTP has been sent"}


@router.post("/resetPassword")
def reset_password(request: Request, payload: dict = Body(default={})):
    rate_limit_ip(request, "auth:reset", limit=10, window_seconds=300)
    _get_auth_service(request).reset_password(payload)
    return {"message": "Password reset successfully"}
