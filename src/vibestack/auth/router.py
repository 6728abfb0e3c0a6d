"""Auth router: all /api/v1/auth/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from vibestack.auth.schemas import (
    MfaEnrollRequest,
    MfaVerifyRequest,
    RefreshRequest,
    ResetPasswordRequest,
    SessionValidateRequest,
    SignInRequest,
    SignUpRequest,
    UpdatePasswordRequest,
)
from vibestack.auth.service import AuthService
from vibestack.dependencies import get_auth_service
from vibestack.responses import as_json

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post("/signup")
async def signup(body: SignUpRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    result = await service.sign_up(body.email, body.password, body.username, body.display_name)
    return as_json(result, 201)


@router.post("/signin")
async def signin(body: SignInRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    return as_json(await service.sign_in(body.email, body.password))


@router.post("/signout")
async def signout(service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    return as_json(await service.sign_out())


@router.get("/me")
async def me(service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    return as_json(await service.get_current_user())


@router.post("/refresh")
async def refresh(body: RefreshRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    return as_json(await service.refresh_session(body.refresh_token))


@router.post("/session/validate")
async def validate_session(
    body: SessionValidateRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    session = body.model_dump(exclude_none=True) or None
    return as_json(await service.validate_session(session))


@router.post("/password/reset")
async def reset_password(
    body: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    return as_json(await service.reset_password(body.email))


@router.post("/password/update")
async def update_password(
    body: UpdatePasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    return as_json(await service.update_password(body.new_password))


@router.post("/oauth/{provider}")
async def oauth(provider: str, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    return as_json(await service.sign_in_with_oauth(provider))


@router.post("/mfa/enroll")
async def mfa_enroll(body: MfaEnrollRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    return as_json(await service.enroll_mfa(body.factor_type))


@router.post("/mfa/verify")
async def mfa_verify(body: MfaVerifyRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    return as_json(await service.verify_mfa(body.factor_id, body.code))
