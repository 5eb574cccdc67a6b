from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from authsync.api.deps import get_session_coordinator, require_session_token
from authsync.api.schemas.auth import (
    AuthUserResponse,
    ConfirmPasswordResetRequest,
    CredentialsRequest,
    EmailRequest,
    OkResponse,
    PasswordRequest,
)
from authsync.application.use_cases.session_coordinator import SessionCoordinator
from authsync.domain.entities.user import AuthUser
from authsync.domain.exceptions import (
    ConfirmationPendingError,
    NotAuthenticatedError,
    ProviderError,
    UnconfirmedEmailError,
    UnsupportedOperationError,
)


router = APIRouter()


def _user_response(user: AuthUser, *, access_token: str | None) -> AuthUserResponse:
    return AuthUserResponse(
        id=user.id,
        email=user.email,
        email_confirmed_at=user.email_confirmed_at,
        provider=user.provider,
        access_token=access_token,
    )


@router.post("/v1/auth/signup", response_model=AuthUserResponse)
async def sign_up(
    req: CredentialsRequest,
    coordinator: SessionCoordinator = Depends(get_session_coordinator),
):
    try:
        user = await coordinator.sign_up(req.email, req.password)
    except UnconfirmedEmailError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ProviderError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _user_response(user, access_token=coordinator.access_token())


@router.post("/v1/auth/signin", response_model=AuthUserResponse)
async def sign_in(
    req: CredentialsRequest,
    coordinator: SessionCoordinator = Depends(get_session_coordinator),
):
    try:
        user = await coordinator.sign_in(req.email, req.password)
    except UnconfirmedEmailError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ProviderError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return _user_response(user, access_token=coordinator.access_token())


@router.post("/v1/auth/signout", response_model=OkResponse, dependencies=[Depends(require_session_token)])
async def sign_out(coordinator: SessionCoordinator = Depends(get_session_coordinator)):
    try:
        await coordinator.sign_out()
    except ProviderError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return OkResponse(ok=True)


@router.post("/v1/auth/password-reset", response_model=OkResponse)
async def send_password_reset(
    req: EmailRequest,
    coordinator: SessionCoordinator = Depends(get_session_coordinator),
):
    try:
        await coordinator.send_password_reset(req.email)
    except ProviderError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return OkResponse(ok=True)


@router.post("/v1/auth/password-reset/confirm", response_model=OkResponse)
async def confirm_password_reset(
    req: ConfirmPasswordResetRequest,
    coordinator: SessionCoordinator = Depends(get_session_coordinator),
):
    try:
        await coordinator.confirm_password_reset(req.password, req.code)
    except UnsupportedOperationError as exc:
        raise HTTPException(status_code=501, detail=str(exc)) from exc
    return OkResponse(ok=True)


@router.post("/v1/auth/password", response_model=OkResponse, dependencies=[Depends(require_session_token)])
async def update_password(
    req: PasswordRequest,
    coordinator: SessionCoordinator = Depends(get_session_coordinator),
):
    try:
        await coordinator.update_password(req.password)
    except ProviderError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return OkResponse(ok=True)


@router.put("/v1/auth/email", response_model=OkResponse, dependencies=[Depends(require_session_token)])
async def update_email(
    req: EmailRequest,
    coordinator: SessionCoordinator = Depends(get_session_coordinator),
):
    try:
        await coordinator.update_email(req.email)
    except NotAuthenticatedError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except ConfirmationPendingError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ProviderError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return OkResponse(ok=True)
