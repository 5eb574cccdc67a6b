from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from authsync.api.deps import get_session_coordinator, require_auth, require_session_token
from authsync.api.schemas.me import MeResponse, UpdateProfileRequest
from authsync.application.use_cases.session_coordinator import SessionCoordinator
from authsync.domain.entities.formatted_user import FormattedUser
from authsync.domain.exceptions import ConfirmationPendingError, NotAuthenticatedError, ProviderError


router = APIRouter()


@router.get("/v1/me", response_model=MeResponse)
def get_me(user: FormattedUser = Depends(require_auth)):
    return MeResponse(
        uid=user.uid,
        email=user.email,
        name=user.name,
        providers=list(user.providers),
        customer_id=user.customer_id,
        subscription_id=user.subscription_id,
        price_id=user.price_id,
        subscription_status=user.subscription_status,
        plan_id=user.plan_id,
        plan_is_active=user.plan_is_active,
    )


@router.patch("/v1/me", status_code=204, dependencies=[Depends(require_session_token)])
async def update_me(
    req: UpdateProfileRequest,
    coordinator: SessionCoordinator = Depends(get_session_coordinator),
):
    try:
        await coordinator.update_profile(req.fields)
    except NotAuthenticatedError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except ConfirmationPendingError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ProviderError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
