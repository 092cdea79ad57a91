from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import get_auth_service, get_current_user, get_refresh_user
from app.core.rate_limit import standard_rate_limit, strict_rate_limit
from app.models.users import User
from app.services.auth import AuthService
import app.schemas.auth as schemas

router = APIRouter()
group_tags: List[str] = ["Auth"]

_error_responses = {
    status.HTTP_400_BAD_REQUEST: {"model": schemas.ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": schemas.ErrorResponse},
    status.HTTP_429_TOO_MANY_REQUESTS: {"model": schemas.ErrorResponse},
}


@router.get(
    "/nonce",
    tags=group_tags,
    response_model=schemas.NonceResponse,
    responses=_error_responses,
    dependencies=[Depends(strict_rate_limit)],
)
def get_nonce(
    address: str = Query(default="", description="Stellar wallet address (G...)"),
    auth: AuthService = Depends(get_auth_service),
) -> schemas.NonceResponse:
    """Generate and store a nonce for a wallet address.

    The wallet must sign `{"nonce":"<nonce>"}` and send the signature to /auth/connect.
    Requesting a new nonce invalidates the previous one.
    """
    return schemas.NonceResponse(nonce=auth.issue_nonce(address))


@router.post(
    "/connect",
    tags=group_tags,
    response_model=schemas.ConnectResponse,
    responses={**_error_responses, status.HTTP_404_NOT_FOUND: {"model": schemas.ErrorResponse}},
    dependencies=[Depends(standard_rate_limit)],
)
def connect(
    body: Optional[schemas.ConnectRequest] = None,
    auth: AuthService = Depends(get_auth_service),
) -> schemas.ConnectResponse:
    """Verify a signed nonce and return an access token and a refresh token."""
    body = body or schemas.ConnectRequest()
    pair = auth.connect(body.address, body.signature)
    return schemas.ConnectResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post(
    "/refresh",
    tags=group_tags,
    response_model=schemas.RefreshResponse,
    response_model_exclude_none=True,
    responses=_error_responses,
    dependencies=[Depends(standard_rate_limit)],
)
def refresh(
    user: User = Depends(get_refresh_user),
    auth: AuthService = Depends(get_auth_service),
) -> schemas.RefreshResponse:
    """Exchange a live refresh token for a new access token."""
    pair = auth.refresh(user)
    return schemas.RefreshResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post(
    "/logout",
    tags=group_tags,
    response_model=schemas.Message,
    responses=_error_responses,
)
def logout(
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> schemas.Message:
    """Drop the stored refresh token. Issued access tokens stay valid until they expire."""
    auth.logout(str(user.id))
    return schemas.Message(message="Logged out successfully")


@router.get(
    "/me",
    tags=group_tags,
    response_model=schemas.MeResponse,
    responses=_error_responses,
)
def me(user: User = Depends(get_current_user)) -> schemas.MeResponse:
    return schemas.MeResponse(id=str(user.id), address=str(user.address))
