# src/social_desk/api/endpoints/auth.py
"""Token exchange endpoint."""

from fastapi import APIRouter, HTTPException, status

from social_desk.api.dependencies import TokenExchangeDep
from social_desk.api.errors import to_http_exception
from social_desk.schemas import CustomTokenRequest, CustomTokenResponse
from social_desk.services.identity import IdentityError, InvalidAssertionError

router = APIRouter(tags=["authentication"])


@router.post("/create-custom-token", response_model=CustomTokenResponse)
async def create_custom_token(
    request: CustomTokenRequest,
    exchange: TokenExchangeDep,
) -> CustomTokenResponse:
    """Exchange an identity provider ID token for a custom session token."""
    if not request.id_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ID token is required")

    try:
        token = await exchange.exchange(request.id_token)
    except InvalidAssertionError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid ID token: {exc}",
        ) from exc
    except IdentityError as exc:
        raise to_http_exception(exc) from exc

    return CustomTokenResponse(custom_token=token)
