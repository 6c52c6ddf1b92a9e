"""
API v1 routes.

Defines REST endpoints for the reward claim API. Handlers are plain
``def`` functions: the domain service blocks on the database and on
outbound HTTP, so FastAPI runs each request in its threadpool.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse

from src.api.dependencies import get_base_url, get_captcha_broker, get_rewards_service
from src.api.errors import http_error, status_for
from src.api.models import (
    CampaignInfoResponse,
    ErrorResponse,
    RegisterRequest,
    RegisterResponse,
    ValidateCaptchaRequest,
    ValidateCaptchaResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from src.api.pages import render_error_page, render_thank_you_page
from src.domain.captcha import CaptchaSessionBroker
from src.domain.exceptions import ClaimAlreadyVerified, ClaimExpired, RewardsError
from src.domain.rewards import RewardsService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])


@router.post(
    "/captcha/validate",
    response_model=ValidateCaptchaResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed request"},
        403: {"model": ErrorResponse, "description": "CAPTCHA verification failed"},
    },
    summary="Exchange a captcha solution for a session token",
)
def validate_captcha(
    request_data: ValidateCaptchaRequest,
    broker: CaptchaSessionBroker = Depends(get_captcha_broker),
) -> ValidateCaptchaResponse:
    """
    Verify a captcha solution and open a one-time session.

    The session token must be presented once to **/register** within
    10 minutes.
    """
    try:
        session_token = broker.validate_captcha(request_data.captcha_token)
    except RewardsError as e:
        raise http_error(e) from None
    return ValidateCaptchaResponse(success=True, session_token=session_token)


@router.get(
    "/campaign-info",
    response_model=CampaignInfoResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing ticker"},
        404: {"model": ErrorResponse, "description": "No active campaign"},
    },
    summary="Reward amount for the active campaign of a currency",
)
def campaign_info(
    ticker: str | None = Query(default=None),
    service: RewardsService = Depends(get_rewards_service),
) -> CampaignInfoResponse:
    if not ticker:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing ticker parameter")
    try:
        campaign = service.campaign_info(ticker)
    except RewardsError as e:
        raise http_error(e) from None
    return CampaignInfoResponse(
        usd_amount=str(campaign.usd_amount),
        currency_display_name=campaign.currency_display_name,
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid email or data parameter"},
        403: {"model": ErrorResponse, "description": "Invalid or expired session"},
        404: {"model": ErrorResponse, "description": "No active campaign"},
        409: {"model": ErrorResponse, "description": "Duplicate claim"},
        500: {"model": ErrorResponse, "description": "Verification email could not be sent"},
    },
    summary="Register a reward claim",
    description="Consume a captcha session and send a 4-digit code and a "
    "confirmation link to the provided email.",
)
def register(
    request_data: RegisterRequest,
    service: RewardsService = Depends(get_rewards_service),
    base_url: str = Depends(get_base_url),
) -> RegisterResponse:
    """
    Register a reward claim.

    - **email**: Email address that will receive the code
    - **data**: base64 of `edgerewards|<walletAddress>|<ticker>`
    - **sessionToken**: One-time token from **/captcha/validate**
    """
    logger.info("Serving register")
    try:
        claim = service.register(
            request_data.email,
            request_data.data,
            request_data.session_token,
            base_url,
        )
    except RewardsError as e:
        raise http_error(e) from None
    return RegisterResponse(
        success=True,
        message="Verification email sent",
        verification_id=claim.id,
    )


@router.post(
    "/verify-code",
    response_model=VerifyCodeResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid code"},
        404: {"model": ErrorResponse, "description": "Claim not found"},
        409: {"model": ErrorResponse, "description": "Claim already verified or paid"},
        410: {"model": ErrorResponse, "description": "Code expired"},
    },
    summary="Confirm a claim with the emailed code",
)
def verify_code(
    request_data: VerifyCodeRequest,
    service: RewardsService = Depends(get_rewards_service),
) -> VerifyCodeResponse:
    """
    Confirm a claim and trigger the payout.

    Succeeds once the email is confirmed, even if the payout itself is
    delayed; the message tells the two cases apart.
    """
    logger.info("Serving verify-code")
    try:
        outcome = service.confirm_with_code(request_data.verification_id, request_data.code)
    except RewardsError as e:
        raise http_error(e) from None
    return VerifyCodeResponse(success=True, message=outcome.message)


@router.get(
    "/verify",
    response_class=HTMLResponse,
    summary="Confirm a claim through the emailed link",
)
def verify_link(
    token: str | None = Query(default=None),
    service: RewardsService = Depends(get_rewards_service),
) -> HTMLResponse:
    logger.info("Serving verify (email link)")
    if not token:
        return HTMLResponse(render_error_page("Missing verification token"), status_code=400)
    try:
        outcome = service.confirm_with_token(token)
    except RewardsError as e:
        return HTMLResponse(render_error_page(_link_error_message(e)), status_code=status_for(e))
    return HTMLResponse(render_thank_you_page(outcome.message))


def _link_error_message(error: RewardsError) -> str:
    """Wording for the browser page; the JSON API keeps the domain message."""
    if isinstance(error, ClaimAlreadyVerified):
        return "This email has already been verified"
    if isinstance(error, ClaimExpired):
        return "This verification link has expired. Please register again."
    return error.message
