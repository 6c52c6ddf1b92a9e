"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Wire names are camelCase; Python attributes stay snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ValidateCaptchaRequest(ApiModel):
    """Request model for exchanging a captcha solution for a session."""

    captcha_token: str = Field(..., alias="captchaToken", min_length=1)


class ValidateCaptchaResponse(ApiModel):
    success: bool = True
    session_token: str = Field(..., alias="sessionToken")


class CampaignInfoResponse(ApiModel):
    usd_amount: str = Field(..., alias="usdAmount")
    currency_display_name: str = Field(..., alias="currencyDisplayName")


class RegisterRequest(ApiModel):
    """
    Request model for reward registration.

    The email is checked by the domain after the session is consumed,
    so it is a plain string here.
    """

    email: str
    data: str = Field(..., description="base64 of edgerewards|<walletAddress>|<ticker>")
    session_token: str = Field(..., alias="sessionToken")


class RegisterResponse(ApiModel):
    """Response model for successful registration."""

    success: bool = True
    message: str
    verification_id: str = Field(..., alias="verificationId")


class VerifyCodeRequest(ApiModel):
    """Request model for code confirmation."""

    verification_id: str = Field(..., alias="verificationId", min_length=1)
    code: str = Field(
        ...,
        min_length=4,
        max_length=4,
        pattern=r"^\d{4}$",
        description="4-digit verification code",
    )


class VerifyCodeResponse(ApiModel):
    """Response model for a confirmed claim (sent or delayed payout)."""

    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
