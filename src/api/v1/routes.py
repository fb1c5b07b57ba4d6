"""
API v1 routes.

Defines REST endpoints for member signup and email verification.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import get_membership_registry, get_verification_ledger
from src.api.models import (
    AvailabilityResponse,
    ErrorResponse,
    ResendRequest,
    ResendResponse,
    SignupRequest,
    SignupResponse,
    VerifyResponse,
)
from src.domain.exceptions import (
    AlreadyVerified,
    DuplicateEmail,
    DuplicateStudentId,
    MemberNotFound,
    ResendTooSoon,
    SendFailure,
    TokenAlreadyUsed,
    TokenExpired,
    TokenNotFound,
    ValidationError,
)
from src.domain.ledger import VerificationLedger
from src.domain.models import TOKEN_TTL_MINUTES
from src.domain.registry import MembershipRegistry

router = APIRouter(tags=["v1"])


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email or student ID already registered"},
        422: {"description": "Validation error"},
    },
    summary="Sign up a new member",
    description="Create a member account for an institutional email address. "
    f"A verification link valid for {TOKEN_TTL_MINUTES} minutes is emailed to the address.",
)
def signup(
    request_data: SignupRequest,
    registry: MembershipRegistry = Depends(get_membership_registry),
) -> SignupResponse:
    """
    Sign up a new member and send the verification email.

    - **email**: Institutional email address
    - **studentId**: 8-digit student number
    - **password**: Password (minimum 8 characters)
    - **department**: Department name
    - **nickname**: Nickname (2-10 characters)
    """
    try:
        result = registry.signup(
            request_data.email,
            request_data.student_id,
            request_data.password,
            request_data.department,
            request_data.nickname,
        )
    except DuplicateEmail:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        ) from None
    except DuplicateStudentId:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Student ID already registered",
        ) from None
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from None

    if result.verification_sent:
        message = "Verification email sent"
    else:
        message = "Account created, but the verification email could not be sent. Request a resend."
    return SignupResponse(
        email=result.member.email,
        nickname=result.member.nickname,
        message=message,
    )


@router.get(
    "/verify",
    response_model=VerifyResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown token"},
        409: {"model": ErrorResponse, "description": "Token already used"},
        410: {"model": ErrorResponse, "description": "Token expired"},
    },
    summary="Verify email address",
    description="Redeem the single-use token from the verification link.",
)
def verify(
    token: str = Query(..., min_length=1, description="Token from the verification link"),
    ledger: VerificationLedger = Depends(get_verification_ledger),
) -> VerifyResponse:
    """Redeem a verification token and mark the member verified."""
    try:
        ledger.verify(token)
    except TokenNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invalid verification token",
        ) from None
    except TokenAlreadyUsed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Verification token already used",
        ) from None
    except TokenExpired:
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail="Verification token expired",
        ) from None
    return VerifyResponse(message="Email verified")


@router.post(
    "/verify/resend",
    response_model=ResendResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"model": ErrorResponse, "description": "No member with this email"},
        409: {"model": ErrorResponse, "description": "Member already verified"},
        429: {"model": ErrorResponse, "description": "Resend requested too soon"},
        502: {"model": ErrorResponse, "description": "Verification email could not be sent"},
    },
    summary="Resend verification email",
    description="Issue a fresh verification link. Earlier links stay valid until used or expired.",
)
def resend(
    request_data: ResendRequest,
    registry: MembershipRegistry = Depends(get_membership_registry),
) -> ResendResponse:
    """Issue and email a new verification token."""
    try:
        registry.resend(request_data.email)
    except MemberNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found",
        ) from None
    except AlreadyVerified:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already verified",
        ) from None
    except ResendTooSoon as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Please wait before requesting another verification email",
            headers={"Retry-After": str(exc.retry_after_seconds)},
        ) from None
    except SendFailure:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Verification email could not be sent",
        ) from None
    return ResendResponse(
        message="Verification email sent",
        email=request_data.email.strip().lower(),
    )


@router.get(
    "/members/exists",
    response_model=AvailabilityResponse,
    responses={422: {"description": "Neither email nor studentId given"}},
    summary="Check email or student ID availability",
)
def member_exists(
    email: str | None = Query(None),
    student_id: str | None = Query(None, alias="studentId"),
    registry: MembershipRegistry = Depends(get_membership_registry),
) -> AvailabilityResponse:
    """Report whether an email or student ID is already registered."""
    if email:
        return AvailabilityResponse(taken=registry.is_email_taken(email))
    if student_id:
        return AvailabilityResponse(taken=registry.is_student_id_taken(student_id))
    raise HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail="Provide email or studentId",
    )
