"""
Onboarding Routes - first-time setup after sign-up, and the shared demo accounts.
"""
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Response, status

from companion.api.dependencies import get_onboarding_service
from companion.core.auth import Caller, get_current_caller
from companion.models.common import ErrorResponse
from companion.models.onboarding import DemoOnboarding, OnboardingRequest, OnboardingResponse
from companion.services.onboarding_service import OnboardingService

router = APIRouter(
    tags=["Onboarding"],
    responses={
        409: {"model": ErrorResponse, "description": "User already onboarded"},
    },
)


@router.post(
    "/onboard",
    response_model=OnboardingResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create the caller's patient or caregiver record",
    description="""
    `role: "patient"` creates a patient and, when the memory service is
    reachable, their companion agent. If the agent cannot be created the
    patient is still created and the response carries a `warning`.

    `role: "caregiver"` creates a caregiver.
    """,
)
def onboard(
    request: Annotated[OnboardingRequest, Body(discriminator="role")],
    caller: Caller = Depends(get_current_caller),
    service: OnboardingService = Depends(get_onboarding_service),
) -> OnboardingResponse:
    return OnboardingResponse.model_validate(service.onboard(caller.user_id, request))


@router.post(
    "/demo-onboard",
    response_model=OnboardingResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create the shared demo patient or caregiver",
    description="""
    Needs no credentials. The demo records use fixed auth ids
    (`DEMO_PATIENT_USER_ID`, `DEMO_CAREGIVER_USER_ID`), so they never clash
    with real accounts.

    Returns `201` when the record is created and `200` with
    `isDemoExisting: true` when it already exists.
    """,
)
def demo_onboard(
    request: DemoOnboarding,
    response: Response,
    service: OnboardingService = Depends(get_onboarding_service),
) -> OnboardingResponse:
    payload, created = service.onboard_demo(request)
    if not created:
        response.status_code = status.HTTP_200_OK
    return OnboardingResponse.model_validate(payload)
