"""
Onboarding request models.

A freshly signed-up user is either a patient or a caregiver; the body is a
union discriminated on ``role``.
"""
import re
from typing import Annotated, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, Field

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _required_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Name is required")
    return value


def _optional_email(value: Optional[str]) -> Optional[str]:
    # An empty string means "not given"
    if not value:
        return None
    if not _EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email")
    return value


Name = Annotated[str, Field(min_length=1, max_length=200), AfterValidator(_required_name)]
OptionalEmail = Annotated[Optional[str], AfterValidator(_optional_email)]


class PatientOnboarding(BaseModel):
    role: Literal["patient"]
    name: Name
    age: int = Field(..., gt=0, lt=150)
    diagnosisStage: Optional[str] = None
    locationLabel: Optional[str] = None
    preferredName: Optional[str] = None


class CaregiverOnboarding(BaseModel):
    role: Literal["caregiver"]
    name: Name
    email: OptionalEmail = None


# Routes attach Body(discriminator="role") to this union
OnboardingRequest = Union[PatientOnboarding, CaregiverOnboarding]


class DemoOnboarding(BaseModel):
    """
    Body of POST /demo-onboard.

    Creates (once) the shared demo patient or caregiver. Fields left out get
    demo defaults.
    """
    role: Literal["patient", "caregiver"]
    name: Name
    age: Optional[int] = Field(default=None, gt=0, lt=150)
    email: OptionalEmail = None
    diagnosisStage: Optional[str] = None
    locationLabel: Optional[str] = None
    preferredName: Optional[str] = None


class OnboardingResponse(BaseModel):
    success: bool = True
    userId: str
    role: str
    agentId: Optional[str] = None
    warning: Optional[str] = None
    isDemoExisting: Optional[bool] = None
