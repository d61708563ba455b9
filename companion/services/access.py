"""
Access decisions - who is calling, and on behalf of which patient.

Two questions are answered here, once, for every handler:

``resolve_conversation_identity``
    For the conversation write path: is the caller a patient talking for
    themselves, or a caregiver talking on behalf of a named patient?

``authorize_patient_access``
    For per-patient reads and care records: may the caller see this patient
    (demo patient, the patient themselves, or a linked caregiver)?

Both return a tagged result, ``Authorized`` or ``Denied``; ``require``
turns a ``Denied`` into the matching API error.
"""
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.orm import Session

from companion.core.config import get_settings
from companion.core.exceptions import (
    AccessDeniedError,
    NotFoundError,
    ValidationError,
)
from companion.core.logging_config import get_logger
from companion.database.models import Caregiver, CaregiverPatient, Patient

logger = get_logger(__name__)


@dataclass(frozen=True)
class Authorized:
    patient: Patient
    caregiver: Optional[Caregiver] = None


@dataclass(frozen=True)
class Denied:
    reason: str
    status_code: int


AccessResult = Union[Authorized, Denied]


def find_patient_by_user(session: Session, user_id: str) -> Optional[Patient]:
    return session.query(Patient).filter(Patient.auth_user_id == user_id).one_or_none()


def find_caregiver_by_user(session: Session, user_id: str) -> Optional[Caregiver]:
    return session.query(Caregiver).filter(Caregiver.auth_user_id == user_id).one_or_none()


def resolve_conversation_identity(
    session: Session,
    user_id: str,
    patient_id: Optional[str] = None,
) -> AccessResult:
    """
    Resolve the patient a conversation message is for.

    A patient caller always talks for themselves (``patient_id`` is ignored).
    A caregiver must name the patient. No writes.
    """
    patient = find_patient_by_user(session, user_id)
    if patient is not None:
        return Authorized(patient=patient)

    caregiver = find_caregiver_by_user(session, user_id)
    if caregiver is None:
        return Denied("User not found - must complete onboarding", 404)

    if not patient_id:
        return Denied("patientId required for caregiver conversations", 400)

    patient = session.get(Patient, patient_id)
    if patient is None:
        return Denied("Patient not found", 404)

    return Authorized(patient=patient, caregiver=caregiver)


def authorize_patient_access(session: Session, user_id: str, patient_id: str) -> AccessResult:
    """
    Decide whether ``user_id`` may access ``patient_id``'s records.

    Access is granted if:
    1. the patient is the shared demo patient
    2. the caller is the patient
    3. the caller is a caregiver with an explicit link to the patient
    """
    patient = session.get(Patient, patient_id)
    if patient is None:
        return Denied("Patient not found", 404)

    if patient.auth_user_id == get_settings().demo_patient_user_id:
        return Authorized(patient=patient)

    if patient.auth_user_id == user_id:
        return Authorized(patient=patient)

    caregiver = find_caregiver_by_user(session, user_id)
    if caregiver is None:
        return Denied("User is not patient owner or authorized caregiver", 403)

    link = (
        session.query(CaregiverPatient)
        .filter(
            CaregiverPatient.caregiver_id == caregiver.id,
            CaregiverPatient.patient_id == patient.id,
        )
        .one_or_none()
    )
    if link is None:
        return Denied("Caregiver does not have access to this patient", 403)

    return Authorized(patient=patient, caregiver=caregiver)


def require(result: AccessResult) -> Authorized:
    """Return an ``Authorized`` result or raise the matching API error."""
    if isinstance(result, Authorized):
        return result

    logger.info(f"Access denied ({result.status_code}): {result.reason}")
    if result.status_code == 400:
        raise ValidationError(result.reason, field="patientId")
    if result.status_code == 404:
        raise NotFoundError(result.reason)
    raise AccessDeniedError(result.reason)
