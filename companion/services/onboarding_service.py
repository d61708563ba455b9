"""
Onboarding Service - first-time setup of a signed-up user.

A patient gets a database record and then, best-effort, a memory agent
seeded with their profile. A patient whose agent could not be created can
still use the care-record features; conversation requests answer
"agent not configured" until an agent is attached.
"""
from typing import Any, Dict, Tuple, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from companion.core.config import get_settings
from companion.core.exceptions import ConflictError
from companion.core.logging_config import get_logger
from companion.database.models import Caregiver, Patient
from companion.llm.prompts import build_patient_memory_blocks
from companion.memory.agent_client import MemoryAgentClient
from companion.models.onboarding import CaregiverOnboarding, DemoOnboarding, PatientOnboarding
from companion.services.access import find_caregiver_by_user, find_patient_by_user
from companion.services.results import FailureKind, run_step

logger = get_logger(__name__)

AGENT_UNAVAILABLE_WARNING = "AI companion unavailable"

DEMO_PATIENT_DEFAULTS = {
    "age": 70,
    "diagnosisStage": "Early-stage dementia",
    "locationLabel": "Home",
    "preferredName": "Demo",
}
DEMO_CAREGIVER_EMAIL = "demo@example.com"


class OnboardingService:
    """Creates patient and caregiver records for authenticated users."""

    def __init__(self, session: Session, memory_client: MemoryAgentClient):
        self.session = session
        self.memory_client = memory_client

    def onboard(
        self,
        user_id: str,
        request: Union[PatientOnboarding, CaregiverOnboarding],
    ) -> Dict[str, Any]:
        """
        Create the caller's record.

        Raises:
            ConflictError: the user already has a patient or caregiver record
        """
        if find_patient_by_user(self.session, user_id) or find_caregiver_by_user(self.session, user_id):
            logger.warning(f"User already onboarded: {user_id[:12]}")
            raise ConflictError("User already onboarded")

        if isinstance(request, PatientOnboarding):
            return self._onboard_patient(user_id, request)
        return self._onboard_caregiver(user_id, request)

    def onboard_demo(self, request: DemoOnboarding) -> Tuple[Dict[str, Any], bool]:
        """
        Create the shared demo patient or caregiver if it does not exist yet.

        Returns:
            Tuple of (response payload, whether a record was created)
        """
        settings = get_settings()

        if request.role == "patient":
            user_id = settings.demo_patient_user_id
            existing = find_patient_by_user(self.session, user_id)
            if existing:
                return {
                    "success": True,
                    "userId": existing.id,
                    "role": "patient",
                    "agentId": existing.agent_id,
                    "isDemoExisting": True,
                }, False

            patient_request = PatientOnboarding(
                role="patient",
                name=request.name,
                age=request.age or DEMO_PATIENT_DEFAULTS["age"],
                diagnosisStage=request.diagnosisStage or DEMO_PATIENT_DEFAULTS["diagnosisStage"],
                locationLabel=request.locationLabel or DEMO_PATIENT_DEFAULTS["locationLabel"],
                preferredName=request.preferredName or DEMO_PATIENT_DEFAULTS["preferredName"],
            )
            return self._onboard_patient(user_id, patient_request), True

        user_id = settings.demo_caregiver_user_id
        existing = find_caregiver_by_user(self.session, user_id)
        if existing:
            return {
                "success": True,
                "userId": existing.id,
                "role": "caregiver",
                "isDemoExisting": True,
            }, False

        caregiver_request = CaregiverOnboarding(
            role="caregiver",
            name=request.name,
            email=request.email or DEMO_CAREGIVER_EMAIL,
        )
        return self._onboard_caregiver(user_id, caregiver_request), True

    def _onboard_patient(self, user_id: str, request: PatientOnboarding) -> Dict[str, Any]:
        patient = Patient(
            auth_user_id=user_id,
            name=request.name,
            age=request.age,
            diagnosis_stage=request.diagnosisStage or None,
            location_label=request.locationLabel or None,
            preferred_name=request.preferredName or None,
        )
        self._save(patient)
        logger.info(f"Created patient {patient.id}")

        blocks = build_patient_memory_blocks(
            name=request.name,
            age=request.age,
            diagnosis_stage=request.diagnosisStage,
            location_label=request.locationLabel,
            preferred_name=request.preferredName,
        )
        created = run_step(
            "create_agent",
            lambda: self.memory_client.create_agent(f"patient-{patient.id}", blocks),
            FailureKind.RECOVERABLE,
        )

        if not created.ok:
            return {
                "success": True,
                "userId": patient.id,
                "role": "patient",
                "agentId": None,
                "warning": AGENT_UNAVAILABLE_WARNING,
            }

        patient.agent_id = created.value.id
        self.session.commit()
        logger.info(f"Attached memory agent {patient.agent_id} to patient {patient.id}")

        return {
            "success": True,
            "userId": patient.id,
            "role": "patient",
            "agentId": patient.agent_id,
        }

    def _onboard_caregiver(self, user_id: str, request: CaregiverOnboarding) -> Dict[str, Any]:
        caregiver = Caregiver(
            auth_user_id=user_id,
            name=request.name,
            email=request.email,
        )
        self._save(caregiver)
        logger.info(f"Created caregiver {caregiver.id}")

        return {"success": True, "userId": caregiver.id, "role": "caregiver"}

    def _save(self, record) -> None:
        # A concurrent onboarding of the same user loses on the unique auth_user_id
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError("User already onboarded") from e
