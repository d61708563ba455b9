"""
Patient Routes - profile, care records, monitoring records and insights.

Every endpoint here is scoped to one patient and requires access to that
patient (the patient, a linked caregiver, or anyone for the demo patient).
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from companion.api.dependencies import get_accessible_patient, get_db_session, get_insights_service
from companion.core.logging_config import get_logger
from companion.database.models import Patient
from companion.models.common import ErrorResponse
from companion.models.insights import AnalyzeInsightsRequest, AnalyzeInsightsResponse, InsightsResponse
from companion.models.patient import DailyActivityCreate, DoseCreate, MedicationCreate, SleepLogCreate
from companion.services import care_records_service, monitoring_service
from companion.services.insights_service import InsightsService

logger = get_logger(__name__)

router = APIRouter(
    prefix="/patients",
    tags=["Patients"],
    responses={
        403: {"model": ErrorResponse, "description": "No access to this patient"},
        404: {"model": ErrorResponse, "description": "Patient not found"},
    },
)


@router.get("/{patient_id}", summary="Get a patient's profile")
def get_patient(patient: Patient = Depends(get_accessible_patient)) -> Dict[str, Any]:
    return {"patient": patient.to_dict()}


# ============================================================
# Medications
# ============================================================

@router.get("/{patient_id}/medications", summary="List active medications")
def list_medications(
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    medications = care_records_service.list_active_medications(session, patient.id)
    return {"medications": [medication.to_dict() for medication in medications]}


@router.post(
    "/{patient_id}/medications",
    status_code=status.HTTP_201_CREATED,
    summary="Add a medication",
)
def create_medication(
    body: MedicationCreate,
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    medication = care_records_service.create_medication(session, patient.id, body)
    return {"medication": medication.to_dict()}


@router.get("/{patient_id}/medications/today", summary="Today's medications and doses")
def todays_medications(
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    return care_records_service.todays_medications(session, patient.id)


@router.post(
    "/{patient_id}/medications/{medication_id}/doses",
    status_code=status.HTTP_201_CREATED,
    summary="Record a medication dose",
    description="""
    Records a scheduled dose as taken (`takenAt`) or skipped (`skipped: true`).
    The medication must belong to the patient.
    """,
)
def record_dose(
    medication_id: str,
    body: DoseCreate,
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    dose = care_records_service.record_dose(session, patient.id, medication_id, body)
    return {"dose": dose.to_dict()}


# ============================================================
# Sleep logs
# ============================================================

@router.get("/{patient_id}/sleep-logs", summary="List sleep logs, newest first")
def list_sleep_logs(
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    sleep_logs = care_records_service.list_sleep_logs(session, patient.id)
    return {"sleepLogs": [sleep_log.to_dict() for sleep_log in sleep_logs]}


@router.post(
    "/{patient_id}/sleep-logs",
    status_code=status.HTTP_201_CREATED,
    summary="Record a night of sleep",
    description="Creates the log for the given date, or replaces the existing one.",
)
def upsert_sleep_log(
    body: SleepLogCreate,
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    sleep_log = care_records_service.upsert_sleep_log(session, patient.id, body)
    return {"sleepLog": sleep_log.to_dict()}


@router.get("/{patient_id}/sleep-logs/today", summary="Today's sleep log")
def todays_sleep_log(
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    sleep_log = care_records_service.todays_sleep_log(session, patient.id)
    return {"sleepLog": sleep_log.to_dict() if sleep_log else None}


# ============================================================
# Daily activities
# ============================================================

@router.get("/{patient_id}/daily-activities", summary="List daily activities, newest first")
def list_daily_activities(
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    activities = care_records_service.list_daily_activities(session, patient.id)
    return {"activities": [activity.to_dict() for activity in activities]}


@router.post(
    "/{patient_id}/daily-activities",
    status_code=status.HTTP_201_CREATED,
    summary="Record a daily activity",
)
def create_daily_activity(
    body: DailyActivityCreate,
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    activity = care_records_service.create_daily_activity(session, patient.id, body)
    return {"activity": activity.to_dict()}


@router.get("/{patient_id}/daily-activities/today", summary="Today's activities with totals")
def todays_activities(
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    return care_records_service.todays_activities(session, patient.id)


# ============================================================
# Monitoring
# ============================================================

@router.get("/{patient_id}/behavioral-metrics", summary="Today's behavioral metrics")
def get_behavioral_metrics(
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    metrics = monitoring_service.todays_behavioral_metrics(session, patient.id)
    return {"metrics": metrics.to_dict() if metrics else None}


@router.get("/{patient_id}/privacy-consents", summary="Privacy consent history")
def list_privacy_consents(
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    consents = monitoring_service.list_privacy_consents(session, patient.id)
    return {"consents": [consent.to_dict() for consent in consents]}


@router.get(
    "/{patient_id}/timeline",
    summary="Recent timeline events",
    description="The 50 most recent events, newest first.",
)
def list_timeline_events(
    patient: Patient = Depends(get_accessible_patient),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    events = monitoring_service.list_timeline_events(session, patient.id)
    return {"events": [event.to_dict() for event in events]}


# ============================================================
# Insights
# ============================================================

@router.get(
    "/{patient_id}/insights",
    response_model=InsightsResponse,
    summary="Get the latest behavioral insights",
)
def get_insights(
    patient: Patient = Depends(get_accessible_patient),
    service: InsightsService = Depends(get_insights_service),
) -> InsightsResponse:
    return InsightsResponse(insights=service.get_insights(patient.id))


@router.post(
    "/{patient_id}/insights/analyze",
    response_model=AnalyzeInsightsResponse,
    response_model_exclude_none=True,
    summary="Analyze recent conversations",
    description="""
    Runs a behavioral analysis over the last `lookbackDays` (1-90, default 30)
    of conversations and stores the result.

    An analysis younger than 6 hours is returned as-is (`cached: true`)
    unless `forceRefresh` is set.
    """,
    responses={500: {"model": ErrorResponse, "description": "Analysis failed"}},
)
def analyze_insights(
    body: Optional[AnalyzeInsightsRequest] = None,
    patient: Patient = Depends(get_accessible_patient),
    service: InsightsService = Depends(get_insights_service),
) -> AnalyzeInsightsResponse:
    body = body or AnalyzeInsightsRequest()
    result = service.analyze(patient, lookback_days=body.lookbackDays, force_refresh=body.forceRefresh)
    return AnalyzeInsightsResponse.model_validate(result)
