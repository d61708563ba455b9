"""
Care Records Service - medications, doses, sleep logs and daily activities.

Plain reads and writes against the patient's care records. Access has
already been checked by the route. "Today" is the current UTC calendar day.
"""
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from companion.core.exceptions import NotFoundError
from companion.core.logging_config import get_logger
from companion.database.models import DailyActivity, Medication, MedicationDose, SleepLog, utc_now
from companion.models.patient import DailyActivityCreate, DoseCreate, MedicationCreate, SleepLogCreate

logger = get_logger(__name__)


def list_active_medications(session: Session, patient_id: str) -> List[Medication]:
    """Active medications, newest first."""
    return (
        session.query(Medication)
        .filter(Medication.patient_id == patient_id, Medication.active.is_(True))
        .order_by(Medication.created_at.desc())
        .all()
    )


def create_medication(session: Session, patient_id: str, body: MedicationCreate) -> Medication:
    medication = Medication(
        patient_id=patient_id,
        name=body.name,
        dosage=body.dosage,
        time_of_day=body.timeOfDay,
        reminder_time=body.reminderTime,
        active=True,
    )
    session.add(medication)
    session.commit()
    logger.info(f"Created medication {medication.id} for patient {patient_id}")
    return medication


def record_dose(session: Session, patient_id: str, medication_id: str, body: DoseCreate) -> MedicationDose:
    """
    Record a dose of one of the patient's medications as taken or skipped.

    Raises:
        NotFoundError: the medication does not exist or belongs to another patient
    """
    medication = (
        session.query(Medication)
        .filter(Medication.id == medication_id, Medication.patient_id == patient_id)
        .one_or_none()
    )
    if medication is None:
        raise NotFoundError("Medication not found")

    dose = MedicationDose(
        medication_id=medication.id,
        scheduled_for=_naive(body.scheduledFor),
        taken_at=_naive(body.takenAt),
        skipped=body.skipped,
        notes=body.notes or None,
    )
    session.add(dose)
    session.commit()
    logger.info(
        f"Recorded dose of medication {medication.id} "
        f"({'skipped' if dose.skipped else 'taken' if dose.taken_at else 'pending'})"
    )
    return dose


def todays_medications(session: Session, patient_id: str) -> Dict[str, Any]:
    """
    Active medications with the doses scheduled for today.

    ``stats`` counts today's doses: taken, total, and pending (neither taken
    nor skipped).
    """
    medications = list_active_medications(session, patient_id)
    start, end = _today_bounds()

    doses_by_medication: Dict[str, List[MedicationDose]] = defaultdict(list)
    if medications:
        doses = (
            session.query(MedicationDose)
            .filter(
                MedicationDose.medication_id.in_([medication.id for medication in medications]),
                MedicationDose.scheduled_for >= start,
                MedicationDose.scheduled_for < end,
            )
            .order_by(MedicationDose.scheduled_for.asc())
            .all()
        )
        for dose in doses:
            doses_by_medication[dose.medication_id].append(dose)

    todays_doses = [dose for doses in doses_by_medication.values() for dose in doses]

    return {
        "medications": [
            {
                "id": medication.id,
                "name": medication.name,
                "dosage": medication.dosage,
                "timeOfDay": medication.time_of_day,
                "doses": [
                    {
                        "id": dose.id,
                        "scheduledFor": dose.scheduled_for.isoformat(),
                        "takenAt": dose.taken_at.isoformat() if dose.taken_at else None,
                        "skipped": bool(dose.skipped),
                    }
                    for dose in doses_by_medication[medication.id]
                ],
            }
            for medication in medications
        ],
        "stats": {
            "taken": sum(1 for dose in todays_doses if dose.taken_at is not None),
            "total": len(todays_doses),
            "pending": sum(1 for dose in todays_doses if dose.is_pending),
        },
    }


def list_sleep_logs(session: Session, patient_id: str) -> List[SleepLog]:
    return (
        session.query(SleepLog)
        .filter(SleepLog.patient_id == patient_id)
        .order_by(SleepLog.date.desc())
        .all()
    )


def todays_sleep_log(session: Session, patient_id: str) -> Optional[SleepLog]:
    return (
        session.query(SleepLog)
        .filter(SleepLog.patient_id == patient_id, SleepLog.date == _today())
        .one_or_none()
    )


def upsert_sleep_log(session: Session, patient_id: str, body: SleepLogCreate) -> SleepLog:
    """
    Create or replace the sleep log for the body's calendar date.

    Only one log exists per patient and date.
    """
    log_date = body.date.date()
    sleep_log = (
        session.query(SleepLog)
        .filter(SleepLog.patient_id == patient_id, SleepLog.date == log_date)
        .one_or_none()
    )

    if sleep_log is None:
        sleep_log = SleepLog(patient_id=patient_id, date=log_date)
        session.add(sleep_log)
        action = "Created"
    else:
        sleep_log.updated_at = utc_now()
        action = "Updated"

    sleep_log.bedtime = _naive(body.bedtime)
    sleep_log.wake_time = _naive(body.wakeTime)
    sleep_log.total_hours = body.totalHours
    sleep_log.quality = body.quality
    sleep_log.notes = body.notes

    session.commit()
    logger.info(f"{action} sleep log for patient {patient_id} on {log_date.isoformat()}")
    return sleep_log


def list_daily_activities(session: Session, patient_id: str) -> List[DailyActivity]:
    return (
        session.query(DailyActivity)
        .filter(DailyActivity.patient_id == patient_id)
        .order_by(DailyActivity.date.desc(), DailyActivity.completed_at.desc())
        .all()
    )


def create_daily_activity(session: Session, patient_id: str, body: DailyActivityCreate) -> DailyActivity:
    activity = DailyActivity(
        patient_id=patient_id,
        date=body.date.date(),
        activity_type=body.activityType,
        description=body.description or None,
        duration=body.duration,
    )
    session.add(activity)
    session.commit()
    logger.info(f"Created {activity.activity_type} activity {activity.id} for patient {patient_id}")
    return activity


def todays_activities(session: Session, patient_id: str) -> Dict[str, Any]:
    """Today's activities, most recently completed first, with totals."""
    activities = (
        session.query(DailyActivity)
        .filter(DailyActivity.patient_id == patient_id, DailyActivity.date == _today())
        .order_by(DailyActivity.completed_at.desc())
        .all()
    )

    return {
        "activities": [
            {
                "id": activity.id,
                "type": activity.activity_type,
                "description": activity.description,
                "duration": activity.duration,
                "completedAt": activity.completed_at.isoformat(),
            }
            for activity in activities
        ],
        "stats": {
            "totalActivities": len(activities),
            "totalMinutes": sum(activity.duration or 0 for activity in activities),
        },
    }


def _today() -> date:
    return utc_now().date()


def _today_bounds() -> Tuple[datetime, datetime]:
    start = datetime.combine(_today(), time.min)
    return start, start + timedelta(days=1)


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    """Store datetimes as naive UTC, like every other column."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
