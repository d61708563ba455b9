"""
Monitoring Service - read-only views of the patient's monitoring records.

Behavioral metrics, privacy consent history and timeline events are seeded
outside the API; these helpers only read them.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from companion.database.models import BehavioralMetrics, PrivacyConsent, TimelineEvent, utc_now

TIMELINE_LIMIT = 50


def list_privacy_consents(session: Session, patient_id: str) -> List[PrivacyConsent]:
    """Consent changes, most recent first."""
    return (
        session.query(PrivacyConsent)
        .filter(PrivacyConsent.patient_id == patient_id)
        .order_by(PrivacyConsent.changed_at.desc())
        .all()
    )


def list_timeline_events(session: Session, patient_id: str, limit: int = TIMELINE_LIMIT) -> List[TimelineEvent]:
    return (
        session.query(TimelineEvent)
        .filter(TimelineEvent.patient_id == patient_id)
        .order_by(TimelineEvent.timestamp.desc())
        .limit(limit)
        .all()
    )


def todays_behavioral_metrics(session: Session, patient_id: str) -> Optional[BehavioralMetrics]:
    return (
        session.query(BehavioralMetrics)
        .filter(BehavioralMetrics.patient_id == patient_id, BehavioralMetrics.date == utc_now().date())
        .one_or_none()
    )
