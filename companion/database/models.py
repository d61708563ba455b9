"""
Database Models - SQLAlchemy ORM models for persistent storage.

This module defines the schema for:
- Patients, caregivers and the caregiver/patient access links
- Conversation threads and their messages
- Care records (medications and their doses, sleep logs, daily activities)
- Monitoring records (behavioral metrics, privacy consents, timeline events)
- LLM-generated behavioral insights

Timestamps are naive UTC. ``Conversation.last_message_at`` is maintained by
the conversation pipeline, not by the database.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class MessageRole:
    """Allowed values of ``Message.role``."""
    USER = "USER"
    ASSISTANT = "ASSISTANT"
    SYSTEM = "SYSTEM"


class ConsentType:
    """Allowed values of ``PrivacyConsent.consent_type``."""
    LOCATION_TRACKING = "LOCATION_TRACKING"
    CONVERSATION_RECORDING = "CONVERSATION_RECORDING"
    MEDICATION_TRACKING = "MEDICATION_TRACKING"
    ACTIVITY_MONITORING = "ACTIVITY_MONITORING"


class EventType:
    CONVERSATION = "CONVERSATION"
    SENSOR_ALERT = "SENSOR_ALERT"
    PATTERN_CHANGE = "PATTERN_CHANGE"
    MEMORY_UPDATE = "MEMORY_UPDATE"
    MEDICATION = "MEDICATION"
    ACTIVITY = "ACTIVITY"


class Severity:
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (matches the column type)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class Patient(Base):
    """
    A person living with dementia who talks to the companion.

    ``agent_id`` addresses the patient's profile in the memory agent service.
    It is attached once during onboarding.
    """
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=new_id)
    auth_user_id = Column(String(128), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    age = Column(Integer, nullable=False)
    preferred_name = Column(String(200), nullable=True)
    location_label = Column(String(200), nullable=True)
    diagnosis_stage = Column(String(100), nullable=True)
    current_routine_focus = Column(Text, nullable=True)
    last_check_in = Column(DateTime, nullable=True)
    agent_id = Column(String(128), unique=True, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    conversations = relationship(
        "Conversation",
        back_populates="patient",
        cascade="all, delete-orphan",
    )

    @property
    def display_name(self) -> str:
        return self.preferred_name or self.name

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API representation."""
        return {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "preferredName": self.preferred_name,
            "locationLabel": self.location_label,
            "diagnosisStage": self.diagnosis_stage,
            "currentRoutineFocus": self.current_routine_focus,
            "lastCheckIn": _iso(self.last_check_in),
            "agentId": self.agent_id,
            "createdAt": _iso(self.created_at),
        }


class Caregiver(Base):
    """Someone who may act on behalf of one or more patients."""
    __tablename__ = "caregivers"

    id = Column(String(36), primary_key=True, default=new_id)
    auth_user_id = Column(String(128), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)


class CaregiverPatient(Base):
    """Explicit grant letting a caregiver see a patient's records."""
    __tablename__ = "caregiver_patients"
    __table_args__ = (
        UniqueConstraint("caregiver_id", "patient_id", name="uq_caregiver_patient"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    caregiver_id = Column(String(36), ForeignKey("caregivers.id", ondelete="CASCADE"), nullable=False)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)


class Conversation(Base):
    """
    A thread of messages for one patient.

    Each thread belongs to exactly one patient and optionally records the
    caregiver who started it.
    """
    __tablename__ = "conversations"
    __table_args__ = (
        Index("ix_conversations_patient_last_message", "patient_id", "last_message_at"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    caregiver_id = Column(String(36), ForeignKey("caregivers.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(200), nullable=True)
    started_at = Column(DateTime, default=utc_now, nullable=False)
    last_message_at = Column(DateTime, default=utc_now, nullable=False)
    ended_at = Column(DateTime, nullable=True)

    patient = relationship("Patient", back_populates="conversations")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by=lambda: [Message.timestamp, Message.id],
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API representation (without messages)."""
        return {
            "id": self.id,
            "title": self.title or "Untitled Conversation",
            "startedAt": _iso(self.started_at),
            "lastMessageAt": _iso(self.last_message_at),
            "endedAt": _iso(self.ended_at),
        }


class Message(Base):
    """
    A single message in a conversation.

    ``agent_message_id`` is reserved for the memory service's id of an
    assistant message; the pipeline currently leaves it unset.
    """
    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_conversation_timestamp", "conversation_id", "timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), nullable=False)  # MessageRole
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utc_now, nullable=False)
    edited = Column(Boolean, default=False, nullable=False)
    edited_at = Column(DateTime, nullable=True)
    agent_message_id = Column(String(128), nullable=True)

    conversation = relationship("Conversation", back_populates="messages")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API representation."""
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": _iso(self.timestamp),
            "edited": bool(self.edited),
            "editedAt": _iso(self.edited_at),
        }


class Medication(Base):
    __tablename__ = "medications"
    __table_args__ = (
        Index("ix_medications_patient_active", "patient_id", "active"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(200), nullable=False)
    dosage = Column(String(100), nullable=False)
    time_of_day = Column(String(50), nullable=False)
    reminder_time = Column(String(10), nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    doses = relationship(
        "MedicationDose",
        back_populates="medication",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "patientId": self.patient_id,
            "name": self.name,
            "dosage": self.dosage,
            "timeOfDay": self.time_of_day,
            "reminderTime": self.reminder_time,
            "active": self.active,
            "createdAt": _iso(self.created_at),
        }


class MedicationDose(Base):
    """
    One scheduled dose of a medication.

    A dose is taken when ``taken_at`` is set, skipped when ``skipped`` is
    true, and pending otherwise.
    """
    __tablename__ = "medication_doses"
    __table_args__ = (
        Index("ix_medication_doses_medication_scheduled", "medication_id", "scheduled_for"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    medication_id = Column(String(36), ForeignKey("medications.id", ondelete="CASCADE"), nullable=False)
    scheduled_for = Column(DateTime, nullable=False)
    taken_at = Column(DateTime, nullable=True)
    skipped = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    medication = relationship("Medication", back_populates="doses")

    @property
    def is_pending(self) -> bool:
        return self.taken_at is None and not self.skipped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "medicationId": self.medication_id,
            "scheduledFor": _iso(self.scheduled_for),
            "takenAt": _iso(self.taken_at),
            "skipped": bool(self.skipped),
            "notes": self.notes,
            "createdAt": _iso(self.created_at),
        }


class SleepLog(Base):
    """One night of sleep; at most one row per patient and date."""
    __tablename__ = "sleep_logs"
    __table_args__ = (
        UniqueConstraint("patient_id", "date", name="uq_sleep_logs_patient_date"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    bedtime = Column(DateTime, nullable=True)
    wake_time = Column(DateTime, nullable=True)
    total_hours = Column(Float, nullable=True)
    quality = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "patientId": self.patient_id,
            "date": self.date.isoformat() if self.date else None,
            "bedtime": _iso(self.bedtime),
            "wakeTime": _iso(self.wake_time),
            "totalHours": self.total_hours,
            "quality": self.quality,
            "notes": self.notes,
        }


class DailyActivity(Base):
    __tablename__ = "daily_activities"
    __table_args__ = (
        Index("ix_daily_activities_patient_date", "patient_id", "date"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    activity_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    completed_at = Column(DateTime, default=utc_now, nullable=False)
    duration = Column(Integer, nullable=True)  # minutes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "patientId": self.patient_id,
            "date": self.date.isoformat() if self.date else None,
            "activityType": self.activity_type,
            "description": self.description,
            "duration": self.duration,
            "completedAt": _iso(self.completed_at),
        }


class BehavioralMetrics(Base):
    """
    Daily behavioral measurements for a patient, one row per date.

    Rows are seeded outside the API; the API only reads them.
    """
    __tablename__ = "behavioral_metrics"
    __table_args__ = (
        UniqueConstraint("patient_id", "date", name="uq_behavioral_metrics_patient_date"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    avg_response_time_ms = Column(Integer, nullable=True)
    response_time_baseline = Column(Integer, nullable=True)
    unprompted_recall_count = Column(Integer, default=0, nullable=False)
    unprompted_recall_examples = Column(Text, nullable=True)
    date_checks_count = Column(Integer, default=0, nullable=False)
    time_checks_count = Column(Integer, default=0, nullable=False)
    repeated_questions = Column(Text, nullable=True)
    repetition_baseline = Column(Float, nullable=True)
    mood_score = Column(Float, nullable=True)
    engagement_score = Column(Float, nullable=True)
    calculated_at = Column(DateTime, default=utc_now, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API representation (grouped by measurement)."""
        return {
            "id": self.id,
            "date": self.date.isoformat() if self.date else None,
            "responseTime": {
                "current": self.avg_response_time_ms,
                "baseline": self.response_time_baseline,
            },
            "unpromptedRecall": {
                "count": self.unprompted_recall_count,
                "examples": self.unprompted_recall_examples,
            },
            "temporalOrientation": {
                "dateChecks": self.date_checks_count,
                "timeChecks": self.time_checks_count,
            },
            "questionRepetition": {
                "repeated": self.repeated_questions,
                "baseline": self.repetition_baseline,
            },
            "mood": self.mood_score,
            "engagement": self.engagement_score,
            "calculatedAt": _iso(self.calculated_at),
        }


class PrivacyConsent(Base):
    """
    A change to one of the patient's privacy settings.

    Rows form a history; the most recent row per ``consent_type`` is the
    current setting.
    """
    __tablename__ = "privacy_consents"
    __table_args__ = (
        Index("ix_privacy_consents_patient_changed", "patient_id", "changed_at"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    consent_type = Column(String(50), nullable=False)  # ConsentType
    enabled = Column(Boolean, nullable=False)
    changed_at = Column(DateTime, default=utc_now, nullable=False)
    impact = Column(Text, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.consent_type,
            "enabled": bool(self.enabled),
            "changedAt": _iso(self.changed_at),
            "impact": self.impact,
        }


class TimelineEvent(Base):
    __tablename__ = "timeline_events"
    __table_args__ = (
        Index("ix_timeline_events_patient_timestamp", "patient_id", "timestamp"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    timestamp = Column(DateTime, default=utc_now, nullable=False)
    type = Column(String(30), nullable=False)  # EventType
    severity = Column(String(20), nullable=False)  # Severity
    summary = Column(Text, nullable=False)
    details = Column(JSON, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": _iso(self.timestamp),
            "type": self.type,
            "severity": self.severity,
            "summary": self.summary,
            "details": self.details,
        }


class PatientInsights(Base):
    """Latest LLM-generated behavioral analysis for a patient."""
    __tablename__ = "patient_insights"

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), unique=True, nullable=False)
    mood = Column(String(20), nullable=True)
    streak_days = Column(Integer, default=0, nullable=False)
    concerns = Column(JSON, nullable=True)
    positive_moments = Column(JSON, nullable=True)
    memory_topics_to_reinforce = Column(JSON, nullable=True)
    frequent_questions = Column(JSON, nullable=True)
    behavioral_trends = Column(JSON, nullable=True)
    recommendations = Column(JSON, nullable=True)
    analysis_timestamp = Column(DateTime, nullable=True)
    conversations_analyzed = Column(Integer, default=0, nullable=False)
    messages_analyzed = Column(Integer, default=0, nullable=False)
    last_updated = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mood": self.mood,
            "streakDays": self.streak_days,
            "concerns": self.concerns or [],
            "positiveMoments": self.positive_moments or [],
            "memoryTopicsToReinforce": self.memory_topics_to_reinforce or [],
            "frequentQuestions": self.frequent_questions or [],
            "behavioralTrends": self.behavioral_trends or [],
            "recommendations": self.recommendations or [],
            "analysisTimestamp": _iso(self.analysis_timestamp),
            "conversationsAnalyzed": self.conversations_analyzed,
            "messagesAnalyzed": self.messages_analyzed,
            "lastUpdated": _iso(self.last_updated),
        }
