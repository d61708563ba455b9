"""
Database module - relational storage for patients, threads and care records.

This module handles:
- Database connection management
- ORM models
- Table creation
"""
from companion.database.connection import DatabaseConnection, get_database, reset_database
from companion.database.models import (
    Base,
    Caregiver,
    CaregiverPatient,
    Conversation,
    Medication,
    Message,
    MessageRole,
    Patient,
    MedicationDose,
    DailyActivity,
    BehavioralMetrics,
    PrivacyConsent,
    TimelineEvent,
    ConsentType,
    EventType,
    Severity,
    PatientInsights,
    SleepLog,
    utc_now,
)
from companion.database.init_db import init_tables, drop_tables

__all__ = [
    # Connection
    "DatabaseConnection",
    "get_database",
    "reset_database",
    # Models
    "Base",
    "Caregiver",
    "CaregiverPatient",
    "Conversation",
    "Medication",
    "Message",
    "MessageRole",
    "Patient",
    "MedicationDose",
    "DailyActivity",
    "BehavioralMetrics",
    "PrivacyConsent",
    "TimelineEvent",
    "ConsentType",
    "EventType",
    "Severity",
    "PatientInsights",
    "SleepLog",
    "utc_now",
    # Init
    "init_tables",
    "drop_tables",
]
