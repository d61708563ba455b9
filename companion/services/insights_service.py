"""
Insights Service - behavioral analysis of a patient's conversations.

Gathers the patient's recent messages into a dated transcript, asks the
insights model for a structured analysis and stores the result (one row per
patient). A result younger than ``INSIGHTS_CACHE_HOURS`` is reused unless a
refresh is forced.
"""
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from companion.core.exceptions import NotFoundError
from companion.core.logging_config import get_logger
from companion.database.models import Conversation, Message, MessageRole, Patient, PatientInsights, utc_now
from companion.llm.client import LLMClient
from companion.models.insights import BehavioralInsights
from companion.services.results import FailureKind, run_step

logger = get_logger(__name__)

INSIGHTS_CACHE_HOURS = 6


def format_transcript(messages: List[Message], patient_name: str) -> str:
    """
    Render messages as ``[YYYY-MM-DD] Speaker: text`` lines.

    Patient messages are attributed to ``patient_name``; everything else to
    "Assistant".
    """
    lines = []
    for message in messages:
        speaker = patient_name if message.role == MessageRole.USER else "Assistant"
        lines.append(f"[{message.timestamp.date().isoformat()}] {speaker}: {message.content}")
    return "\n\n".join(lines)


class InsightsService:
    def __init__(self, session: Session, llm_client: LLMClient):
        self.session = session
        self.llm_client = llm_client

    def get_insights(self, patient_id: str) -> Optional[Dict[str, Any]]:
        insights = self._find(patient_id)
        return insights.to_dict() if insights else None

    def analyze(self, patient: Patient, lookback_days: int = 30, force_refresh: bool = False) -> Dict[str, Any]:
        """
        Analyze the last ``lookback_days`` of conversations.

        Raises:
            NotFoundError: no messages in the lookback window
            UpstreamServiceError: the analysis call failed or was unreadable
        """
        existing = self._find(patient.id)

        if not force_refresh and existing and existing.analysis_timestamp:
            age = utc_now() - existing.analysis_timestamp
            if age < timedelta(hours=INSIGHTS_CACHE_HOURS):
                logger.info(f"Reusing insights for patient {patient.id} ({age} old)")
                return {
                    "message": f"Using recent analysis (less than {INSIGHTS_CACHE_HOURS} hours old)",
                    "cached": True,
                    "analysisTimestamp": existing.analysis_timestamp,
                }

        cutoff = utc_now() - timedelta(days=lookback_days)
        conversations = (
            self.session.query(Conversation)
            .filter(Conversation.patient_id == patient.id, Conversation.started_at >= cutoff)
            .order_by(Conversation.started_at.asc())
            .all()
        )
        messages = [message for conversation in conversations for message in conversation.messages]

        if not messages:
            raise NotFoundError(
                "No conversation history found",
                details=f"No conversations in the last {lookback_days} days",
            )

        logger.info(
            f"Analyzing {len(messages)} messages from {len(conversations)} conversations "
            f"({lookback_days} day lookback)"
        )

        transcript = format_transcript(messages, patient.display_name)
        insights: BehavioralInsights = run_step(
            "analyze_conversations",
            lambda: self.llm_client.analyze_conversation_history(
                transcript,
                patient.display_name,
                age=patient.age,
                diagnosis_stage=patient.diagnosis_stage,
                routine_focus=patient.current_routine_focus,
            ),
            FailureKind.FATAL,
        ).unwrap()

        record = self._store(existing, patient.id, insights, len(conversations), len(messages))

        return {
            "message": "Analysis complete",
            "cached": False,
            "analysisTimestamp": record.analysis_timestamp,
            "conversationsAnalyzed": record.conversations_analyzed,
            "messagesAnalyzed": record.messages_analyzed,
            "insights": record.to_dict(),
        }

    def _find(self, patient_id: str) -> Optional[PatientInsights]:
        return (
            self.session.query(PatientInsights)
            .filter(PatientInsights.patient_id == patient_id)
            .one_or_none()
        )

    def _store(
        self,
        record: Optional[PatientInsights],
        patient_id: str,
        insights: BehavioralInsights,
        conversations_analyzed: int,
        messages_analyzed: int,
    ) -> PatientInsights:
        if record is None:
            record = PatientInsights(patient_id=patient_id)
            self.session.add(record)

        record.mood = insights.mood
        record.streak_days = insights.streakDays
        record.concerns = insights.concerns
        record.positive_moments = insights.positiveMoments
        record.memory_topics_to_reinforce = insights.memoryTopicsToReinforce
        record.frequent_questions = [question.model_dump() for question in insights.frequentQuestions]
        record.behavioral_trends = insights.behavioralTrends
        record.recommendations = insights.recommendations
        record.analysis_timestamp = utc_now()
        record.conversations_analyzed = conversations_analyzed
        record.messages_analyzed = messages_analyzed
        record.last_updated = utc_now()

        self.session.commit()
        logger.info(f"Stored insights for patient {patient_id}: mood={record.mood}")
        return record
