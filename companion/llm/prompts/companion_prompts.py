"""
Companion prompts - system prompt assembly and agent seed memory.

The conversation system prompt is rebuilt on every turn from the patient's
core memory plus whatever archival passages the search returned.
"""
from typing import Iterable, List, Optional

from companion.memory.schemas import ArchivalPassage, MemoryBlock, MemoryDocument


def build_system_prompt(
    memory: Optional[MemoryDocument],
    passages: Optional[Iterable[ArchivalPassage]] = None,
) -> str:
    """
    Build the system prompt for one conversation turn.

    Order: persona, patient profile, situational context, then a
    "Recent conversation context" section with one line per passage (only
    when there are passages).
    """
    memory = memory or MemoryDocument()
    persona = memory.persona or ""
    human = memory.human or ""
    patient_context = memory.patient_context or ""

    history_lines = [
        f"memory: {passage.text or ''}" for passage in (passages or [])
    ]
    history_section = ""
    if history_lines:
        history_section = "\n\nRecent conversation context:\n" + "\n".join(history_lines)

    return (
        f"{persona}\n"
        f"\n"
        f"Patient Information:\n"
        f"{human}\n"
        f"\n"
        f"{patient_context}{history_section}"
    )


def build_patient_memory_blocks(
    name: str,
    age: int,
    diagnosis_stage: Optional[str] = None,
    location_label: Optional[str] = None,
    preferred_name: Optional[str] = None,
) -> List[MemoryBlock]:
    """Seed core memory for a newly onboarded patient's agent."""
    human_lines = [f"Name: {name}", f"Age: {age}"]
    if diagnosis_stage:
        human_lines.append(f"Diagnosis: {diagnosis_stage}")
    if location_label:
        human_lines.append(f"Location: {location_label}")
    if preferred_name:
        human_lines.append(f"Preferred Name: {preferred_name}")

    persona = (
        f"You are a warm, patient, and reassuring AI companion for {preferred_name or name}. "
        "Your role is to provide supportive conversation, help with memory recall, "
        "and offer gentle orientation cues about time, date, and location. "
        "Always be respectful, encouraging, and never condescending. "
        "Adapt your communication style to the patient's cognitive state."
    )

    if diagnosis_stage:
        patient_context = (
            f"Diagnosis Stage: {diagnosis_stage}\n"
            "Current routine focus: Daily check-ins and memory exercises"
        )
    else:
        patient_context = "Current routine focus: Daily check-ins"

    return [
        MemoryBlock(label="human", value="\n".join(human_lines)),
        MemoryBlock(label="persona", value=persona),
        MemoryBlock(
            label="patient_context",
            value=patient_context,
            description="Stores current care routine, focus areas, and recent activity for personalized support",
        ),
    ]
