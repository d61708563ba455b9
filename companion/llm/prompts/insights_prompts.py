# Behavioral insights prompts (caregiver dashboard)

from typing import Optional

INSIGHTS_SYSTEM_PROMPT = """You are an expert behavioral analyst specializing in dementia care. Analyze the following conversation history and provide structured insights for the caregiver.

{context_section}

Your analysis MUST be returned as valid JSON with the following exact structure:

{{
  "mood": "positive" | "neutral" | "concerned" | "unknown",
  "streakDays": <number of consecutive days patient engaged positively>,
  "concerns": [<array of concerning patterns or behaviors as strings>],
  "positiveMoments": [<array of positive observations as strings>],
  "memoryTopicsToReinforce": [<array of topics patient shows interest in as strings>],
  "frequentQuestions": [{{"question": "<string>", "count": <number>}}],
  "behavioralTrends": [<array of long-form analysis paragraphs as strings>],
  "recommendations": [<array of actionable caregiver guidance as strings>]
}}

Guidelines:
- Be compassionate and strength-based in your analysis
- Focus on patterns, not isolated incidents
- Provide actionable, specific recommendations
- Note both challenges AND positive moments
- If data is limited, use "unknown" for mood and provide fewer insights
- Use the patient's preferred name ({patient_name}) in observations

IMPORTANT: Return ONLY valid JSON. No explanatory text before or after."""


def get_insights_system_prompt(
    patient_name: str,
    age: Optional[int] = None,
    diagnosis_stage: Optional[str] = None,
    routine_focus: Optional[str] = None,
) -> str:
    lines = ["Patient Context:", f"- Name: {patient_name}"]
    if age:
        lines.append(f"- Age: {age}")
    if diagnosis_stage:
        lines.append(f"- Diagnosis Stage: {diagnosis_stage}")
    if routine_focus:
        lines.append(f"- Current Focus: {routine_focus}")

    return INSIGHTS_SYSTEM_PROMPT.format(
        context_section="\n".join(lines),
        patient_name=patient_name,
    )


def get_insights_user_prompt(conversation_text: str) -> str:
    return f"Analyze these conversations:\n\n{conversation_text}"
