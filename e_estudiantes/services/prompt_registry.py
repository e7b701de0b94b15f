"""Prompt templates and inventory helpers for the AI study aids."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


PROMPT_REGISTRY_VERSION = "2025-06-01"


PROMPT_SYSTEM_TUTOR = """You are an educational assistant for university students.
Be precise, clear and encouraging. Never invent facts that are not supported by the material you receive.
Write every answer fully in this language: {output_language}."""

PROMPT_SUMMARY_TEMPLATE = """Create study material for a student from the content below.

Title: {title}
Subject: {subject}
Requested output type: {summary_type}

{type_instructions}

Content:
{content}

REQUIRED OUTPUT FORMAT:
Respond with strictly valid JSON and nothing else, using exactly this structure:
{{
  "summary": "string",
  "keyPoints": ["string"],
  "questions": ["string"],
  "difficulty": "beginner|intermediate|advanced",
  "estimatedTime": 30,
  "tags": ["string"]
}}
Write all generated text fully in this language: {output_language}."""

SUMMARY_TYPE_INSTRUCTIONS = {
    "summary": """Write a concise but complete summary that includes:
1. Main summary (2-3 paragraphs)
2. Key points (numbered list)
3. Important concepts
4. Estimated study time in minutes
5. Difficulty (beginner/intermediate/advanced)
6. Relevant tags (maximum 5)""",
    "key-points": """Extract the most important points:
1. Fundamental concepts
2. Key definitions
3. Important formulas or rules
4. Notable examples""",
    "questions": """Generate study questions:
1. Basic comprehension questions
2. Application questions
3. Analysis questions
4. Synthesis questions""",
    "mind-map": """Create a mind-map structure:
1. Central topic
2. Main branches
3. Sub-branches
4. Connections between concepts""",
}

PROMPT_FLASHCARDS_TEMPLATE = """Generate {amount} study flashcards for the subject {subject} from the text below.
Each flashcard has a short question and a precise answer taken from the text.

REQUIRED OUTPUT FORMAT:
Respond with strictly valid JSON and nothing else: an array like
[{{"question": "string", "answer": "string"}}]
Write all generated text fully in this language: {output_language}.

Text:
{content}"""

PROMPT_STUDY_PLAN_TEMPLATE = """Create a personalised study plan for these subjects: {subjects}.
Available time: {available_time} minutes per day.

Include:
1. A daily plan with the minutes assigned to each subject and concrete tasks
2. Weekly goals
3. Study tips

REQUIRED OUTPUT FORMAT:
Respond with strictly valid JSON and nothing else, using exactly this structure:
{{
  "dailyPlan": [{{"subject": "string", "time": 30, "tasks": ["string"]}}],
  "weeklyGoals": ["string"],
  "tips": ["string"]
}}
Write all generated text fully in this language: {output_language}."""

PROMPT_CHAT_TEMPLATE = """Conversation so far:
{history}

Student: {message}

Answer the student's last message as their study assistant."""


@dataclass(frozen=True)
class PromptRecord:
    prompt_id: str
    name: str
    template: str


PROMPT_RECORDS: List[PromptRecord] = [
    PromptRecord("system_tutor", "Tutor system instruction", PROMPT_SYSTEM_TUTOR),
    PromptRecord("summary", "Study summary", PROMPT_SUMMARY_TEMPLATE),
    PromptRecord("flashcards", "Flashcards", PROMPT_FLASHCARDS_TEMPLATE),
    PromptRecord("study_plan", "Study plan", PROMPT_STUDY_PLAN_TEMPLATE),
    PromptRecord("chat", "Study chat", PROMPT_CHAT_TEMPLATE),
]


def get_prompt_inventory() -> List[Dict[str, str]]:
    return [
        {
            "id": record.prompt_id,
            "name": record.name,
            "version": PROMPT_REGISTRY_VERSION,
            "template": record.template,
        }
        for record in PROMPT_RECORDS
    ]


def get_prompt_template(prompt_id: str) -> str:
    safe_id = str(prompt_id or "").strip()
    for record in PROMPT_RECORDS:
        if record.prompt_id == safe_id:
            return record.template
    raise KeyError(f"Unknown prompt id: {safe_id}")


def get_prompt_metadata() -> Dict[str, object]:
    return {
        "version": PROMPT_REGISTRY_VERSION,
        "count": len(PROMPT_RECORDS),
        "ids": [record.prompt_id for record in PROMPT_RECORDS],
    }
