"""
Services module - LLM-backed collaborators of the assessment engine.

Components:
    - question_writer: Text-generation service adapter (adaptive exam authoring)
    - grading_assist: Subjective-grading assist adapter (advisory scores + feedback)
"""

from .question_writer import LLMQuestionWriter
from .grading_assist import LLMGradingAssist, AssistGrade

__all__ = [
    "LLMQuestionWriter",
    "LLMGradingAssist",
    "AssistGrade",
]
