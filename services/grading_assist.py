"""
Grading Assist - LLM adapter for subjective-answer scoring.

The assist is advisory: its score only fills `ai_score`, and an instructor's
manual score always wins.
"""

import json
from dataclasses import dataclass, field
from typing import Any, List

from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage

from assessment.models import Question
from config import Config


@dataclass
class AssistGrade:
    score: float  # 0-100, percentage of the question's marks
    feedback: str
    suggestions: List[str] = field(default_factory=list)


class LLMGradingAssist:
    def __init__(self, model: str = Config.OPENAI_MODEL,
                 temperature: float = Config.GRADING_TEMPERATURE,
                 timeout: float = Config.GENERATION_TIMEOUT):
        self.llm = ChatOpenAI(
            model=model,
            temperature=temperature,
            timeout=timeout,
            max_retries=0,
        ).bind(response_format={"type": "json_object"})

    def grade(self, question: Question, student_answer: Any) -> AssistGrade:
        messages = [
            SystemMessage(content=(
                "You are an expert educator grading student answers. Provide fair, "
                "constructive feedback that helps students learn."
            )),
            HumanMessage(content=self.build_prompt(question, student_answer)),
        ]
        response = self.llm.invoke(messages)
        data = json.loads(response.content)

        score = data.get("score")
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise ValueError(f"assist returned no numeric score: {score!r}")

        return AssistGrade(
            score=max(0.0, min(100.0, float(score))),
            feedback=data.get("feedback") or "Answer evaluated.",
            suggestions=list(data.get("suggestions") or []),
        )

    def build_prompt(self, question: Question, student_answer: Any) -> str:
        rubric = f"Grading Rubric: {json.dumps(question.grading_rubric)}" if question.grading_rubric else ""
        return f"""Grade the following student answer:

Question: {question.text}
Question Type: {question.type.value}
Student Answer: {json.dumps(student_answer)}
Correct Answer: {json.dumps(question.correct_answer if question.correct_answer is not None else question.sample_answer)}
{rubric}

Evaluate the answer and provide:
1. A score (0-100% of max points)
2. Detailed feedback explaining the grade
3. Suggestions for improvement

For partial credit, consider correct reasoning with minor errors and partially correct answers.

Return a JSON object:
{{
  "score": number (0-100),
  "feedback": "detailed feedback",
  "suggestions": ["suggestion 1", "suggestion 2"]
}}"""
