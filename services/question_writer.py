"""
Question Writer - LLM adapter for the text-generation service.

Features:
    - Prompt built from the generation request (profile, focus topics, mix, marks)
    - JSON-mode response, parsed into raw question records
    - Per-call timeout and no client-side retries (the generation policy owns retries)
"""

import json
from typing import Dict, List

from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage

from assessment.generation_request import GenerationRequest
from config import Config


SYSTEM_PROMPT = (
    "You are an expert educational AI that creates personalized, adaptive exams. "
    "Use the student's performance profile to write questions that challenge them "
    "appropriately while addressing their specific learning needs."
)


class LLMQuestionWriter:
    """
    Callable generator: (request, timeout) -> list of question records.

    Records use the platform's wire keys: type, question, options,
    correctAnswer, marks, difficulty, topic, gradingRubric, sampleAnswer.
    """

    def __init__(self, model: str = Config.OPENAI_MODEL,
                 temperature: float = Config.GENERATION_TEMPERATURE):
        self.model = model
        self.temperature = temperature

    def __call__(self, request: GenerationRequest, timeout: float = Config.GENERATION_TIMEOUT) -> List[Dict]:
        llm = ChatOpenAI(
            model=self.model,
            temperature=self.temperature,
            timeout=timeout,
            max_retries=0,
        ).bind(response_format={"type": "json_object"})

        messages = [
            SystemMessage(content=SYSTEM_PROMPT),
            HumanMessage(content=self.build_prompt(request)),
        ]
        response = llm.invoke(messages)
        data = json.loads(response.content)
        return data.get("questions") if isinstance(data, dict) else data

    def build_prompt(self, request: GenerationRequest) -> str:
        summary = request.student_profile_summary
        mix = request.mix_policy
        topics = ", ".join(request.topics) if request.topics else "General coverage"
        weighting = ", ".join(f"{d}: {m}" for d, m in request.mark_weighting.items())

        return f"""Create an adaptive exam for {request.subject}, Grade {request.grade_level}, with {request.question_count} questions.

STUDENT PERFORMANCE PROFILE:
- Current Skill Level: {summary.get('skill_level')}/10
- Strengths: {', '.join(summary.get('strengths', [])) or 'None identified yet'}
- Weaknesses: {', '.join(summary.get('weaknesses', [])) or 'None identified yet'}
- Focus Areas: {topics}
- Trend: {summary.get('trend', 'STABLE')}

TARGET DIFFICULTY: {request.difficulty.value}

ADAPTIVE INSTRUCTIONS:
{request.instructions}

EXAM REQUIREMENTS:
1. {mix.weaknesses:.0%} of questions should target weak areas for improvement
2. {mix.strengths:.0%} of questions should reinforce strengths
3. {mix.novel:.0%} of questions should introduce new challenges
4. Marks per question by difficulty: {weighting}
5. Provide clear grading rubrics for open-ended questions

Return a JSON object:
{{
  "questions": [
    {{
      "type": "MULTIPLE_CHOICE" | "TRUE_FALSE" | "SHORT_ANSWER" | "LONG_ANSWER" | "FILL_BLANKS" | "MATH_PROBLEM",
      "question": "question text",
      "options": ["A", "B", "C", "D"] or null,
      "correctAnswer": "answer",
      "marks": number,
      "difficulty": "easy" | "medium" | "hard",
      "topic": "specific topic from focus areas",
      "adaptiveReason": "why this question was chosen for this student",
      "gradingRubric": {{}},
      "sampleAnswer": "exemplary answer",
      "learningObjective": "what this question assesses"
    }}
  ]
}}

Questions must be appropriate for Grade {request.grade_level}."""
