"""
Template Exam - Deterministic fallback when the text-generation service fails.

Produces placeholder questions for the requested count, cycling through the
requested topics (or the subject when none were requested). The same
request always yields the same exam.
"""

from typing import List

from .generation_request import GenerationRequest
from .models import Question, QuestionType


PROMPTS = (
    "Explain the main idea of {topic} in your own words.",
    "Describe a worked example that uses {topic}.",
    "What is a common mistake students make with {topic}, and how do you avoid it?",
    "How does {topic} connect to another idea you have studied in {subject}?",
)


def build_template_exam(request: GenerationRequest) -> List[Question]:
    topics = request.topics or [request.subject]
    questions = []

    for i in range(request.question_count):
        topic = topics[i % len(topics)]
        prompt = PROMPTS[(i // len(topics)) % len(PROMPTS)]
        questions.append(Question(
            id=f"template-{i + 1}",
            type=QuestionType.SHORT_TEXT,
            marks=request.marks_per_question,
            topic=topic,
            difficulty=request.difficulty,
            text=prompt.format(topic=topic, subject=request.subject),
            grading_rubric={
                "criteria": "Accurate, complete explanation in the student's own words.",
                "template": True,
            },
        ))

    return questions
