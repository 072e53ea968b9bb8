"""
Generation Request - Parameters handed to the external text-generation service.

The request is built per call and never persisted.
"""

import math
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from .models import Difficulty


BASE_MARKS = {
    Difficulty.EASY: 3,
    Difficulty.MEDIUM: 5,
    Difficulty.HARD: 8,
}

MIN_SKILL_MULTIPLIER = 0.5
MAX_SKILL_MULTIPLIER = 1.5
SKILL_PIVOT = 6


def adaptive_marks(difficulty: Difficulty, skill_level: int) -> int:
    """
    Marks for a newly authored question.

    marks = round(base[difficulty] * clamp(skill / 6, 0.5, 1.5)), rounding
    halves up.
    """
    multiplier = max(MIN_SKILL_MULTIPLIER, min(MAX_SKILL_MULTIPLIER, skill_level / SKILL_PIVOT))
    return int(math.floor(BASE_MARKS[Difficulty.parse(difficulty)] * multiplier + 0.5))


@dataclass(frozen=True)
class MixPolicy:
    """
    Advisory topic mix sent to the generator.

    Question authoring happens externally, so this is an instruction, not
    something checked on the returned questions.
    """
    weaknesses: float = 0.6
    strengths: float = 0.3
    novel: float = 0.1


@dataclass
class GenerationRequest:
    subject: str
    grade_level: int
    difficulty: Difficulty
    question_count: int
    topics: Optional[List[str]] = None
    marks_per_question: int = BASE_MARKS[Difficulty.MEDIUM]
    mark_weighting: Dict[str, int] = field(default_factory=dict)
    mix_policy: MixPolicy = field(default_factory=MixPolicy)
    student_profile_summary: Dict = field(default_factory=dict)
    instructions: str = ""

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["difficulty"] = self.difficulty.value
        return data
