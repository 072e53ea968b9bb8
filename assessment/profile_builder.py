"""
Performance Profile Builder - Attempt history -> performance analysis.

Features:
    - Skill level ratchet from average score buckets
    - Per-question-type accuracy -> preferred question types
    - Per-topic accuracy -> strengths / weaknesses / recommended focus topics
    - Recommended difficulty and performance trend

All cut-offs live in ProfileThresholds so the heuristic can be tuned
without touching control flow.
"""

from collections import OrderedDict
from dataclasses import dataclass
from statistics import mean
from typing import Dict, List, Optional, Sequence, Tuple

from .models import (
    AttemptRecord,
    Difficulty,
    PerformanceAnalysis,
    PerformanceProfile,
    Trend,
)


@dataclass(frozen=True)
class ProfileThresholds:
    """Tunable constants of the profile heuristic."""

    # Attempt window
    MAX_ATTEMPTS: int = 5

    # Skill level: (minimum average score, skill floor), best first
    SKILL_BUCKETS: Tuple[Tuple[float, int], ...] = ((90, 7), (80, 6), (70, 5), (60, 4))
    LOW_SKILL_CEILING: int = 3
    DEFAULT_SKILL: int = 5
    MIN_SKILL: int = 1
    MAX_SKILL: int = 10

    # A question counts as correct when score_earned >= ratio * marks
    CORRECT_SCORE_RATIO: float = 0.7

    # Preferred question types
    PREFERRED_TYPE_ACCURACY: float = 0.8
    PREFERRED_TYPE_MIN_SAMPLES: int = 3

    # Topics
    STRENGTH_ACCURACY: float = 0.8
    WEAKNESS_ACCURACY: float = 0.6
    TOPIC_MIN_SAMPLES: int = 2
    DEFAULT_TOPIC: str = "general"

    # Recommended difficulty
    HARD_MIN_AVERAGE: float = 85
    MEDIUM_MIN_AVERAGE: float = 70

    # Trend
    TREND_MIN_ATTEMPTS: int = 3
    TREND_WINDOW: int = 2
    TREND_DELTA: float = 10


@dataclass
class _Tally:
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0


class PerformanceProfileBuilder:
    """
    Pure function object: (stored profile, recent attempts) -> analysis.

    Attempts are expected most-recent-first; only the first MAX_ATTEMPTS
    are considered.
    """

    def __init__(self, thresholds: Optional[ProfileThresholds] = None):
        self.thresholds = thresholds or ProfileThresholds()

    def build(self, stored: Optional[PerformanceProfile],
              attempts: Sequence[AttemptRecord]) -> PerformanceAnalysis:
        window = list(attempts)[:self.thresholds.MAX_ATTEMPTS]
        analysis = self._baseline(stored)

        if not window:
            return analysis

        scores = [a.percentage for a in window]
        analysis.attempts_analyzed = len(window)
        analysis.average_score = mean(scores)
        analysis.skill_level = self._skill_level(analysis.average_score, analysis.skill_level)

        type_tally, topic_tally = self._tally(window)

        analysis.preferred_question_types = [
            qtype for qtype, tally in type_tally.items()
            if tally.total >= self.thresholds.PREFERRED_TYPE_MIN_SAMPLES
            and tally.accuracy >= self.thresholds.PREFERRED_TYPE_ACCURACY
        ]

        strengths, weaknesses = [], []
        for topic, tally in topic_tally.items():
            if tally.total < self.thresholds.TOPIC_MIN_SAMPLES:
                continue
            if tally.accuracy >= self.thresholds.STRENGTH_ACCURACY:
                strengths.append(topic)
            elif tally.accuracy < self.thresholds.WEAKNESS_ACCURACY:
                weaknesses.append(topic)
        analysis.strengths = strengths
        analysis.weaknesses = weaknesses
        analysis.recommended_topics = list(weaknesses)

        analysis.recommended_difficulty = self._recommended_difficulty(analysis.average_score)
        analysis.difficulty_preference = analysis.recommended_difficulty.preference

        if len(scores) >= self.thresholds.TREND_MIN_ATTEMPTS:
            analysis.trend = self._trend(scores)

        return analysis

    # ==================== Steps ====================

    def _baseline(self, stored: Optional[PerformanceProfile]) -> PerformanceAnalysis:
        if stored is None:
            return PerformanceAnalysis(skill_level=self.thresholds.DEFAULT_SKILL)

        return PerformanceAnalysis(
            skill_level=self._clamp_skill(stored.skill_level),
            strengths=list(stored.strengths),
            weaknesses=list(stored.weaknesses),
            preferred_question_types=list(stored.preferred_question_types),
            difficulty_preference=stored.difficulty_preference,
            trend=stored.trend,
            recommended_difficulty=Difficulty.from_preference(stored.difficulty_preference),
            recommended_topics=list(stored.weaknesses),
        )

    def _skill_level(self, average: float, previous: int) -> int:
        """Strong averages only ratchet the level up; a low average caps it."""
        for minimum, floor in self.thresholds.SKILL_BUCKETS:
            if average >= minimum:
                return self._clamp_skill(max(floor, previous))
        return self._clamp_skill(min(self.thresholds.LOW_SKILL_CEILING, previous))

    def _clamp_skill(self, level: int) -> int:
        return max(self.thresholds.MIN_SKILL, min(self.thresholds.MAX_SKILL, int(level)))

    def _tally(self, window: List[AttemptRecord]) -> Tuple[Dict[str, _Tally], Dict[str, _Tally]]:
        type_tally: Dict[str, _Tally] = OrderedDict()
        topic_tally: Dict[str, _Tally] = OrderedDict()

        for attempt in window:
            for line in attempt.answers:
                if not line.is_scored:
                    continue
                is_correct = line.score_earned >= self.thresholds.CORRECT_SCORE_RATIO * line.marks
                topic = line.topic or self.thresholds.DEFAULT_TOPIC

                for key, tallies in ((line.question_type.value, type_tally), (topic, topic_tally)):
                    tally = tallies.setdefault(key, _Tally())
                    tally.total += 1
                    if is_correct:
                        tally.correct += 1

        return type_tally, topic_tally

    def _recommended_difficulty(self, average: float) -> Difficulty:
        if average >= self.thresholds.HARD_MIN_AVERAGE:
            return Difficulty.HARD
        if average >= self.thresholds.MEDIUM_MIN_AVERAGE:
            return Difficulty.MEDIUM
        return Difficulty.EASY

    def _trend(self, scores: List[float]) -> Trend:
        # scores are most-recent-first
        recent = mean(scores[:self.thresholds.TREND_WINDOW])
        older = mean(scores[-self.thresholds.TREND_WINDOW:])
        if recent - older > self.thresholds.TREND_DELTA:
            return Trend.IMPROVING
        if recent - older < -self.thresholds.TREND_DELTA:
            return Trend.DECLINING
        return Trend.STABLE
