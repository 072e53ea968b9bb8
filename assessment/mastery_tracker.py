"""
Mastery Tracker - Conflict-safe profile upserts.

The profile row for (student_id, subject) is the only shared mutable state
in the engine. Writes go through an optimistic-concurrency loop:

    read (profile + version) -> compute -> compare-and-set -> retry on conflict

When retries run out the losing write is dropped and reported; it never
overwrites a newer profile.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

from .models import PerformanceAnalysis, PerformanceProfile

logger = logging.getLogger(__name__)


# ==================== Storage Port ====================

class ProfileStore(ABC):
    """
    Profile persistence: get-by-key and conditional upsert-by-key.

    Implementations:
    - InMemoryProfileStore: tests and single-process deployments
    - RedisProfileStore (redis_store.py): WATCH/MULTI compare-and-set
    """

    @abstractmethod
    def get(self, student_id: str, subject: str) -> Optional[PerformanceProfile]:
        """Return the stored profile (with its version) or None."""

    @abstractmethod
    def compare_and_set(self, profile: PerformanceProfile, expected_version: Optional[int]) -> bool:
        """
        Write the profile only if the stored version still matches.

        Args:
            profile: Profile to store; its key fields identify the row
            expected_version: Version read earlier, or None to create only if absent

        Returns:
            True if written (the stored version is bumped), False on conflict
        """


class InMemoryProfileStore(ProfileStore):
    def __init__(self):
        self._rows: Dict[Tuple[str, str], PerformanceProfile] = {}
        self._lock = threading.Lock()

    def get(self, student_id: str, subject: str) -> Optional[PerformanceProfile]:
        with self._lock:
            row = self._rows.get((student_id, subject))
            return copy.deepcopy(row) if row else None

    def compare_and_set(self, profile: PerformanceProfile, expected_version: Optional[int]) -> bool:
        key = (profile.student_id, profile.subject)
        with self._lock:
            current = self._rows.get(key)
            current_version = current.version if current else None
            if current_version != expected_version:
                return False
            stored = copy.deepcopy(profile)
            stored.version = (expected_version or 0) + 1
            self._rows[key] = stored
            return True


# ==================== Tracker ====================

@dataclass
class UpsertResult:
    profile: Optional[PerformanceProfile]
    applied: bool
    created: bool
    attempts: int

    @property
    def conflict(self) -> bool:
        return not self.applied


# Fresh stored profile (or None) -> analysis to persist
AnalysisFn = Callable[[Optional[PerformanceProfile]], PerformanceAnalysis]


class MasteryTracker:
    """Persists analyses into a ProfileStore with upsert semantics."""

    DEFAULT_RETRIES = 3

    def __init__(self, store: ProfileStore, max_attempts: int = DEFAULT_RETRIES,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.store = store
        self.max_attempts = max_attempts
        self.clock = clock

    def get_profile(self, student_id: str, subject: str) -> Optional[PerformanceProfile]:
        return self.store.get(student_id, subject)

    def upsert(self, student_id: str, subject: str, compute: AnalysisFn) -> UpsertResult:
        """
        Read-compute-write with optimistic concurrency.

        `compute` is re-run against each fresh read, so a retry never writes
        an analysis derived from a stale profile.
        """
        for attempt in range(1, self.max_attempts + 1):
            current = self.store.get(student_id, subject)
            analysis = compute(current)
            profile = self.merge(student_id, subject, current, analysis)
            expected = current.version if current else None

            if self.store.compare_and_set(profile, expected):
                written = self.store.get(student_id, subject)
                return UpsertResult(written, applied=True, created=current is None, attempts=attempt)

            logger.info("Profile write conflict for student=%s subject=%s (attempt %d/%d)",
                        student_id, subject, attempt, self.max_attempts)

        logger.warning("Discarding profile update for student=%s subject=%s after %d conflicts",
                       student_id, subject, self.max_attempts)
        return UpsertResult(self.store.get(student_id, subject), applied=False,
                            created=False, attempts=self.max_attempts)

    def save_analysis(self, student_id: str, subject: str,
                      analysis: PerformanceAnalysis) -> UpsertResult:
        """Upsert an analysis that does not depend on the stored profile."""
        return self.upsert(student_id, subject, lambda _current: analysis)

    def merge(self, student_id: str, subject: str, current: Optional[PerformanceProfile],
              analysis: PerformanceAnalysis) -> PerformanceProfile:
        now = self.clock()
        if current is None:
            return PerformanceProfile(
                student_id=student_id,
                subject=subject,
                skill_level=analysis.skill_level,
                strengths=list(analysis.strengths),
                weaknesses=list(analysis.weaknesses),
                preferred_question_types=list(analysis.preferred_question_types),
                difficulty_preference=analysis.difficulty_preference,
                trend=analysis.trend,
                updated_at=now,
            )

        updated = copy.deepcopy(current)
        updated.skill_level = analysis.skill_level
        updated.strengths = list(analysis.strengths)
        updated.weaknesses = list(analysis.weaknesses)
        updated.preferred_question_types = list(analysis.preferred_question_types)
        updated.trend = analysis.trend
        updated.updated_at = now
        return updated
