"""
Redis Store - Performance profile persistence.

Key Structure:
    profile:{student_id}:{subject} -> Hash (profile fields + version)

List fields are stored as JSON strings. Writes use WATCH/MULTI so a
profile is only replaced when its version is still the one the writer read.
"""

import json
import logging
from datetime import datetime
from typing import Dict, Optional

import redis

from assessment.mastery_tracker import ProfileStore
from assessment.models import PerformanceProfile, Trend
from config import Config

logger = logging.getLogger(__name__)


class RedisProfileStore(ProfileStore):
    def __init__(self, client: Optional[redis.Redis] = None):
        """Connect to Redis using configuration, unless a client is supplied."""
        self.client = client or redis.Redis(
            host=Config.REDIS_HOST,
            port=Config.REDIS_PORT,
            password=Config.REDIS_PASSWORD,
            decode_responses=True  # Return strings instead of bytes
        )

    # ==================== Key Builders ====================

    def _profile_key(self, student_id: str, subject: str) -> str:
        """Redis key for a student's profile in one subject."""
        return f"profile:{student_id}:{subject}"

    # ==================== Profile Access ====================

    def get(self, student_id: str, subject: str) -> Optional[PerformanceProfile]:
        """
        Retrieve a stored profile.

        Args:
            student_id: Student identifier
            subject: Subject name

        Returns:
            PerformanceProfile with its version, or None if not found
        """
        raw = self.client.hgetall(self._profile_key(student_id, subject))
        if not raw:
            return None
        return self._decode(raw)

    def compare_and_set(self, profile: PerformanceProfile, expected_version: Optional[int]) -> bool:
        """
        Store a profile if nobody else wrote it since it was read.

        Args:
            profile: Profile to store
            expected_version: Version the writer read, None to create only if absent

        Returns:
            True if stored, False on a concurrent write
        """
        key = self._profile_key(profile.student_id, profile.subject)

        with self.client.pipeline() as pipe:
            try:
                pipe.watch(key)
                raw_version = pipe.hget(key, "version")
                current_version = int(raw_version) if raw_version is not None else None
                if current_version != expected_version:
                    pipe.unwatch()
                    return False

                mapping = self._encode(profile)
                mapping["version"] = (expected_version or 0) + 1

                pipe.multi()
                pipe.hset(key, mapping=mapping)
                pipe.execute()
                return True
            except redis.WatchError:
                logger.info("Concurrent write on %s", key)
                return False

    def delete(self, student_id: str, subject: str):
        """Delete a profile (for testing/cleanup)."""
        self.client.delete(self._profile_key(student_id, subject))

    # ==================== Serialization ====================

    def _encode(self, profile: PerformanceProfile) -> Dict:
        return {
            "student_id": profile.student_id,
            "subject": profile.subject,
            "skill_level": profile.skill_level,
            "strengths": json.dumps(list(profile.strengths)),
            "weaknesses": json.dumps(list(profile.weaknesses)),
            "preferred_question_types": json.dumps(list(profile.preferred_question_types)),
            "difficulty_preference": profile.difficulty_preference,
            "trend": profile.trend.value,
            "updated_at": profile.updated_at.isoformat() if profile.updated_at else "",
        }

    def _decode(self, raw: Dict[str, str]) -> PerformanceProfile:
        updated_at = raw.get("updated_at")
        return PerformanceProfile(
            student_id=raw["student_id"],
            subject=raw["subject"],
            skill_level=int(raw.get("skill_level", 5)),
            strengths=json.loads(raw.get("strengths") or "[]"),
            weaknesses=json.loads(raw.get("weaknesses") or "[]"),
            preferred_question_types=json.loads(raw.get("preferred_question_types") or "[]"),
            difficulty_preference=float(raw.get("difficulty_preference", 5)),
            trend=Trend(raw.get("trend") or Trend.STABLE.value),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
            version=int(raw.get("version", 0)),
        )
