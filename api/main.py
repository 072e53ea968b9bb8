"""
FastAPI Backend for the Adaptive Assessment Engine

Endpoints:
    GET  /health                           - Liveness
    GET  /profiles/{student_id}/{subject}  - Stored performance profile
    POST /profiles/analyze                 - Analysis from profile + attempts (no write)
    POST /exams/generate-adaptive          - Adaptive exam (generated or template)
    POST /results/grade                    - Grade an attempt, refresh the profile
"""

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StrictFloat, StrictInt

from assessment.adaptive_selector import AdaptiveDifficultySelector
from assessment.generation_policy import GenerationPolicy
from assessment.mastery_tracker import InMemoryProfileStore, MasteryTracker
from assessment.models import (
    Answer,
    AssessmentValidationError,
    AttemptAnswer,
    AttemptRecord,
    Question,
)
from assessment_engine import AdaptiveExam, AssessmentEngine
from config import Config, setup_logging

logger = logging.getLogger(__name__)

Number = Union[StrictInt, StrictFloat]

# ==================== Initialize ====================

setup_logging()

app = FastAPI(
    title="Adaptive Assessment API",
    description="Performance profiling, adaptive exam generation and grading",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_engine: Optional[AssessmentEngine] = None


def build_engine() -> AssessmentEngine:
    """Wire the engine from configuration."""
    if Config.PROFILE_STORE == "redis":
        from redis_store import RedisProfileStore
        store = RedisProfileStore()
    else:
        store = InMemoryProfileStore()

    question_writer = grading_assist = None
    if os.getenv("OPENAI_API_KEY"):
        from services import LLMGradingAssist, LLMQuestionWriter
        question_writer = LLMQuestionWriter()
        grading_assist = LLMGradingAssist()
    else:
        logger.warning("OPENAI_API_KEY not set; adaptive exams will use the template generator")

    policy = GenerationPolicy(
        max_attempts=Config.GENERATION_MAX_ATTEMPTS,
        backoff=Config.GENERATION_BACKOFF,
        timeout=Config.GENERATION_TIMEOUT,
    )
    return AssessmentEngine(
        store,
        question_writer=question_writer,
        grading_assist=grading_assist,
        selector=AdaptiveDifficultySelector(policy=policy),
        tracker=MasteryTracker(store, max_attempts=Config.PROFILE_UPDATE_RETRIES),
    )


def get_engine() -> AssessmentEngine:
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


# ==================== Request Models ====================

class QuestionIn(BaseModel):
    id: str
    type: str
    marks: Number
    topic: str = "general"
    difficulty: str = "medium"
    correct_answer: Any = None
    text: str = ""
    options: Optional[List[str]] = None
    grading_rubric: Optional[Dict[str, Any]] = None
    sample_answer: Optional[str] = None

    def to_question(self) -> Question:
        return Question(**self.model_dump())


class AnswerIn(BaseModel):
    question_id: str
    student_answer: Any = None
    ai_score: Optional[Number] = None
    ai_feedback: Optional[str] = None
    manual_score: Optional[Number] = None
    manual_feedback: Optional[str] = None

    def to_answer(self) -> Answer:
        return Answer(**self.model_dump())


class AttemptAnswerIn(BaseModel):
    question_id: str
    question_type: str
    marks: Number
    score_earned: Optional[Number] = None
    answer: Any = None
    topic: Optional[str] = None


class AttemptIn(BaseModel):
    percentage: Number
    answers: List[AttemptAnswerIn] = []
    attempt_id: Optional[str] = None
    submitted_at: Optional[datetime] = None

    def to_record(self) -> AttemptRecord:
        return AttemptRecord(
            percentage=self.percentage,
            answers=[AttemptAnswer(**a.model_dump()) for a in self.answers],
            attempt_id=self.attempt_id,
            submitted_at=self.submitted_at,
        )


class AnalyzeRequest(BaseModel):
    student_id: str
    subject: str
    attempts: List[AttemptIn] = []


class AdaptiveExamRequest(BaseModel):
    student_id: str
    subject: str
    grade_level: int = Field(ge=1, le=12)
    number_of_questions: int = Field(20, ge=5, le=50)
    target_difficulty: Literal["auto", "easy", "medium", "hard"] = "auto"
    focus_areas: Optional[List[str]] = None
    attempts: List[AttemptIn] = []


class GradeRequest(BaseModel):
    questions: List[QuestionIn] = Field(min_length=1)
    answers: List[AnswerIn] = []
    student_id: Optional[str] = None
    subject: Optional[str] = None
    attempt_id: Optional[str] = None
    history: Optional[List[AttemptIn]] = None


# ==================== Error Handling ====================

@app.exception_handler(AssessmentValidationError)
async def validation_error_handler(request: Request, exc: AssessmentValidationError):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": "Invalid data provided", "detail": str(exc)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Request failed. Please try again."})


def _profile_update_dict(update) -> Optional[dict]:
    if update is None:
        return None
    return {
        "applied": update.applied,
        "created": update.created,
        "conflict": update.conflict,
        "attempts": update.attempts,
        "profile": update.profile.to_dict() if update.profile else None,
    }


# ==================== Endpoints ====================

@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.get("/profiles/{student_id}/{subject}")
def get_profile(student_id: str, subject: str, engine: AssessmentEngine = Depends(get_engine)):
    profile = engine.tracker.get_profile(student_id, subject)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile.to_dict()


@app.post("/profiles/analyze")
def analyze_profile(req: AnalyzeRequest, engine: AssessmentEngine = Depends(get_engine)):
    attempts = [a.to_record() for a in req.attempts]
    analysis = engine.analyze(req.student_id, req.subject, attempts)
    return analysis.to_dict()


@app.post("/exams/generate-adaptive")
def generate_adaptive_exam(req: AdaptiveExamRequest, engine: AssessmentEngine = Depends(get_engine)):
    attempts = [a.to_record() for a in req.attempts]
    exam: AdaptiveExam = engine.generate_adaptive_exam(
        req.student_id,
        req.subject,
        req.grade_level,
        attempts,
        target_difficulty=req.target_difficulty,
        focus_areas=req.focus_areas,
        question_count=req.number_of_questions,
    )
    return {
        "message": "Adaptive exam generated successfully",
        "used_fallback": exam.used_fallback,
        "total_marks": exam.total_marks,
        "questions": [q.to_dict() for q in exam.questions],
        "generation_request": exam.request.to_dict(),
        "adaptive_analysis": exam.analysis.to_dict(),
        "profile_update": _profile_update_dict(exam.profile_update),
    }


@app.post("/results/grade")
def grade_attempt(req: GradeRequest, engine: AssessmentEngine = Depends(get_engine)):
    history = [a.to_record() for a in req.history] if req.history is not None else None
    graded = engine.grade_attempt(
        [q.to_question() for q in req.questions],
        [a.to_answer() for a in req.answers],
        student_id=req.student_id,
        subject=req.subject,
        attempt_id=req.attempt_id,
        history=history,
    )
    return {
        "attempt_id": req.attempt_id,
        "result": graded.result.to_dict(),
        "profile_update": _profile_update_dict(graded.profile_update),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
