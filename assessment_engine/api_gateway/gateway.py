# -*- coding: utf-8 -*-
"""API 网关主文件。

使用 FastAPI 实现，定义了所有面向前端的 HTTP 接口，
负责请求的接收、初步校验、路由到 AssessmentApp，
并把领域异常映射为 HTTP 状态码（校验 400、状态冲突 409、记录不存在 404）。
"""
import logging
from typing import TYPE_CHECKING, Any, Dict, List

from fastapi import FastAPI, HTTPException, Path
from pydantic import BaseModel, Field

from assessment_engine.common.exceptions import (
    AssessmentError,
    InvalidStateError,
    RecordNotFoundError,
    ValidationError,
)
from assessment_engine.records.records import Question, Test

if TYPE_CHECKING:
    from assessment_engine.app import AssessmentApp

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# --- Request Models ---
class StartAttemptRequest(BaseModel):
    student_id: str
    test_id: str


class SubmitAttemptRequest(BaseModel):
    answers: Dict[str, str] = Field(default_factory=dict)


class FeedbackRequest(BaseModel):
    author_id: str
    message: str


class CreateTestRequest(BaseModel):
    test: Test
    questions: List[Question]


# --- API Gateway Class ---
class APIGateway:
    """
    API Gateway using FastAPI to route requests to the AssessmentApp.
    """

    def __init__(self, assessment_app: 'AssessmentApp'):
        self.app = FastAPI(title="Assessment Scoring & Analytics API Gateway")
        self.assessment_app = assessment_app
        self._setup_routes()

    def _to_http_error(self, e: AssessmentError, operation: str) -> HTTPException:
        if isinstance(e, ValidationError):
            status_code = 400
        elif isinstance(e, InvalidStateError):
            status_code = 409
        elif isinstance(e, RecordNotFoundError):
            status_code = 404
        else:
            status_code = 500
        logger.warning(f"{operation} rejected with {status_code}: {e}")
        detail: Dict[str, Any] = {"message": str(e), "error": type(e).__name__}
        if isinstance(e, ValidationError) and e.missing_count:
            detail["missing_count"] = e.missing_count
        return HTTPException(status_code=status_code, detail=detail)

    def _internal_error(self, e: Exception, operation: str) -> HTTPException:
        logger.exception(f"Error during {operation}: {e}")
        self.assessment_app.monitoring_manager.log_error(
            f"API Gateway error during {operation}",
            {"error": str(e), "module": "APIGateway"},
        )
        return HTTPException(status_code=500, detail=f"Internal server error during {operation}.")

    def _setup_routes(self):
        """Defines the API routes."""

        @self.app.get("/health", tags=["Admin"])
        async def health() -> Dict[str, Any]:
            return {"status": "ok"}

        @self.app.post("/api/v1/tests", tags=["Authoring"], status_code=201)
        async def create_test(request_body: CreateTestRequest) -> Dict[str, Any]:
            try:
                test = self.assessment_app.create_test(request_body.test, request_body.questions)
                return test.model_dump(mode="json")
            except AssessmentError as e:
                raise self._to_http_error(e, "test authoring")
            except Exception as e:
                raise self._internal_error(e, "test authoring")

        @self.app.post("/api/v1/attempts", tags=["Attempts"], status_code=201)
        async def start_attempt(request_body: StartAttemptRequest) -> Dict[str, Any]:
            logger.info(
                f"Gateway received start attempt for student {request_body.student_id} "
                f"on test {request_body.test_id}"
            )
            try:
                attempt = self.assessment_app.start_attempt(
                    request_body.student_id, request_body.test_id
                )
                return attempt.model_dump(mode="json")
            except AssessmentError as e:
                raise self._to_http_error(e, "start attempt")
            except Exception as e:
                raise self._internal_error(e, "start attempt")

        @self.app.post("/api/v1/attempts/{attempt_id}/submit", tags=["Attempts"])
        async def submit_attempt(
            request_body: SubmitAttemptRequest,
            attempt_id: str = Path(..., title="Attempt ID"),
        ) -> Dict[str, Any]:
            """
            Grades an attempt. 400 when answers are missing, 409 when it was
            already graded, 404 for an unknown attempt.
            """
            try:
                result = self.assessment_app.submit_attempt(attempt_id, request_body.answers)
                return result.model_dump(mode="json")
            except AssessmentError as e:
                raise self._to_http_error(e, f"submit of attempt {attempt_id}")
            except Exception as e:
                raise self._internal_error(e, f"submit of attempt {attempt_id}")

        @self.app.post("/api/v1/attempts/{attempt_id}/feedback", tags=["Attempts"], status_code=201)
        async def add_feedback(
            request_body: FeedbackRequest,
            attempt_id: str = Path(..., title="Attempt ID"),
        ) -> Dict[str, Any]:
            try:
                feedback = self.assessment_app.add_feedback(
                    attempt_id, request_body.author_id, request_body.message
                )
                return feedback.model_dump(mode="json")
            except AssessmentError as e:
                raise self._to_http_error(e, f"feedback on attempt {attempt_id}")
            except Exception as e:
                raise self._internal_error(e, f"feedback on attempt {attempt_id}")

        @self.app.get("/api/v1/attempts/{attempt_id}/feedback", tags=["Attempts"])
        async def list_feedback(attempt_id: str = Path(..., title="Attempt ID")) -> Dict[str, Any]:
            try:
                feedback = self.assessment_app.list_feedback(attempt_id)
                return {"status": "success", "data": [f.model_dump(mode="json") for f in feedback]}
            except AssessmentError as e:
                raise self._to_http_error(e, f"feedback listing for attempt {attempt_id}")
            except Exception as e:
                raise self._internal_error(e, f"feedback listing for attempt {attempt_id}")

        @self.app.get("/api/v1/students/{student_id}/analytics", tags=["Analytics"])
        async def student_analytics(student_id: str = Path(..., title="Student ID")) -> Dict[str, Any]:
            logger.info(f"Gateway received student analytics request for {student_id}")
            try:
                return self.assessment_app.get_student_analytics(student_id).model_dump(mode="json")
            except Exception as e:
                raise self._internal_error(e, f"student analytics for {student_id}")

        @self.app.get("/api/v1/teachers/{teacher_id}/analytics", tags=["Analytics"])
        async def teacher_analytics(teacher_id: str = Path(..., title="Teacher ID")) -> Dict[str, Any]:
            logger.info(f"Gateway received teacher analytics request for {teacher_id}")
            try:
                return self.assessment_app.get_teacher_analytics(teacher_id).model_dump(mode="json")
            except Exception as e:
                raise self._internal_error(e, f"teacher analytics for {teacher_id}")

        @self.app.get("/api/v1/leaderboard", tags=["Analytics"])
        async def leaderboard() -> Dict[str, Any]:
            try:
                entries = self.assessment_app.get_leaderboard()
                return {"status": "success", "data": [e.model_dump(mode="json") for e in entries]}
            except Exception as e:
                raise self._internal_error(e, "leaderboard")

    def get_fastapi_app(self) -> FastAPI:
        """Returns the FastAPI application instance."""
        return self.app
