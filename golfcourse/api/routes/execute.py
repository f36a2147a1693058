"""API route for running and validating submitted code."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ValidationError

from golfcourse.executor.judge import ExecutionService, get_execution_service


router = APIRouter()


class ExecutionRequest(BaseModel):
    """Code to run. Language defaults to the deployment's default."""
    code: str
    language: Optional[Literal["javascript", "python"]] = None


class ExecutionResponse(BaseModel):
    """Outcome of a run, with camelCase keys as the editor expects."""
    success: bool
    output: Optional[str] = None
    isValid: Optional[bool] = None
    error: Optional[str] = None


@router.post(
    "/execute",
    response_model=ExecutionResponse,
    response_model_exclude_none=True,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": ExecutionRequest.model_json_schema()},
            },
        },
    },
)
async def execute_code(
    request: Request,
    service: ExecutionService = Depends(get_execution_service),
):
    """Run code against the active problem.

    The body is parsed here rather than by FastAPI so a malformed body
    gets the same ``success``/``error`` shape as any other failure.
    """
    try:
        payload = ExecutionRequest.model_validate_json(await request.body())
    except ValidationError:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request body"},
        )

    result = await service.execute(payload.code, payload.language)
    return result.to_dict()


@router.options("/execute")
async def execute_preflight() -> PlainTextResponse:
    """Acknowledge bare OPTIONS requests; CORS preflights are answered by the middleware."""
    return PlainTextResponse("ok")
