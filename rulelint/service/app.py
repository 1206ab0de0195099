"""FastAPI application entrypoint for rulelint service mode."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import ConfigError, ConfigValidationError
from ..linter import LintOutcome, Linter
from ..rules import RuleDefinitionError


class LintRequest(BaseModel):
    path: str
    files: Optional[List[str]] = None
    config: Optional[Dict[str, Any]] = None


class LintErrorPayload(BaseModel):
    filePath: str
    language: Optional[str] = None
    ruleName: str
    codeSnippet: str
    confidence: str


class LintResponse(BaseModel):
    errors: List[LintErrorPayload]
    numTasks: int
    numModelCalls: int
    numModelCallsCached: int
    numPromptTokens: int
    numCompletionTokens: int
    numTotalTokens: int
    totalCost: float
    message: Optional[str] = None
    warnings: List[str]


class HealthResponse(BaseModel):
    status: str


def _default_linter() -> Linter:
    return Linter()


def create_app(linter_factory: Callable[[], Linter] = _default_linter) -> FastAPI:
    """Create the FastAPI application exposing lint runs."""

    app = FastAPI(title="rulelint service", version="0.1.0")

    async def get_linter() -> Linter:
        # Fresh linter per request keeps state predictable.
        return linter_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/lint", response_model=LintResponse)
    async def lint(
        payload: LintRequest,
        linter: Linter = Depends(get_linter),
    ) -> LintResponse:
        outcome = await linter.lint_async(
            payload.path,
            overrides=payload.config,
            patterns=payload.files,
        )
        return _to_response(outcome)

    @app.exception_handler(ConfigValidationError)
    async def config_validation_handler(_: Any, exc: ConfigValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "detail": "Invalid linter config",
                "issues": [
                    {"location": issue.location, "message": issue.message}
                    for issue in exc.issues
                ],
            },
        )

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RuleDefinitionError)
    async def rule_error_handler(_: Any, exc: RuleDefinitionError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    return app


def _to_response(outcome: LintOutcome) -> LintResponse:
    result = outcome.result
    return LintResponse(
        errors=[
            LintErrorPayload(
                filePath=error.file_path,
                language=error.language,
                ruleName=error.rule_name,
                codeSnippet=error.code_snippet,
                confidence=error.confidence,
            )
            for error in result.lint_errors
        ],
        numTasks=outcome.num_tasks,
        numModelCalls=result.num_model_calls,
        numModelCallsCached=result.num_model_calls_cached,
        numPromptTokens=result.num_prompt_tokens,
        numCompletionTokens=result.num_completion_tokens,
        numTotalTokens=result.num_total_tokens,
        totalCost=result.total_cost,
        message=result.message,
        warnings=[str(warning) for warning in outcome.warnings],
    )


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install rulelint[service]`."
        ) from exc

    uvicorn.run(create_app(), host=host, port=port)
