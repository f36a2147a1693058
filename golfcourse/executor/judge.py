"""Execution service for contest submissions.

Runs a submission once, then checks its output against the active
problem's expected output.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from golfcourse.config import settings
from golfcourse.core.metrics import record_execution
from golfcourse.executor.problems import Problem, get_active_problem
from golfcourse.executor.sandbox import Language, SandboxExecutor, SandboxRun, sandbox

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s")


@dataclass
class ExecutionResult:
    """Outcome of one execute call.

    ``output`` and ``is_valid`` are only set when ``success`` is true,
    ``error`` only when it is false.
    """
    success: bool
    output: Optional[str] = None
    is_valid: Optional[bool] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.success:
            data["output"] = self.output
            data["isValid"] = self.is_valid
        else:
            data["error"] = self.error
        return data


def count_characters(code: str) -> int:
    """Golf score of a solution: every character except whitespace."""
    return len(_WHITESPACE.sub("", code))


class ExecutionService:
    """Executes submissions and validates them against a fixed answer.

    Validation compares trimmed output with the trimmed expected output
    for exact equality. The returned output is truncated, validation
    always uses the full capture.
    """

    def __init__(
        self,
        executor: Optional[SandboxExecutor] = None,
        problem: Optional[Problem] = None,
        output_limit: Optional[int] = None,
        allowed_languages: Optional[list[str]] = None,
        default_language: Optional[str] = None,
    ):
        self.executor = executor or sandbox
        self._problem = problem
        self.output_limit = output_limit or settings.output_limit
        self.allowed_languages = allowed_languages or settings.allowed_languages
        self.default_language = default_language or settings.default_language

    @property
    def problem(self) -> Problem:
        return self._problem or get_active_problem()

    def compare_output(self, expected: str, actual: str) -> bool:
        return expected.strip() == actual.strip()

    def truncate(self, text: str) -> str:
        return text[: self.output_limit]

    def resolve_language(self, language: Optional[str]) -> Optional[Language]:
        """Map a request's language tag to a Language, None if not enabled."""
        name = (language or self.default_language).lower()
        if name not in self.allowed_languages:
            return None
        try:
            return Language(name)
        except ValueError:
            return None

    async def execute(self, code: str, language: Optional[str] = None) -> ExecutionResult:
        """Run ``code`` and validate its output.

        Args:
            code: Submitted program text
            language: Language tag, the deployment default when omitted

        Returns:
            ExecutionResult
        """
        lang = self.resolve_language(language)
        if lang is None:
            return ExecutionResult(
                success=False,
                error=f"Unsupported language: {language or self.default_language}",
            )

        run: SandboxRun = await self.executor.execute(code, lang)

        if not run.success:
            result_type = "timeout" if run.timed_out else "error"
            self._record(lang, result_type, run, code)
            return ExecutionResult(
                success=False,
                error=self.truncate(self._error_text(run)),
            )

        is_valid = self.compare_output(self.problem.expected_output(), run.stdout)
        self._record(lang, "passed" if is_valid else "failed", run, code)

        return ExecutionResult(
            success=True,
            output=self.truncate(run.stdout),
            is_valid=is_valid,
        )

    def _error_text(self, run: SandboxRun) -> str:
        text = run.stderr.strip()
        if text:
            return text
        return f"Execution failed with exit code {run.exit_code}"

    def _record(self, language: Language, result: str, run: SandboxRun, code: str) -> None:
        logger.debug(
            "Executed %s submission: result=%s exit_code=%s time_ms=%s",
            language.value, result, run.exit_code, run.execution_time_ms,
        )
        record_execution(
            language=language.value,
            result=result,
            execution_time=run.execution_time_ms / 1000,
            code_length=count_characters(code),
        )


# Global execution service instance
execution_service = ExecutionService()


def get_execution_service() -> ExecutionService:
    """FastAPI dependency returning the global service."""
    return execution_service
