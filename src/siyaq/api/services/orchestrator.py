"""
Multi-model workflow orchestration.

A request is classified by keywords and routed to a workflow: a fixed
pipeline of model stages where each stage sees the original request and
the previous stage's output. Every stage runs under its own timeout. When
a stage fails, output from the stages that already finished is returned
as a partial result; when nothing finished, a fixed apology is returned.
"""

from __future__ import annotations

import asyncio
import time

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
import openai

from siyaq.api.middleware.exception_handlers import ConfigurationError
from siyaq.api.middleware.request_context import update_request_context
from siyaq.core.constants import FALLBACK_MODEL_KEY, MODELS_BY_KEY
from siyaq.core.prompts import (
    ANALYSIS_KEYWORDS,
    ANALYSIS_PROMPT,
    CODE_KEYWORDS,
    COMBINED_RESULT_FOOTER,
    COMBINED_RESULT_HEADER,
    CREATIVE_KEYWORDS,
    CREATIVE_PROMPT,
    EXECUTION_PROMPT,
    GENERAL_PROMPT,
    ORCHESTRATOR_FALLBACK_MESSAGE,
    PARTIAL_RESULT_NOTICE,
    PLANNING_PROMPT,
    STAGE_ANALYSIS,
    STAGE_CREATIVE,
    STAGE_EXECUTION,
    STAGE_GENERAL,
    STAGE_PLANNING,
    build_system_prompt,
)
from siyaq.models.context_models import TokenUsage
from siyaq.utils.logger import logger
from siyaq.utils.metrics import stage_duration_seconds, stage_failures_total, workflow_requests_total

from .model_invoker import ModelInvoker

# Failures that end a stage without aborting the whole request.
# A missing provider key only affects the stages that use that provider.
STAGE_ERRORS: tuple[type[BaseException], ...] = (
    TimeoutError,
    openai.APIError,
    httpx.HTTPError,
    ConfigurationError,
)


def _failure_reason(error: BaseException) -> str:
    if isinstance(error, TimeoutError):
        return "timeout"
    if isinstance(error, ConfigurationError):
        return "configuration"
    return "error"


class RequestType(str, Enum):
    """Workflow selected for a user message."""

    CODE_GENERATION = "code_generation"
    ANALYSIS = "analysis"
    CREATIVE = "creative"
    GENERAL = "general"


def classify_request(message: str) -> RequestType:
    """Pick a workflow by keyword. Code wins over analysis, analysis over creative."""
    text = message.lower()
    if any(keyword in text for keyword in CODE_KEYWORDS):
        return RequestType.CODE_GENERATION
    if any(keyword in text for keyword in ANALYSIS_KEYWORDS):
        return RequestType.ANALYSIS
    if any(keyword in text for keyword in CREATIVE_KEYWORDS):
        return RequestType.CREATIVE
    return RequestType.GENERAL


@dataclass(frozen=True, slots=True)
class Stage:
    """One model call in a workflow. ``template`` takes ``request`` and ``previous``."""

    name: str
    model_key: str
    template: str


WORKFLOWS: dict[RequestType, tuple[Stage, ...]] = {
    RequestType.CODE_GENERATION: (
        Stage(STAGE_PLANNING, "gpt4", PLANNING_PROMPT),
        Stage(STAGE_ANALYSIS, "claude_sonnet", ANALYSIS_PROMPT),
        Stage(STAGE_EXECUTION, "deepseek_coder", EXECUTION_PROMPT),
    ),
    RequestType.ANALYSIS: (Stage(STAGE_ANALYSIS, "claude_opus", ANALYSIS_PROMPT),),
    RequestType.CREATIVE: (Stage(STAGE_CREATIVE, "gpt4", CREATIVE_PROMPT),),
    RequestType.GENERAL: (Stage(STAGE_GENERAL, "claude_sonnet", GENERAL_PROMPT),),
}


@dataclass(slots=True)
class StageResult:
    stage: str
    model: str
    content: str
    duration_ms: float


@dataclass(slots=True)
class WorkflowResult:
    """Final output of a workflow run."""

    content: str
    model: str
    request_type: RequestType
    usage: TokenUsage = field(default_factory=TokenUsage)
    stages: list[StageResult] = field(default_factory=list)
    partial: bool = False
    failed_stage: str | None = None
    response_time_ms: float = 0.0


def combine_stage_results(results: list[StageResult], failed_stage: str | None = None) -> str:
    """Render stage outputs as one markdown document."""
    sections = [f"{COMBINED_RESULT_HEADER}\n"]
    for result in results:
        sections.append(f"## {result.stage}\n\n{result.content}\n\n---\n")
    if failed_stage is not None:
        sections.append(PARTIAL_RESULT_NOTICE.format(stage=failed_stage))
    sections.append(COMBINED_RESULT_FOOTER)
    return "\n".join(sections)


class WorkflowOrchestrator:
    """Run classified requests through their model pipelines."""

    def __init__(self, invoker: ModelInvoker, stage_timeout: float = 30.0):
        self.invoker = invoker
        self.stage_timeout = stage_timeout

    async def process_request(
        self,
        prompt: str,
        user_message: str,
        preferences: dict[str, Any] | None = None,
    ) -> WorkflowResult:
        """Classify ``user_message`` and run the matching workflow on ``prompt``.

        Args:
            prompt: Assembled prompt (context plus the new message)
            user_message: Raw user message, used for classification only
            preferences: User preference flags for the system prompt
        """
        start = time.perf_counter()
        request_type = classify_request(user_message)
        system_prompt = build_system_prompt(preferences)
        stages = WORKFLOWS[request_type]
        update_request_context(request_type=request_type.value)

        logger.info(
            f"Processing {request_type.value} request with {len(stages)} stage(s)",
            request_type=request_type.value,
        )

        results: list[StageResult] = []
        usage = TokenUsage()
        failed_stage: str | None = None
        previous = ""

        for stage in stages:
            stage_prompt = stage.template.format(request=prompt, previous=previous)
            model = MODELS_BY_KEY[stage.model_key]
            stage_start = time.perf_counter()
            try:
                async with asyncio.timeout(self.stage_timeout):
                    response = await self.invoker.invoke(stage.model_key, system_prompt, stage_prompt)
            except STAGE_ERRORS as e:
                reason = _failure_reason(e)
                stage_failures_total.labels(stage=stage.name, model=model.display_name, reason=reason).inc()
                logger.error(
                    f"Stage '{stage.name}' failed ({reason}): {type(e).__name__}: {e}",
                    model_key=stage.model_key,
                    request_type=request_type.value,
                )
                failed_stage = stage.name
                break

            elapsed = time.perf_counter() - stage_start
            stage_duration_seconds.labels(stage=stage.name, model=model.display_name).observe(elapsed)
            results.append(StageResult(stage.name, response.model, response.content, elapsed * 1000))
            usage = usage + response.usage
            previous = response.content

        result = self._build_result(request_type, stages, results, usage, failed_stage)
        result.response_time_ms = (time.perf_counter() - start) * 1000
        return result

    def _build_result(
        self,
        request_type: RequestType,
        stages: tuple[Stage, ...],
        results: list[StageResult],
        usage: TokenUsage,
        failed_stage: str | None,
    ) -> WorkflowResult:
        if not results:
            workflow_requests_total.labels(request_type=request_type.value, result="failed").inc()
            return WorkflowResult(
                content=ORCHESTRATOR_FALLBACK_MESSAGE,
                model=MODELS_BY_KEY[FALLBACK_MODEL_KEY].display_name,
                request_type=request_type,
                usage=usage,
                failed_stage=failed_stage,
            )

        partial = failed_stage is not None
        workflow_requests_total.labels(
            request_type=request_type.value,
            result="partial" if partial else "complete",
        ).inc()

        if len(stages) == 1:
            content = results[0].content
        else:
            content = combine_stage_results(results, failed_stage)

        return WorkflowResult(
            content=content,
            model=results[-1].model,
            request_type=request_type,
            usage=usage,
            stages=results,
            partial=partial,
            failed_stage=failed_stage,
        )
