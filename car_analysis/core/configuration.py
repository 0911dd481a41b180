"""
Run-level configuration objects for the two orchestration pipelines.

Defaults come from the environment-backed constants in car_analysis.config,
so a deployment tunes behaviour through .env files while tests build
explicit instances.
"""
from pydantic import BaseModel, Field

from car_analysis.config import (
    ALLOW_CLARIFICATION,
    ANALYSIS_MODEL,
    ANALYSIS_MODEL_MAX_TOKENS,
    COMPRESSION_MODEL,
    COMPRESSION_MODEL_MAX_TOKENS,
    ENABLE_STATUS_UPDATES,
    FINAL_REPORT_MODEL,
    FINAL_REPORT_MODEL_MAX_TOKENS,
    MAX_CONCURRENT_SPECIALISTS,
    MAX_ORCHESTRATOR_STEPS,
    MAX_REACT_TOOL_CALLS,
    MAX_SPECIALIST_ITERATIONS,
    ROUTER_TIMEOUT_SECONDS,
    TOOL_TIMEOUT_SECONDS,
    WEB_SEARCH_MAX_QUERIES,
)


class AnalysisConfig(BaseModel):
    """Configuration for the supervisor/specialist car analysis pipeline."""

    # Model configuration
    analysis_model: str = Field(default=ANALYSIS_MODEL)
    analysis_model_max_tokens: int = Field(default=ANALYSIS_MODEL_MAX_TOKENS, ge=1)
    compression_model: str = Field(default=COMPRESSION_MODEL)
    compression_model_max_tokens: int = Field(default=COMPRESSION_MODEL_MAX_TOKENS, ge=1)
    final_report_model: str = Field(default=FINAL_REPORT_MODEL)
    final_report_model_max_tokens: int = Field(default=FINAL_REPORT_MODEL_MAX_TOKENS, ge=1)

    # Analysis flow control
    allow_clarification: bool = Field(default=ALLOW_CLARIFICATION)
    max_specialist_iterations: int = Field(default=MAX_SPECIALIST_ITERATIONS, ge=1)
    max_concurrent_specialists: int = Field(default=MAX_CONCURRENT_SPECIALISTS, ge=1)
    max_react_tool_calls: int = Field(default=MAX_REACT_TOOL_CALLS, ge=1)
    compression_max_retries: int = Field(default=3, ge=0)
    enable_status_updates: bool = Field(default=ENABLE_STATUS_UPDATES)

    # Tool configuration
    web_search_max_queries: int = Field(default=WEB_SEARCH_MAX_QUERIES, ge=1)


class OrchestratorConfig(BaseModel):
    """Configuration for the lightweight router/planner orchestrator."""

    max_steps: int = Field(default=MAX_ORCHESTRATOR_STEPS, ge=1)
    tool_timeout_seconds: float = Field(default=TOOL_TIMEOUT_SECONDS, gt=0)
    router_timeout_seconds: float = Field(default=ROUTER_TIMEOUT_SECONDS, gt=0)
    model: str = Field(default=ANALYSIS_MODEL)
    model_max_tokens: int = Field(default=ANALYSIS_MODEL_MAX_TOKENS, ge=1)
