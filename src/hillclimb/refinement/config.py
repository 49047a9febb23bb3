"""Session configuration for a refinement run."""

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..core.types import ConfigError


class GapAnalysisMode(str, Enum):
    """
    When to run gap analysis.

    ON: Every iteration
    OFF: Never (recommendation-only stopping)
    AUTO: Only while the incumbent is shorter than the size threshold
    """
    ON = "on"
    OFF = "off"
    AUTO = "auto"


class RunContext(BaseModel):
    """Optional logging context, passed by value with the config."""

    session_id: Optional[str] = None
    idea_id: Optional[Union[int, str]] = None
    component: str = "hill_climbing"

    def as_extra(self) -> Dict[str, Any]:
        return self.model_dump()


class LongOutputOptions(BaseModel):
    """Continuation-loop settings for outputs too long for one call."""

    completion_marker: str = "<<<FINISHED>>>"
    max_loops: int = Field(default=7, ge=1)
    min_response_length: int = Field(default=20, ge=0)


class RefinementConfig(BaseModel):
    """
    Everything one refinement session needs.

    Defaults are applied at construction; invalid values surface as
    ConfigError through ``RefinementConfig.build``.
    """

    session_dir: str
    task_prompt: str
    criteria_text: Optional[str] = None
    criteria_file: Optional[str] = None
    max_iterations: int = Field(default=3, ge=1)
    judge_count: int = Field(default=1, ge=1)
    model_hint: Optional[str] = None
    gap_analysis: GapAnalysisMode = GapAnalysisMode.AUTO
    gap_analysis_threshold: int = Field(default=10_000, ge=0)
    stability_window: int = Field(default=2, ge=1)
    min_improvement: float = Field(default=0.05, ge=0.0, le=1.0)
    handle_long_output: bool = False
    long_output: LongOutputOptions = Field(default_factory=LongOutputOptions)
    context: RunContext = Field(default_factory=RunContext)

    @field_validator("session_dir", "task_prompt")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    @classmethod
    def build(cls, **kwargs: Any) -> "RefinementConfig":
        """
        Validate keyword arguments into a config.

        Raises:
            ConfigError: If a required field is missing or a value is invalid
        """
        try:
            return cls(**kwargs)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(loc) for loc in first.get("loc", ()))
            raise ConfigError(f"{field}: {first.get('msg', 'invalid value')}", field=field) from e
