# workflow_dispatch/config/settings.py

import json
from datetime import timedelta
from functools import lru_cache
from typing import Dict, Literal, Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_dispatch.application.dispatch_service import DispatchTarget, InvocationOptions
from workflow_dispatch.application.polling import PollSchedule
from workflow_dispatch.domain.duration import parse_duration


def _input(name: str) -> str:
    """Environment name the Actions runner uses for an action input."""
    return f"INPUT_{name.upper()}"


def _input_value(value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return json.dumps(value)


class ActionSettings(BaseSettings):
    """
    Action inputs (INPUT_* as exported by the runner) and caller identity (GITHUB_*).
    Validated once at the boundary; durations are parsed by invocation_options().
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    # --- Inputs ---
    workflow: str = Field(..., min_length=1, validation_alias=_input("workflow"))
    token: str = Field(..., min_length=1, repr=False, validation_alias=_input("token"))
    repo: Optional[str] = Field(None, validation_alias=_input("repo"))
    ref: Optional[str] = Field(None, validation_alias=_input("ref"))
    inputs: str = Field("{}", validation_alias=_input("inputs"))
    wait_for_completion: bool = Field(True, validation_alias=_input("wait-for-completion"))
    wait_for_completion_timeout: str = Field("1h", validation_alias=_input("wait-for-completion-timeout"))
    wait_for_completion_interval: str = Field("1m", validation_alias=_input("wait-for-completion-interval"))
    display_workflow_run_url: bool = Field(True, validation_alias=_input("display-workflow-run-url"))
    display_workflow_run_url_timeout: str = Field(
        "10m", validation_alias=_input("display-workflow-run-url-timeout")
    )
    display_workflow_run_url_interval: str = Field(
        "1m", validation_alias=_input("display-workflow-run-url-interval")
    )

    # --- Caller identity ---
    github_actor: str = Field(..., min_length=1)
    github_repository: Optional[str] = None
    github_ref: Optional[str] = None
    github_head_ref: Optional[str] = None
    github_base_ref: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    github_output: Optional[str] = None

    # --- Runtime ---
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    clock_skew_tolerance_seconds: float = Field(5.0, ge=0)

    @field_validator("inputs")
    @classmethod
    def inputs_must_be_json_object(cls, v: str) -> str:
        """Ensure inputs is a JSON object (string keys); values are stringified on dispatch."""
        try:
            parsed = json.loads(v or "{}")
        except ValueError as e:
            raise ValueError("inputs must be a JSON object") from e
        if not isinstance(parsed, dict):
            raise ValueError("inputs must be a JSON object")
        return v or "{}"

    @field_validator("repo", "github_repository")
    @classmethod
    def repo_must_be_owner_slash_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        owner, _, name = v.partition("/")
        if not owner or not name or "/" in name:
            raise ValueError("repository must be <owner>/<name>")
        return v

    @model_validator(mode="after")
    def target_must_be_resolvable(self) -> "ActionSettings":
        if not (self.repo or self.github_repository):
            raise ValueError("repo is required when GITHUB_REPOSITORY is not set")
        if not (self.ref or self.github_head_ref or self.github_ref):
            raise ValueError("ref is required when GITHUB_REF is not set")
        return self

    def repository(self) -> Tuple[str, str]:
        owner, _, name = (self.repo or self.github_repository or "").partition("/")
        return owner, name

    def resolved_ref(self) -> str:
        """
        Explicit ref, else the pull request head branch (refs/pull/N/merge cannot be
        dispatched), else the ref that triggered the calling workflow.
        """
        if self.ref:
            return self.ref
        if self.github_head_ref:
            return f"refs/heads/{self.github_head_ref}"
        return self.github_ref or ""

    def dispatch_inputs(self) -> Dict[str, str]:
        return {str(k): _input_value(v) for k, v in json.loads(self.inputs).items()}

    def dispatch_target(self) -> DispatchTarget:
        owner, name = self.repository()
        return DispatchTarget(
            workflow_ref=self.workflow,
            repo_owner=owner,
            repo_name=name,
            git_ref=self.resolved_ref(),
            actor=self.github_actor,
            inputs=self.dispatch_inputs(),
        )

    def invocation_options(self) -> InvocationOptions:
        """Parse every duration. Raises InvalidDurationFormatError before any network call."""
        return InvocationOptions(
            wait_for_completion=self.wait_for_completion,
            completion=PollSchedule(
                interval_seconds=parse_duration(self.wait_for_completion_interval),
                timeout_seconds=parse_duration(self.wait_for_completion_timeout),
            ),
            display_workflow_url=self.display_workflow_run_url,
            discovery=PollSchedule(
                interval_seconds=parse_duration(self.display_workflow_run_url_interval),
                timeout_seconds=parse_duration(self.display_workflow_run_url_timeout),
            ),
            clock_skew_tolerance=timedelta(seconds=self.clock_skew_tolerance_seconds),
        )


@lru_cache
def get_settings() -> ActionSettings:
    return ActionSettings()
