"""Configuration for the deploy action.

Configuration is loaded from:
- environment variables set by the GitHub Actions runner
- and a local `.env` file (if present)

The runner exposes every action input as `INPUT_<NAME>`, upper-cased with
hyphens preserved, so the `github-token` input arrives as `INPUT_GITHUB-TOKEN`.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tfc_deploy.deploy import DeployContext

_REQUIRED_INPUTS: dict[str, str] = {
    "github_token": "INPUT_GITHUB-TOKEN",
    "tfc_token": "INPUT_TOKEN",
    "workspace": "INPUT_WORKSPACE",
    "organization": "INPUT_ORGANIZATION",
    "tag": "INPUT_TAG",
    "repository": "GITHUB_REPOSITORY",
}


class DeploySettings(BaseSettings):
    """Settings for one deploy run.

    Environment variables:
    - INPUT_GITHUB-TOKEN, INPUT_TOKEN
    - INPUT_WORKSPACE, INPUT_ORGANIZATION, INPUT_TAG
    - INPUT_MESSAGE, INPUT_COMMIT-MESSAGE, INPUT_AUTO-APPLY (optional)
    - GITHUB_REPOSITORY, GITHUB_ACTOR, GITHUB_API_URL
    - TFC_BASE_URL      (optional)
    - LOG_LEVEL         (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `DeploySettings(_env_file=path_to_env)`.
    """

    # Required values default to empty so `DeploySettings()` type-checks; the
    # validator below reports everything that is still missing.
    github_token: str = Field(
        default="",
        validation_alias="INPUT_GITHUB-TOKEN",
        description="GitHub token used to create the tracking issue and comments",
    )
    tfc_token: str = Field(
        default="",
        validation_alias="INPUT_TOKEN",
        description="Terraform Cloud API token",
    )
    workspace: str = Field(
        default="",
        validation_alias="INPUT_WORKSPACE",
        description="Terraform Cloud workspace name",
    )
    organization: str = Field(
        default="",
        validation_alias="INPUT_ORGANIZATION",
        description="Terraform Cloud organization name",
    )
    tag: str = Field(
        default="",
        validation_alias="INPUT_TAG",
        description="Version identifier written to the workspace `tag` variable",
    )
    message: str = Field(
        default="",
        validation_alias="INPUT_MESSAGE",
        description="Message attached to the Terraform Cloud run",
    )
    commit_message: str = Field(
        default="",
        validation_alias="INPUT_COMMIT-MESSAGE",
        description="Commit message of the triggering push (informational)",
    )
    auto_apply: bool = Field(
        default=False,
        validation_alias="INPUT_AUTO-APPLY",
        description="Apply the run without manual confirmation; only 'true' enables it",
    )

    repository: str = Field(
        default="",
        validation_alias="GITHUB_REPOSITORY",
        description="Repository receiving the tracking issue, in the form 'owner/repo'",
    )
    actor: str = Field(
        default="",
        validation_alias="GITHUB_ACTOR",
        description="Login of the user who triggered the workflow; assigned to the issue",
    )
    github_api_url: str = Field(
        default="https://api.github.com",
        validation_alias="GITHUB_API_URL",
        description="GitHub API base URL (useful for GitHub Enterprise)",
    )
    github_output: str = Field(
        default="",
        validation_alias="GITHUB_OUTPUT",
        description="File that receives step outputs",
    )

    tfc_base_url: str = Field(
        default="https://app.terraform.io",
        validation_alias="TFC_BASE_URL",
        description="Terraform Cloud (or Terraform Enterprise) base URL",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("auto_apply", mode="before")
    @classmethod
    def _parse_auto_apply(cls, value: Any) -> bool:
        # Action inputs are strings; anything but "true" leaves auto apply off.
        if isinstance(value, bool):
            return value
        return isinstance(value, str) and value.strip() == "true"

    @field_validator(
        "github_token",
        "tfc_token",
        "workspace",
        "organization",
        "tag",
        "repository",
        "actor",
        mode="after",
    )
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @field_validator("log_level", mode="after")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL must be a logging level name, got {value!r}")
        return level

    @model_validator(mode="after")
    def _require_inputs(self) -> DeploySettings:
        missing = [env for field, env in _REQUIRED_INPUTS.items() if not getattr(self, field)]
        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")
        if self.repository.count("/") != 1:
            raise ValueError("GITHUB_REPOSITORY must be in the form 'owner/repo'")
        return self

    def to_context(self) -> DeployContext:
        """Freeze the values the deployer needs into an explicit context."""

        return DeployContext(
            workspace=self.workspace,
            organization=self.organization,
            tag=self.tag,
            message=self.message,
            commit_message=self.commit_message,
            auto_apply=self.auto_apply,
            actor=self.actor,
            app_url=self.tfc_base_url,
        )
