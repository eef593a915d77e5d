"""Test configuration and fixtures."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from tfc_deploy.deploy import DeployContext
from tfc_deploy.github.reporter import CreatedIssue, IssueComment, IssueReporter
from tfc_deploy.terraform.client import Run, TerraformCloudClient, Variable, Workspace

_ENV_VARS = (
    "INPUT_GITHUB-TOKEN",
    "INPUT_TOKEN",
    "INPUT_WORKSPACE",
    "INPUT_ORGANIZATION",
    "INPUT_TAG",
    "INPUT_MESSAGE",
    "INPUT_COMMIT-MESSAGE",
    "INPUT_AUTO-APPLY",
    "GITHUB_REPOSITORY",
    "GITHUB_ACTOR",
    "GITHUB_API_URL",
    "GITHUB_OUTPUT",
    "TFC_BASE_URL",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Start from an empty action environment with no `.env` file in reach."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def action_env(clean_env: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Provide the inputs a tagged deploy workflow would pass."""
    clean_env.setenv("INPUT_GITHUB-TOKEN", "gh-token")
    clean_env.setenv("INPUT_TOKEN", "tfc-token")
    clean_env.setenv("INPUT_WORKSPACE", "prod")
    clean_env.setenv("INPUT_ORGANIZATION", "acme")
    clean_env.setenv("INPUT_TAG", "v1.2.3")
    clean_env.setenv("INPUT_MESSAGE", "Deploy v1.2.3")
    clean_env.setenv("INPUT_AUTO-APPLY", "true")
    clean_env.setenv("GITHUB_REPOSITORY", "acme/app")
    clean_env.setenv("GITHUB_ACTOR", "octocat")
    return clean_env


@pytest.fixture
def context() -> DeployContext:
    return DeployContext(
        workspace="prod",
        organization="acme",
        tag="v1.2.3",
        message="Deploy v1.2.3",
        auto_apply=True,
        actor="octocat",
    )


@pytest.fixture
def tag_variable() -> Variable:
    return Variable(
        id="v1",
        attributes={
            "key": "tag",
            "value": "v1.2.2",
            "category": "terraform",
            "hcl": False,
            "sensitive": False,
        },
    )


@pytest.fixture
def mock_terraform(tag_variable: Variable) -> Mock:
    terraform = Mock(spec=TerraformCloudClient)
    terraform.list_variables.return_value = [tag_variable]
    terraform.update_variable.return_value = Variable(
        id="v1", attributes={**tag_variable.attributes, "value": "v1.2.3"}
    )
    terraform.get_workspace.return_value = Workspace(id="ws-123", name="prod")
    terraform.create_run.return_value = Run(id="run-abc", status="pending")
    return terraform


@pytest.fixture
def mock_reporter() -> Mock:
    reporter = Mock(spec=IssueReporter)
    reporter.repository = "acme/app"
    reporter.create_issue.return_value = CreatedIssue(
        repository="acme/app",
        number=7,
        title="Deploying tag v1.2.3",
        url="https://github.com/acme/app/issues/7",
    )
    reporter.create_comment.return_value = IssueComment(
        id=1001, issue_number=7, body="", url=None
    )
    reporter.update_comment.return_value = IssueComment(
        id=1001, issue_number=None, body="", url=None
    )
    return reporter
