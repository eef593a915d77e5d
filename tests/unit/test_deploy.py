"""Unit tests for the deploy flow (mocked clients)."""

from __future__ import annotations

from unittest.mock import Mock, call

import pytest
import requests

from tfc_deploy.deploy import (
    NO_TAG_COMMENT,
    VARIABLE_SET_COMMENT,
    DeployContext,
    Deployer,
    DeployStage,
    VariableFound,
    VariableNotFound,
    find_variable,
)
from tfc_deploy.terraform.client import TerraformCloudError, Variable


def test_find_variable_returns_found_for_tag_key() -> None:
    other = Variable(id="v0", attributes={"key": "region", "value": "eu-west-1"})
    tag = Variable(id="v1", attributes={"key": "tag", "value": "v1.0.0"})

    lookup = find_variable([other, tag])

    assert lookup == VariableFound(variable=tag)


def test_find_variable_returns_not_found_without_tag_key() -> None:
    variables = [
        Variable(id="v0", attributes={"key": "region", "value": "eu-west-1"}),
        Variable(id="v2", attributes={"key": "TAG", "value": "v1.0.0"}),
        Variable(id="v3", attributes={}),
    ]

    assert find_variable(variables) == VariableNotFound(key="tag")
    assert find_variable([]) == VariableNotFound(key="tag")


def test_run_url_uses_organization_workspace_and_run_id(context: DeployContext) -> None:
    assert (
        context.run_url("run-abc")
        == "https://app.terraform.io/app/acme/workspaces/prod/runs/run-abc"
    )


def test_deploy_with_tag_variable_patches_runs_and_links(
    context: DeployContext,
    tag_variable: Variable,
    mock_terraform: Mock,
    mock_reporter: Mock,
) -> None:
    result = Deployer(terraform=mock_terraform, reporter=mock_reporter).deploy(context)

    mock_reporter.create_issue.assert_called_once_with(
        title="Deploying tag v1.2.3",
        body="Deploying tag v1.2.3 to prod.",
        labels=["deployment"],
        assignees=["octocat"],
    )
    mock_terraform.list_variables.assert_called_once_with(
        workspace_name="prod", organization="acme"
    )
    mock_terraform.update_variable.assert_called_once_with(
        variable=tag_variable, new_value="v1.2.3"
    )
    mock_reporter.create_comment.assert_called_once_with(
        issue_number=7, body=VARIABLE_SET_COMMENT
    )
    mock_terraform.get_workspace.assert_called_once_with(
        workspace_name="prod", organization="acme"
    )
    mock_terraform.create_run.assert_called_once_with(
        workspace=mock_terraform.get_workspace.return_value,
        message="Deploy v1.2.3",
        auto_apply=True,
    )

    mock_reporter.update_comment.assert_called_once()
    updated_body = mock_reporter.update_comment.call_args.kwargs["body"]
    assert mock_reporter.update_comment.call_args.kwargs["comment_id"] == 1001
    assert updated_body.startswith(VARIABLE_SET_COMMENT)
    assert "https://app.terraform.io/app/acme/workspaces/prod/runs/run-abc" in updated_body

    assert result.stage is DeployStage.END
    assert result.deployed is True
    assert result.issue_number == 7
    assert result.comment_id == 1001
    assert result.run_url == "https://app.terraform.io/app/acme/workspaces/prod/runs/run-abc"


def test_deploy_without_tag_variable_only_comments(
    context: DeployContext,
    mock_terraform: Mock,
    mock_reporter: Mock,
) -> None:
    mock_terraform.list_variables.return_value = [
        Variable(id="v0", attributes={"key": "region", "value": "eu-west-1"})
    ]

    result = Deployer(terraform=mock_terraform, reporter=mock_reporter).deploy(context)

    mock_reporter.create_comment.assert_called_once_with(issue_number=7, body=NO_TAG_COMMENT)
    mock_terraform.update_variable.assert_not_called()
    mock_terraform.get_workspace.assert_not_called()
    mock_terraform.create_run.assert_not_called()
    mock_reporter.update_comment.assert_not_called()

    assert result.deployed is False
    assert result.run_url is None
    assert result.issue_number == 7


@pytest.mark.parametrize("auto_apply", [True, False])
def test_deploy_forwards_auto_apply(
    auto_apply: bool,
    mock_terraform: Mock,
    mock_reporter: Mock,
) -> None:
    context = DeployContext(
        workspace="prod", organization="acme", tag="v1.2.3", auto_apply=auto_apply
    )

    Deployer(terraform=mock_terraform, reporter=mock_reporter).deploy(context)

    assert mock_terraform.create_run.call_args.kwargs["auto_apply"] is auto_apply


def test_deploy_without_actor_creates_unassigned_issue(
    mock_terraform: Mock,
    mock_reporter: Mock,
) -> None:
    context = DeployContext(workspace="prod", organization="acme", tag="v1.2.3")

    Deployer(terraform=mock_terraform, reporter=mock_reporter).deploy(context)

    assert mock_reporter.create_issue.call_args.kwargs["assignees"] == []


_CALL_ORDER = [
    ("reporter", "create_issue"),
    ("terraform", "list_variables"),
    ("terraform", "update_variable"),
    ("reporter", "create_comment"),
    ("terraform", "get_workspace"),
    ("terraform", "create_run"),
    ("reporter", "update_comment"),
]


@pytest.mark.parametrize("failing_index", range(len(_CALL_ORDER)))
def test_deploy_stops_at_first_failing_call(
    failing_index: int,
    context: DeployContext,
    mock_terraform: Mock,
    mock_reporter: Mock,
) -> None:
    clients = {"terraform": mock_terraform, "reporter": mock_reporter}
    owner, method = _CALL_ORDER[failing_index]
    error: Exception
    if owner == "terraform":
        error = TerraformCloudError("Terraform Cloud request failed")
    else:
        error = requests.HTTPError("502 Server Error")
    getattr(clients[owner], method).side_effect = error

    deployer = Deployer(terraform=mock_terraform, reporter=mock_reporter)
    with pytest.raises(type(error)):
        deployer.deploy(context)

    for index, (later_owner, later_method) in enumerate(_CALL_ORDER):
        mocked = getattr(clients[later_owner], later_method)
        if index <= failing_index:
            assert mocked.call_count == 1
        else:
            mocked.assert_not_called()


def test_run_failure_leaves_variable_patched(
    context: DeployContext,
    mock_terraform: Mock,
    mock_reporter: Mock,
) -> None:
    mock_terraform.create_run.side_effect = TerraformCloudError("HTTP 500", status_code=500)

    with pytest.raises(TerraformCloudError):
        Deployer(terraform=mock_terraform, reporter=mock_reporter).deploy(context)

    # No rollback: the variable update stays and only one update was sent.
    assert mock_terraform.update_variable.mock_calls == [
        call(variable=mock_terraform.list_variables.return_value[0], new_value="v1.2.3")
    ]
