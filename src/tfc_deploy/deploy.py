"""Deployment flow: tracking issue, `tag` variable update, Terraform Cloud run.

The flow is strictly sequential. Nothing is caught here; the first failing call
stops the deploy and the error reaches the entrypoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tfc_deploy.github.reporter import IssueReporter
    from tfc_deploy.terraform.client import Run, TerraformCloudClient, Variable, Workspace

logger = logging.getLogger(__name__)

TAG_VARIABLE_KEY = "tag"
DEPLOYMENT_LABEL = "deployment"

VARIABLE_SET_COMMENT = "Variable set on Terraform Cloud."
NO_TAG_COMMENT = "No variable tag found."


class DeployStage(str, Enum):
    START = "start"
    ISSUE_CREATED = "issue_created"
    VARIABLES_LISTED = "variables_listed"
    TAG_FOUND = "tag_found"
    TAG_MISSING = "tag_missing"
    VARIABLE_PATCHED = "variable_patched"
    COMMENTED = "commented"
    WORKSPACE_RESOLVED = "workspace_resolved"
    RUN_CREATED = "run_created"
    COMMENT_UPDATED = "comment_updated"
    END = "end"


@dataclass(frozen=True, slots=True)
class DeployContext:
    """Everything a deploy needs besides the API clients.

    Built once from settings and passed explicitly; credentials live in the
    clients, not here.
    """

    workspace: str
    organization: str
    tag: str
    message: str = ""
    commit_message: str = ""
    auto_apply: bool = False
    actor: str = ""
    app_url: str = "https://app.terraform.io"

    @property
    def issue_title(self) -> str:
        return f"Deploying tag {self.tag}"

    @property
    def issue_body(self) -> str:
        return f"Deploying tag {self.tag} to {self.workspace}."

    def run_url(self, run_id: str) -> str:
        base = self.app_url.rstrip("/")
        return f"{base}/app/{self.organization}/workspaces/{self.workspace}/runs/{run_id}"


@dataclass(frozen=True, slots=True)
class VariableFound:
    variable: Variable


@dataclass(frozen=True, slots=True)
class VariableNotFound:
    key: str


TagLookup = VariableFound | VariableNotFound


def find_variable(variables: list[Variable], key: str = TAG_VARIABLE_KEY) -> TagLookup:
    """Return the first variable whose key matches, or an explicit miss.

    Keys are assumed unique within a workspace; this is not checked.
    """

    for variable in variables:
        if variable.key == key:
            return VariableFound(variable=variable)
    return VariableNotFound(key=key)


def run_comment(run_url: str) -> str:
    return f"{VARIABLE_SET_COMMENT} [Terraform Cloud Run]({run_url})"


@dataclass(frozen=True, slots=True)
class DeployResult:
    stage: DeployStage
    issue_number: int
    comment_id: int | None = None
    variable: Variable | None = None
    workspace: Workspace | None = None
    run: Run | None = None
    run_url: str | None = None

    @property
    def deployed(self) -> bool:
        return self.run is not None


class Deployer:
    """Runs one deployment against Terraform Cloud and reports it on GitHub."""

    def __init__(
        self,
        *,
        terraform: TerraformCloudClient,
        reporter: IssueReporter,
    ) -> None:
        self._terraform = terraform
        self._reporter = reporter

    @staticmethod
    def _advance(stage: DeployStage, **extra: object) -> DeployStage:
        logger.info("Deploy stage reached", extra={"stage": stage.value, **extra})
        return stage

    def deploy(self, context: DeployContext) -> DeployResult:
        self._advance(
            DeployStage.START,
            workspace=context.workspace,
            organization=context.organization,
            tag=context.tag,
            commit_message=context.commit_message,
        )

        issue = self._reporter.create_issue(
            title=context.issue_title,
            body=context.issue_body,
            labels=[DEPLOYMENT_LABEL],
            assignees=[context.actor] if context.actor else [],
        )
        self._advance(DeployStage.ISSUE_CREATED, issue_number=issue.number)

        variables = self._terraform.list_variables(
            workspace_name=context.workspace,
            organization=context.organization,
        )
        self._advance(DeployStage.VARIABLES_LISTED, count=len(variables))

        lookup = find_variable(variables)
        if isinstance(lookup, VariableNotFound):
            self._advance(DeployStage.TAG_MISSING, key=lookup.key)
            comment = self._reporter.create_comment(issue_number=issue.number, body=NO_TAG_COMMENT)
            logger.warning(
                "Workspace has no tag variable; nothing deployed",
                extra={"workspace": context.workspace, "issue_number": issue.number},
            )
            return DeployResult(
                stage=self._advance(DeployStage.END),
                issue_number=issue.number,
                comment_id=comment.id,
            )

        self._advance(DeployStage.TAG_FOUND, variable_id=lookup.variable.id)

        variable = self._terraform.update_variable(variable=lookup.variable, new_value=context.tag)
        self._advance(DeployStage.VARIABLE_PATCHED, variable_id=variable.id)

        comment = self._reporter.create_comment(
            issue_number=issue.number, body=VARIABLE_SET_COMMENT
        )
        self._advance(DeployStage.COMMENTED, comment_id=comment.id)

        workspace = self._terraform.get_workspace(
            workspace_name=context.workspace,
            organization=context.organization,
        )
        self._advance(DeployStage.WORKSPACE_RESOLVED, workspace_id=workspace.id)

        run = self._terraform.create_run(
            workspace=workspace,
            message=context.message,
            auto_apply=context.auto_apply,
        )
        self._advance(DeployStage.RUN_CREATED, run_id=run.id)

        url = context.run_url(run.id)
        self._reporter.update_comment(comment_id=comment.id, body=run_comment(url))
        self._advance(DeployStage.COMMENT_UPDATED, run_url=url)

        return DeployResult(
            stage=self._advance(DeployStage.END),
            issue_number=issue.number,
            comment_id=comment.id,
            variable=variable,
            workspace=workspace,
            run=run,
            run_url=url,
        )
