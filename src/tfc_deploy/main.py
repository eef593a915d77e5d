"""CLI entrypoint for the deploy action.

Inputs normally come from the GitHub Actions environment; command line flags
override them for local runs.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from pydantic import ValidationError

from tfc_deploy import __version__
from tfc_deploy.actions import mask_value, set_failed, set_warning, write_outputs
from tfc_deploy.config import DeploySettings
from tfc_deploy.deploy import Deployer, DeployResult
from tfc_deploy.github.reporter import IssueReporter
from tfc_deploy.logging import configure_logging
from tfc_deploy.terraform.client import TerraformCloudClient

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tfc-deploy",
        description=(
            "Open a deployment issue, set the workspace `tag` variable on Terraform Cloud "
            "and queue a run"
        ),
    )
    parser.add_argument("--version", action="version", version=f"tfc-deploy-action {__version__}")
    parser.add_argument(
        "--repo",
        "--repository",
        dest="repository",
        default=None,
        help="Repository for the tracking issue, in the form 'owner/repo' (GITHUB_REPOSITORY)",
    )
    parser.add_argument("--workspace", default=None, help="Terraform Cloud workspace name")
    parser.add_argument("--organization", default=None, help="Terraform Cloud organization")
    parser.add_argument("--tag", default=None, help="Version to write to the `tag` variable")
    parser.add_argument("--message", default=None, help="Message for the Terraform Cloud run")
    parser.add_argument(
        "--auto-apply",
        dest="auto_apply",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Apply the run without manual confirmation",
    )
    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    names = ("repository", "workspace", "organization", "tag", "message", "auto_apply")
    return {name: getattr(args, name) for name in names if getattr(args, name) is not None}


def _step_outputs(result: DeployResult) -> dict[str, str]:
    outputs = {
        "issue-number": str(result.issue_number),
        "deployed": "true" if result.deployed else "false",
    }
    if result.variable is not None:
        outputs["variable-id"] = result.variable.id
    if result.workspace is not None:
        outputs["workspace-id"] = result.workspace.id
    if result.run is not None and result.run_url is not None:
        outputs["run-id"] = result.run.id
        outputs["run-url"] = result.run_url
    return outputs


def _publish_outputs(output_file: str, result: DeployResult) -> None:
    # The deploy already happened; a broken output file must not report it as failed.
    try:
        write_outputs(output_file, _step_outputs(result))
    except OSError as e:
        logger.error(
            "Could not write step outputs", extra={"path": output_file, "error": str(e)}
        )
        set_warning(f"Deploy finished but step outputs were not written: {e}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = DeploySettings(**_overrides(args))
    except ValidationError as e:
        # Logging isn't configured yet. Only messages are reported; inputs hold tokens.
        details = "; ".join(str(err["msg"]) for err in e.errors())
        print(f"Configuration error (check the action inputs): {details}", file=sys.stderr)
        set_failed(f"Configuration error: {details}")
        return 2

    secrets = (settings.github_token, settings.tfc_token)
    for secret in secrets:
        mask_value(secret)
    configure_logging(settings.log_level, secrets=secrets)

    try:
        terraform = TerraformCloudClient(token=settings.tfc_token, base_url=settings.tfc_base_url)
        try:
            reporter = IssueReporter(
                token=settings.github_token,
                repository=settings.repository,
                base_url=settings.github_api_url,
            )
            try:
                deployer = Deployer(terraform=terraform, reporter=reporter)
                result = deployer.deploy(settings.to_context())
            finally:
                reporter.close()
        finally:
            terraform.close()
    except Exception as e:
        logger.exception("Deploy failed")
        set_failed(str(e) or type(e).__name__)
        return 1

    if settings.github_output:
        _publish_outputs(settings.github_output, result)

    if result.run_url:
        print(f"Queued Terraform Cloud run: {result.run_url}")
    else:
        print(f"No tag variable in {settings.workspace}; see issue #{result.issue_number}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
