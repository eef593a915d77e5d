"""Terraform Cloud API access."""

from tfc_deploy.terraform.client import (
    Run,
    TerraformCloudClient,
    TerraformCloudError,
    Variable,
    Workspace,
)

__all__ = ["Run", "TerraformCloudClient", "TerraformCloudError", "Variable", "Workspace"]
