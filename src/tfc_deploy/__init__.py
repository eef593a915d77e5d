"""Terraform Cloud deploy action.

Opens a deployment tracking issue, writes the release tag to the workspace
`tag` variable, queues a Terraform Cloud run and links it from the issue.
"""

__version__ = "0.1.0"

from tfc_deploy.deploy import DeployContext, Deployer, DeployResult

__all__ = ["__version__", "DeployContext", "DeployResult", "Deployer"]
