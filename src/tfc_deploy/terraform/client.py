"""Terraform Cloud API client.

Wraps a `requests.Session` so HTTP calls stay out of the deploy flow and tests
can inject a fake session.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

JSON_API_CONTENT_TYPE = "application/vnd.api+json"


class TerraformCloudError(RuntimeError):
    """Raised when a Terraform Cloud request fails or returns an unusable body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class Variable:
    """A workspace variable, with its attributes kept exactly as returned."""

    id: str
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str | None:
        key = self.attributes.get("key")
        return key if isinstance(key, str) else None

    @property
    def value(self) -> Any:
        return self.attributes.get("value")


@dataclass(frozen=True, slots=True)
class Workspace:
    id: str
    name: str
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Run:
    id: str
    status: str
    attributes: dict[str, Any] = field(default_factory=dict)


class TerraformCloudClient:
    """Small wrapper around the Terraform Cloud v2 API for the calls a deploy needs."""

    def __init__(
        self,
        *,
        token: str,
        base_url: str = "https://app.terraform.io",
        session: requests.Session | None = None,
    ) -> None:
        if not token:
            raise ValueError("Terraform Cloud token is required")

        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Content-Type": JSON_API_CONTENT_TYPE,
                "User-Agent": "tfc-deploy-action",
            }
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def _api_url(self, path: str) -> str:
        path = path.lstrip("/")
        return f"{self._base_url}/api/v2/{path}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = self._api_url(path)
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                data=json.dumps(payload) if payload is not None else None,
                timeout=30,
            )
        except requests.RequestException as e:
            raise TerraformCloudError(f"Terraform Cloud request failed: {method} {url}: {e}") from e

        if not resp.ok:
            # Error bodies are JSON:API documents; surface the first detail when present.
            detail = _error_detail(resp)
            raise TerraformCloudError(
                f"Terraform Cloud returned HTTP {resp.status_code} for {method} {url}"
                + (f": {detail}" if detail else ""),
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise TerraformCloudError(
                f"Terraform Cloud returned a non-JSON body for {method} {url}",
                status_code=resp.status_code,
            ) from e

        if not isinstance(body, dict):
            raise TerraformCloudError(
                f"Unexpected Terraform Cloud response for {method} {url}",
                status_code=resp.status_code,
            )
        return body

    @staticmethod
    def _data_object(body: dict[str, Any], *, what: str) -> tuple[str, dict[str, Any]]:
        data = body.get("data")
        if not isinstance(data, dict):
            raise TerraformCloudError(f"Invalid {what} response: missing data")
        obj_id = data.get("id")
        if not isinstance(obj_id, str) or not obj_id:
            raise TerraformCloudError(f"Invalid {what} response: missing id")
        attributes = data.get("attributes")
        return obj_id, attributes if isinstance(attributes, dict) else {}

    def list_variables(self, *, workspace_name: str, organization: str) -> list[Variable]:
        """List the variables of one workspace.

        Only the first page is read.
        """

        body = self._request(
            "GET",
            "vars",
            params={
                "filter[organization][name]": organization,
                "filter[workspace][name]": workspace_name,
            },
        )
        data = body.get("data")
        if not isinstance(data, list):
            raise TerraformCloudError("Invalid variables response: missing data")

        variables: list[Variable] = []
        for item in data:
            if not isinstance(item, dict) or not isinstance(item.get("id"), str):
                continue
            attributes = item.get("attributes")
            variables.append(
                Variable(id=item["id"], attributes=attributes if isinstance(attributes, dict) else {})
            )

        logger.info(
            "Listed workspace variables",
            extra={
                "organization": organization,
                "workspace": workspace_name,
                "count": len(variables),
            },
        )
        return variables

    def update_variable(self, *, variable: Variable, new_value: str) -> Variable:
        """Overwrite `value` on a variable, sending every other attribute back unchanged."""

        payload = {
            "data": {
                "type": "vars",
                "id": variable.id,
                "attributes": {**variable.attributes, "value": new_value},
            }
        }
        body = self._request("PATCH", f"vars/{quote(variable.id, safe='')}", payload=payload)
        var_id, attributes = self._data_object(body, what="variable")

        logger.info("Updated variable", extra={"variable_id": var_id, "key": variable.key})
        return Variable(id=var_id, attributes=attributes)

    def get_workspace(self, *, workspace_name: str, organization: str) -> Workspace:
        path = (
            f"organizations/{quote(organization, safe='')}"
            f"/workspaces/{quote(workspace_name, safe='')}"
        )
        body = self._request("GET", path)
        ws_id, attributes = self._data_object(body, what="workspace")

        name = attributes.get("name")
        workspace = Workspace(
            id=ws_id,
            name=name if isinstance(name, str) else workspace_name,
            attributes=attributes,
        )
        logger.info(
            "Resolved workspace",
            extra={"workspace": workspace.name, "workspace_id": workspace.id},
        )
        return workspace

    def create_run(self, *, workspace: Workspace, message: str, auto_apply: bool = False) -> Run:
        """Queue a run in `workspace`.

        With `auto_apply` set, Terraform Cloud applies the plan without waiting
        for a manual confirmation.
        """

        payload = {
            "data": {
                "type": "runs",
                "relationships": {
                    "workspace": {
                        "data": {
                            "type": "workspaces",
                            "id": workspace.id,
                        },
                    },
                },
                "attributes": {
                    "auto-apply": auto_apply,
                    "message": message,
                },
            }
        }
        logger.debug("Run request body", extra={"body": payload})

        body = self._request("POST", "runs", payload=payload)
        run_id, attributes = self._data_object(body, what="run")

        status = attributes.get("status")
        run = Run(id=run_id, status=status if isinstance(status, str) else "", attributes=attributes)
        logger.info(
            "Created run",
            extra={"run_id": run.id, "status": run.status, "auto_apply": auto_apply},
        )
        return run

    def close(self) -> None:
        self._session.close()


def _error_detail(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return ""
    errors = body.get("errors") if isinstance(body, dict) else None
    if not isinstance(errors, list):
        return ""
    messages: list[str] = []
    for item in errors:
        if isinstance(item, dict):
            msg = item.get("detail") or item.get("title")
            if isinstance(msg, str):
                messages.append(msg)
    return "; ".join(messages)
