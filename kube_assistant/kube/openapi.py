"""Kubernetes OpenAPI schema source used by the schema lookup tools."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from kube_assistant.errors import SchemaError, SchemaFetchError

OPENAPI_V2_PATH = "/openapi/v2"
DEFAULT_TIMEOUT = 60.0


class OpenAPISchemaSource:
    """
    Fetches the cluster's OpenAPI v2 document and searches its definitions.

    The document comes from ``kubectl get --raw /openapi/v2`` against the
    configured kubeconfig, or from ``openapi_url`` when one is set. Nothing is
    cached: every lookup fetches the document again.
    """

    def __init__(
        self,
        openapi_url: str = "",
        kubeconfig: str | Path | None = None,
        timeout_s: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.openapi_url = openapi_url
        self.kubeconfig = str(kubeconfig) if kubeconfig else ""
        self.timeout_s = timeout_s
        self._transport = transport

    async def fetch(self) -> dict[str, Any]:
        """Return the decoded OpenAPI document."""
        if self.openapi_url:
            logger.debug(f"Fetching schema from {self.openapi_url}")
            body = await self._fetch_url()
        else:
            logger.debug("Fetching schema from Kubernetes API server")
            body = await self._fetch_kubectl()

        try:
            schema = json.loads(body)
        except json.JSONDecodeError as exc:
            raise SchemaError(f"unable to decode OpenAPI schema: {exc}") from exc
        if not isinstance(schema, dict):
            raise SchemaError("unable to decode OpenAPI schema: expected a JSON object")
        return schema

    async def definitions(self) -> dict[str, Any]:
        schema = await self.fetch()
        definitions = schema.get("definitions")
        if not isinstance(definitions, dict):
            raise SchemaError("unable to assert schema definitions")
        return definitions

    async def find_resource_names(self, query: str) -> list[str]:
        """Definition keys containing ``query``, compared case-insensitively."""
        definitions = await self.definitions()
        logger.debug(f"fetching resource name {query}")
        needle = query.lower()
        return [name for name in definitions if needle in name.lower()]

    async def get_resource_schema(self, resource_type: str) -> dict[str, Any]:
        """The definition stored under the fully-qualified ``resource_type``."""
        definitions = await self.definitions()
        logger.debug(f"fetching resource schema {resource_type}")
        if resource_type not in definitions:
            raise SchemaError("unable to find resource schema")
        resource_schema = definitions[resource_type]
        if not isinstance(resource_schema, dict):
            raise SchemaError("unable to assert resource schema")
        return resource_schema

    async def _fetch_url(self) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                resp = await client.get(self.openapi_url)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise SchemaFetchError(f"unable to fetch OpenAPI schema from {self.openapi_url}: {exc}") from exc
        return resp.content

    async def _fetch_kubectl(self) -> bytes:
        args = ["get", "--raw", OPENAPI_V2_PATH]
        if self.kubeconfig:
            args.extend(["--kubeconfig", self.kubeconfig])

        try:
            proc = await asyncio.create_subprocess_exec(
                "kubectl",
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise SchemaFetchError("kubectl not found in PATH") from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            proc.kill()
            raise SchemaFetchError(f"kubectl timed out after {self.timeout_s:.0f}s")
        except asyncio.CancelledError:
            proc.kill()
            raise

        if proc.returncode != 0:
            err = stderr.decode("utf-8", errors="replace").strip()
            raise SchemaFetchError(f"kubectl get --raw {OPENAPI_V2_PATH} failed [exit_code: {proc.returncode}] {err}")
        return stdout
