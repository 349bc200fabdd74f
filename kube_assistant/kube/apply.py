"""Server-side apply of generated manifests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import yaml
from kubernetes import config as kube_config
from kubernetes import dynamic
from kubernetes.client.exceptions import ApiException
from kubernetes.config import ConfigException
from kubernetes.dynamic.exceptions import ResourceNotFoundError
from loguru import logger
from urllib3.exceptions import HTTPError as TransportError

from kube_assistant.errors import ManifestApplyError
from kube_assistant.kube.kubeconfig import resolve_namespace

FIELD_MANAGER = "kube-assistant"


def parse_manifest(manifest: str) -> list[dict[str, Any]]:
    """Decode every YAML (or JSON) document of a manifest, skipping empty ones."""
    try:
        documents = list(yaml.safe_load_all(manifest))
    except yaml.YAMLError as e:
        raise ManifestApplyError(f"manifest is not valid YAML: {e}") from e

    objects: list[dict[str, Any]] = []
    for index, doc in enumerate(documents):
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise ManifestApplyError(f"document {index} is not a Kubernetes object")
        if not doc.get("apiVersion") or not doc.get("kind"):
            raise ManifestApplyError(f"document {index} is missing apiVersion or kind")
        if not (doc.get("metadata") or {}).get("name"):
            raise ManifestApplyError(f"document {index} ({doc['kind']}) is missing metadata.name")
        objects.append(doc)
    return objects


class ManifestApplier:
    """Apply every object of a manifest to the cluster of the given kubeconfig."""

    def __init__(
        self,
        kubeconfig: Path,
        namespace: str = "",
        client: dynamic.DynamicClient | None = None,
    ) -> None:
        self.kubeconfig = kubeconfig
        self.namespace = namespace
        self._client = client

    async def apply(self, manifest: str) -> list[str]:
        """Apply the manifest off the event loop; returns "kind/name" per object."""
        return await asyncio.to_thread(self.apply_sync, manifest)

    def apply_sync(self, manifest: str) -> list[str]:
        objects = parse_manifest(manifest)
        if not objects:
            raise ManifestApplyError("manifest does not contain any Kubernetes object")

        client = self._get_client()
        namespace = resolve_namespace(self.kubeconfig, self.namespace)

        applied: list[str] = []
        for obj in objects:
            applied.append(self._apply_object(client, obj, namespace))
        return applied

    def _get_client(self) -> dynamic.DynamicClient:
        if self._client is None:
            try:
                api_client = kube_config.new_client_from_config(config_file=str(self.kubeconfig))
            except (ConfigException, OSError) as e:
                raise ManifestApplyError(f"unable to load kubeconfig {self.kubeconfig}: {e}") from e
            try:
                self._client = dynamic.DynamicClient(api_client)
            except (ApiException, TransportError) as e:
                raise ManifestApplyError(f"unable to discover cluster resources: {e}") from e
        return self._client

    def _apply_object(self, client: dynamic.DynamicClient, obj: dict[str, Any], namespace: str) -> str:
        api_version, kind = obj["apiVersion"], obj["kind"]
        name = obj["metadata"]["name"]

        try:
            resource = client.resources.get(api_version=api_version, kind=kind)
        except ResourceNotFoundError as e:
            raise ManifestApplyError(f"no resource mapping for {api_version} {kind}") from e
        except (ApiException, TransportError) as e:
            raise ManifestApplyError(f"unable to resolve {api_version} {kind}: {e}") from e

        target_namespace = None
        if resource.namespaced:
            target_namespace = obj["metadata"].get("namespace") or namespace
            obj["metadata"]["namespace"] = target_namespace

        try:
            client.server_side_apply(
                resource,
                body=obj,
                name=name,
                namespace=target_namespace,
                field_manager=FIELD_MANAGER,
            )
        except TransportError as e:
            raise ManifestApplyError(f"failed to apply {kind}/{name}: {e}") from e
        except ApiException as e:
            raise ManifestApplyError(f"failed to apply {kind}/{name}: {e.status} {e.reason}") from e

        logger.info(f"Applied {kind}/{name}" + (f" in namespace {target_namespace}" if target_namespace else ""))
        return f"{kind.lower()}/{name}"
