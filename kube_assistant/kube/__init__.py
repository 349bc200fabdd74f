"""Kubernetes collaborators: OpenAPI schema source, kubeconfig and manifest apply."""

from kube_assistant.kube.apply import ManifestApplier, parse_manifest
from kube_assistant.kube.kubeconfig import current_context_name, resolve_namespace
from kube_assistant.kube.openapi import OpenAPISchemaSource

__all__ = [
    "ManifestApplier",
    "OpenAPISchemaSource",
    "current_context_name",
    "parse_manifest",
    "resolve_namespace",
]
