"""kube-assistant: generate and apply Kubernetes manifests from natural language."""

__version__ = "0.1.0"
