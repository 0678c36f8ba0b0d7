"""Run security auditors over Kubernetes resources from manifests or clusters."""

__version__ = "0.1.0"