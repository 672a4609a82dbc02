"""Cluster diagnostics collector: snapshot a Kubernetes namespace into a bundle."""

__version__ = "0.1.0"
