"""Provision Kubernetes and the OpenYurt edge control plane on Ubuntu hosts."""

__version__ = "0.2.0"
