"""Kubernetes infrastructure abstraction layer.

This module resolves and verifies the kube context a reconciliation runs
against, supporting multiple backends (kubectl subprocess, kr8s library).

Example:
    from src.infra.k8s import get_context_resolver

    resolver = get_context_resolver("kubectl")
    context = resolver.resolve(override="kind-dev", timeout=30)
"""

from .controller import ClusterContextResolver, CommandResult, StaticContextResolver
from .helpers import get_context_resolver
from .kubectl_controller import KubectlContextResolver
from .utils import run_sync

__all__ = [
    # Resolver classes
    "ClusterContextResolver",
    "KubectlContextResolver",
    "StaticContextResolver",
    # Data classes
    "CommandResult",
    # Utilities
    "get_context_resolver",
    "run_sync",
]
