from __future__ import annotations

from cachetools.func import lru_cache  # type: ignore

from src.infra.k8s.controller import ClusterContextResolver, StaticContextResolver


@lru_cache(maxsize=4)
def get_context_resolver(backend: str = "kubectl") -> ClusterContextResolver:
    """Get the ClusterContextResolver for a backend.

    Args:
        backend: "kubectl" (subprocess), "kr8s" (library) or "static"
            (no cluster access, used with the echo chart installer)

    Returns:
        An instance of ClusterContextResolver
    """
    if backend == "kr8s":
        from src.infra.k8s.kr8s_controller import Kr8sContextResolver

        return Kr8sContextResolver()
    if backend == "static":
        return StaticContextResolver()

    from src.infra.k8s.kubectl_controller import KubectlContextResolver

    return KubectlContextResolver()
