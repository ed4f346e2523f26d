"""Supported components and the fixed dependency table.

Dependencies are expressed through roles rather than component names, so
that any provider of a role satisfies it (linkerd satisfies "mesh" the same
way istio does).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ComponentSpec:
    """Static description of a supported component.

    Attributes:
        name: Component name, also used as the Helm release name
        chart: Chart reference passed to Helm (``repo/chart``)
        version: Default chart version installed when none is declared
        namespace: Namespace the release is installed into
        role: Role this component provides to others
        requires: Roles that must be present before this component installs
        after: Roles this component is ordered after when both are planned
    """

    name: str
    chart: str
    version: str
    namespace: str
    role: str
    requires: frozenset[str] = field(default_factory=frozenset)
    after: frozenset[str] = field(default_factory=frozenset)

    @property
    def chart_name(self) -> str:
        """Chart name without the repository prefix."""
        return self.chart.rsplit("/", 1)[-1]

    def chart_version(self, version: str) -> str:
        """Chart identifier in Helm's ``<chart>-<version>`` form."""
        return f"{self.chart_name}-{version}"


CATALOG: dict[str, ComponentSpec] = {
    spec.name: spec
    for spec in (
        ComponentSpec(
            name="cert-manager",
            chart="cert-manager/cert-manager",
            version="v1.14.4",
            namespace="cert-manager",
            role="certificates",
        ),
        ComponentSpec(
            name="istio",
            chart="istio/istio",
            version="1.20.3",
            namespace="istio-system",
            role="mesh",
            requires=frozenset({"certificates"}),
        ),
        ComponentSpec(
            name="linkerd",
            chart="linkerd/linkerd-control-plane",
            version="1.16.11",
            namespace="linkerd",
            role="mesh",
            requires=frozenset({"certificates"}),
        ),
        ComponentSpec(
            name="prometheus",
            chart="prometheus-community/prometheus",
            version="25.8.0",
            namespace="monitoring",
            role="metrics",
            requires=frozenset({"mesh"}),
        ),
        ComponentSpec(
            name="grafana",
            chart="grafana/grafana",
            version="7.3.0",
            namespace="monitoring",
            role="dashboards",
            requires=frozenset({"metrics"}),
        ),
        ComponentSpec(
            name="nginx-ingress",
            chart="ingress-nginx/ingress-nginx",
            version="4.10.0",
            namespace="ingress-nginx",
            role="ingress",
            requires=frozenset({"mesh"}),
            after=frozenset({"metrics", "dashboards"}),
        ),
        ComponentSpec(
            name="vault",
            chart="hashicorp/vault",
            version="0.27.0",
            namespace="vault",
            role="secrets",
            requires=frozenset({"certificates"}),
        ),
    )
}

SUPPORTED_COMPONENTS: tuple[str, ...] = (
    "istio",
    "prometheus",
    "grafana",
    "cert-manager",
    "nginx-ingress",
    "vault",
    "linkerd",
)

MESH_COMPONENTS: tuple[str, ...] = ("istio", "linkerd")

DEFAULT_MESH = "istio"


def default_components(mesh: str = DEFAULT_MESH) -> list[str]:
    """Return the default component set for a mesh choice."""
    return ["cert-manager", mesh, "prometheus", "grafana", "nginx-ingress"]


def unknown_component_message(name: str) -> str:
    """Error text for a component outside the supported set."""
    return (
        f"Unknown component: {name}. "
        f"Valid components are: {', '.join(SUPPORTED_COMPONENTS)}"
    )


class DependencyGraph:
    """Role-based dependency table over a set of components."""

    def __init__(self, specs: Mapping[str, ComponentSpec]) -> None:
        self._specs = dict(specs)

    @classmethod
    def from_catalog(cls) -> DependencyGraph:
        return cls(CATALOG)

    def __contains__(self, component: object) -> bool:
        return component in self._specs

    def spec(self, component: str) -> ComponentSpec | None:
        return self._specs.get(component)

    def role(self, component: str) -> str | None:
        spec = self._specs.get(component)
        return spec.role if spec else None

    def requires(self, component: str) -> frozenset[str]:
        spec = self._specs.get(component)
        return spec.requires if spec else frozenset()

    def ordering_roles(self, component: str) -> frozenset[str]:
        """Roles that must be ordered before the component (hard and soft)."""
        spec = self._specs.get(component)
        return spec.requires | spec.after if spec else frozenset()

    def providers(self, role: str, among: Iterable[str]) -> set[str]:
        """Components from ``among`` that provide ``role``."""
        return {name for name in among if self.role(name) == role}

    def prerequisites(self, component: str, among: Iterable[str]) -> set[str]:
        """Components from ``among`` that must be ordered before ``component``."""
        roles = self.ordering_roles(component)
        return {
            name
            for name in among
            if name != component and self.role(name) in roles
        }

    def catalog_index(self, component: str) -> int:
        names = list(self._specs)
        return names.index(component) if component in self._specs else len(names)
