"""Desired configuration model.

Parses ``meshstack.yaml`` into an immutable DesiredConfiguration. The file
format accepts plain component names or mappings with per-component
overrides; see ``load`` for the validation rules.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from loguru import logger
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .catalog import (
    CATALOG,
    DEFAULT_MESH,
    MESH_COMPONENTS,
    SUPPORTED_COMPONENTS,
    default_components,
    unknown_component_message,
)
from .errors import SchemaError


class Profile(str, Enum):
    """Resource profile applied to a component."""

    DEV = "dev"
    PROD = "prod"
    CUSTOM = "custom"


class DesiredComponent(BaseModel):
    """A single declared component."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    name: str
    version: str
    profile: Profile = Profile.DEV
    values: dict[str, Any] | None = None
    values_file: Path | None = Field(default=None, alias="valuesFile")

    @field_validator("name")
    @classmethod
    def _supported_name(cls, name: str) -> str:
        if name not in SUPPORTED_COMPONENTS:
            raise ValueError(unknown_component_message(name))
        return name

    @field_validator("version", mode="before")
    @classmethod
    def _quoted_version(cls, version: Any) -> Any:
        # YAML turns an unquoted 1.20 into the float 1.2
        if isinstance(version, (int, float)) and not isinstance(version, bool):
            raise ValueError(
                f"version {version!r} must be a quoted string (e.g. \"1.20\")"
            )
        return version

    @model_validator(mode="after")
    def _custom_needs_overrides(self) -> DesiredComponent:
        if self.profile is Profile.CUSTOM and not self.has_overrides:
            raise ValueError(
                "profile 'custom' requires 'values' or 'valuesFile' overrides"
            )
        return self

    @property
    def has_overrides(self) -> bool:
        return bool(self.values) or self.values_file is not None


class DesiredConfiguration(BaseModel):
    """Validated, ordered set of declared components."""

    model_config = ConfigDict(frozen=True)

    components: tuple[DesiredComponent, ...] = ()
    profile: Profile = Profile.DEV
    mesh: str = DEFAULT_MESH

    @model_validator(mode="after")
    def _unique_names(self) -> DesiredConfiguration:
        seen: set[str] = set()
        for component in self.components:
            if component.name in seen:
                raise ValueError(f"component '{component.name}' is declared twice")
            seen.add(component.name)
        return self

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.components]

    def get(self, name: str) -> DesiredComponent | None:
        for component in self.components:
            if component.name == name:
                return component
        return None

    def __contains__(self, name: object) -> bool:
        return self.get(name) is not None  # type: ignore[arg-type]

    # -------------------------------------------------------------------------
    # Derived configurations
    # -------------------------------------------------------------------------

    def with_component(
        self, name: str, profile: Profile | None = None
    ) -> DesiredConfiguration:
        """Return a configuration where ``name`` is declared.

        An already-declared component keeps its settings unless a profile
        override is given.
        """
        if name not in SUPPORTED_COMPONENTS:
            raise SchemaError(
                unknown_component_message(name), field="component", component=name
            )
        existing = self.get(name)
        if existing is None:
            added = _build_component(
                {"name": name, "profile": (profile or self.profile).value}
            )
            return self.model_copy(update={"components": (*self.components, added)})
        if profile is None or profile is existing.profile:
            return self
        return self.with_profile(profile, only=[name])

    def with_profile(
        self, profile: Profile, only: list[str] | None = None
    ) -> DesiredConfiguration:
        """Return a configuration with the profile overridden."""
        updated = []
        for component in self.components:
            if only is None or component.name in only:
                data = component.model_dump(by_alias=True)
                data["profile"] = profile.value
                component = _build_component(data)
            updated.append(component)
        return self.model_copy(update={"components": tuple(updated)})

    def without(self, names: list[str] | None = None) -> DesiredConfiguration:
        """Return a configuration with ``names`` (or everything) undeclared."""
        if names is None:
            return self.model_copy(update={"components": ()})
        kept = tuple(c for c in self.components if c.name not in names)
        return self.model_copy(update={"components": kept})

    @classmethod
    def default(cls, mesh: str = DEFAULT_MESH) -> DesiredConfiguration:
        return _build_configuration({"mesh": mesh})


def _build_component(data: dict[str, Any]) -> DesiredComponent:
    name = data.get("name")
    if "version" not in data or data["version"] is None:
        spec = CATALOG.get(name) if isinstance(name, str) else None
        data = {**data, "version": spec.version if spec else ""}
    try:
        return DesiredComponent.model_validate(data)
    except ValidationError as e:
        raise _schema_error(e, component=name if isinstance(name, str) else None) from e


def _build_configuration(raw: dict[str, Any]) -> DesiredConfiguration:
    selected = raw.get("mesh") or raw.get("service_mesh")
    declared = raw.get("components")
    mesh = selected or _listed_mesh(declared) or DEFAULT_MESH
    if mesh not in MESH_COMPONENTS:
        raise SchemaError(
            f"Unknown mesh: {mesh}. Valid meshes are: {', '.join(MESH_COMPONENTS)}",
            field="mesh",
        )

    profile_value = raw.get("profile") or Profile.DEV.value
    try:
        profile = Profile(profile_value)
    except ValueError:
        raise SchemaError(
            f"Unknown profile: {profile_value}. Valid profiles are: dev, prod, custom",
            field="profile",
        ) from None

    if declared is None:
        declared = default_components(mesh)
    if not isinstance(declared, list):
        raise SchemaError("'components' must be a list", field="components")

    components: list[DesiredComponent] = []
    for index, entry in enumerate(declared):
        if isinstance(entry, str):
            entry = {"name": entry}
        if not isinstance(entry, dict):
            raise SchemaError(
                f"components[{index}] must be a name or a mapping",
                field=f"components[{index}]",
            )
        entry = {"profile": profile.value, **entry}
        components.append(_build_component(entry))

    names = [c.name for c in components]
    for other in MESH_COMPONENTS:
        if other != mesh and other in names:
            raise SchemaError(
                f"component '{other}' conflicts with mesh '{mesh}'",
                field="mesh",
                component=other,
            )
    if selected and mesh not in names:
        components.append(_build_component({"name": mesh, "profile": profile.value}))

    try:
        return DesiredConfiguration(
            components=tuple(components), profile=profile, mesh=mesh
        )
    except ValidationError as e:
        raise _schema_error(e) from e


def _listed_mesh(declared: Any) -> str | None:
    """Mesh named in the component list, for files without a top-level mesh."""
    if not isinstance(declared, list):
        return None
    for entry in declared:
        name = entry.get("name") if isinstance(entry, dict) else entry
        if name in MESH_COMPONENTS:
            return name
    return None


def _schema_error(error: ValidationError, component: str | None = None) -> SchemaError:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    message = str(first["msg"]).removeprefix("Value error, ")
    prefix = f"component '{component}'" if component else "configuration"
    if location:
        prefix = f"{prefix} field '{location}'"
    return SchemaError(
        f"Invalid {prefix}: {message}",
        details=str(error),
        field=location or None,
        component=component,
    )


def load(path: Path) -> DesiredConfiguration:
    """Load and validate the desired configuration file.

    Args:
        path: Path to ``meshstack.yaml``

    Returns:
        The validated DesiredConfiguration

    Raises:
        SchemaError: If the file is missing, is not valid YAML, or fails
            validation. The error names the offending field/component.
    """
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        raise SchemaError(f"{path} not found.", field="path") from None
    except yaml.YAMLError as e:
        raise SchemaError(f"{path} is not valid YAML", details=str(e)) from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise SchemaError(f"{path} must contain a mapping at the top level")

    configuration = _build_configuration(raw)
    logger.debug(
        f"Loaded {len(configuration.names)} declared components from {path}: "
        f"{configuration.names}"
    )
    return configuration
