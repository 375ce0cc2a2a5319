"""Profile installation and profile definition resources."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any

__all__ = [
    "API_VERSION",
    "Source",
    "Catalog",
    "Chart",
    "Kustomize",
    "ProfileRef",
    "DependsOn",
    "Artifact",
    "ProfileInstallation",
    "ProfileDefinition",
]

API_VERSION = "weave.works/v1alpha1"
INSTALLATION_KIND = "ProfileInstallation"
DEFINITION_KIND = "ProfileDefinition"


@dataclass
class Source:
    """Where a profile lives in a git repository."""

    url: str = ""
    branch: str = ""
    tag: str = ""
    path: str = ""


@dataclass
class Catalog:
    """The catalog entry a profile was installed from."""

    catalog: str = ""
    profile: str = ""
    version: str = ""


@dataclass
class Chart:
    """A helm chart, either local to the profile repository or remote."""

    url: str = ""
    name: str = ""
    version: str = ""
    path: str = ""
    default_values: str = field(default="", metadata={"key": "defaultValues"})


@dataclass
class Kustomize:
    """A directory of plain manifests."""

    path: str = ""


@dataclass
class ProfileRef:
    """A reference to a nested profile."""

    source: Source | None = field(default=None, metadata={"type": Source})


@dataclass
class DependsOn:
    """The name of an artifact another artifact depends on."""

    name: str = ""


@dataclass
class Artifact:
    """One deployable part of a profile."""

    name: str = ""
    chart: Chart | None = field(default=None, metadata={"type": Chart})
    kustomize: Kustomize | None = field(default=None, metadata={"type": Kustomize})
    profile: ProfileRef | None = field(default=None, metadata={"type": ProfileRef})
    depends_on: list[DependsOn] = field(
        default_factory=list,
        metadata={"key": "dependsOn", "type": DependsOn, "many": True},
    )


def _key(f) -> str:
    return f.metadata.get("key", f.name)


def _encode(obj: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        if is_dataclass(value):
            value = _encode(value)
        elif isinstance(value, list):
            if not value:
                continue
            value = [_encode(item) if is_dataclass(item) else item for item in value]
        elif value == "":
            continue
        out[_key(f)] = value
    return out


def _mapping(data: Any, where: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{where}: expected a mapping, got {type(data).__name__}")
    return data


def _string(data: dict[str, Any], key: str, where: str) -> str:
    raw = data.get(key)
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise ValueError(f"{where}.{key}: expected a string, got {type(raw).__name__}")
    return raw


def _decode(cls: type, data: Any, where: str) -> Any:
    mapping = _mapping(data, where)
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        key = _key(f)
        raw = mapping.get(key)
        if raw is None:
            continue
        nested = f.metadata.get("type")
        path = f"{where}.{key}"
        if f.metadata.get("many"):
            if not isinstance(raw, list):
                raise ValueError(f"{path}: expected a list, got {type(raw).__name__}")
            kwargs[f.name] = [
                _decode(nested, item, f"{path}[{pos}]") for pos, item in enumerate(raw)
            ]
        elif nested is not None:
            kwargs[f.name] = _decode(nested, raw, path)
        else:
            kwargs[f.name] = _string(mapping, key, where)
    return cls(**kwargs)


def _optional(cls: type, data: Any, where: str) -> Any:
    return None if data is None else _decode(cls, data, where)


def _metadata(name: str, namespace: str) -> dict[str, str]:
    meta = {"name": name, "namespace": namespace}
    return {key: value for key, value in meta.items() if value}


@dataclass
class ProfileInstallation:
    """A request to install a profile into a namespace."""

    name: str = ""
    namespace: str = ""
    source: Source | None = None
    catalog: Catalog | None = None
    config_map: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the resource in its manifest layout."""
        spec: dict[str, Any] = {}
        if self.source is not None:
            spec["source"] = _encode(self.source)
        if self.catalog is not None:
            spec["catalog"] = _encode(self.catalog)
        if self.config_map:
            spec["configMap"] = self.config_map
        return {
            "apiVersion": API_VERSION,
            "kind": INSTALLATION_KIND,
            "metadata": _metadata(self.name, self.namespace),
            "spec": spec,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ProfileInstallation:
        """Build an installation from a manifest mapping."""
        mapping = _mapping(data, INSTALLATION_KIND)
        metadata = _mapping(mapping.get("metadata") or {}, "metadata")
        spec = _mapping(mapping.get("spec") or {}, "spec")
        return cls(
            name=_string(metadata, "name", "metadata"),
            namespace=_string(metadata, "namespace", "metadata"),
            source=_optional(Source, spec.get("source"), "spec.source"),
            catalog=_optional(Catalog, spec.get("catalog"), "spec.catalog"),
            config_map=_string(spec, "configMap", "spec"),
        )


@dataclass
class ProfileDefinition:
    """The contents of a profile's profile.yaml."""

    name: str = ""
    description: str = ""
    artifacts: list[Artifact] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the definition in its manifest layout."""
        spec: dict[str, Any] = {}
        if self.description:
            spec["description"] = self.description
        if self.artifacts:
            spec["artifacts"] = [_encode(artifact) for artifact in self.artifacts]
        return {
            "apiVersion": API_VERSION,
            "kind": DEFINITION_KIND,
            "metadata": _metadata(self.name, ""),
            "spec": spec,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ProfileDefinition:
        """Build a definition from a manifest mapping."""
        mapping = _mapping(data, DEFINITION_KIND)
        metadata = _mapping(mapping.get("metadata") or {}, "metadata")
        spec = _mapping(mapping.get("spec") or {}, "spec")
        raw_artifacts = spec.get("artifacts") or []
        if not isinstance(raw_artifacts, list):
            raise ValueError(
                f"spec.artifacts: expected a list, got {type(raw_artifacts).__name__}"
            )
        return cls(
            name=_string(metadata, "name", "metadata"),
            description=_string(spec, "description", "spec"),
            artifacts=[
                _decode(Artifact, item, f"spec.artifacts[{pos}]")
                for pos, item in enumerate(raw_artifacts)
            ],
        )