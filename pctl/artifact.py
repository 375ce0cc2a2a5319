"""Writing the flux resources that deploy a profile's artifacts."""

from __future__ import annotations

import os
import posixpath
import shutil
from dataclasses import dataclass, field
from typing import Any

import yaml

from pctl.models import Artifact, ProfileInstallation

__all__ = ["ArtifactError", "ArtifactWrapper", "Writer", "validate_artifact"]

DEFAULT_VALUES_KEY = "default-values.yaml"
HELM_CHART_LOCATION = "helm-chart"
KUSTOMIZE_WRAPPER_OBJECT_NAME = "kustomize-flux.yaml"
DEFAULT_INTERVAL = "5m0s"

HELM_API_VERSION = "helm.toolkit.fluxcd.io/v2beta1"
KUSTOMIZE_API_VERSION = "kustomize.toolkit.fluxcd.io/v1beta1"
SOURCE_API_VERSION = "source.toolkit.fluxcd.io/v1beta1"

HELM_RELEASE_KIND = "HelmRelease"
HELM_REPOSITORY_KIND = "HelmRepository"
GIT_REPOSITORY_KIND = "GitRepository"
KUSTOMIZATION_KIND = "Kustomization"


class ArtifactError(Exception):
    """Artifacts could not be validated or written."""


def _both(first: str, second: str) -> ArtifactError:
    return ArtifactError(f"expected exactly one, got both: {first}, {second}")


def validate_artifact(artifact: Artifact) -> None:
    """Raise ArtifactError if the artifact sets more than one type."""
    if artifact.chart is not None:
        if artifact.profile is not None:
            raise _both("chart", "profile")
        if artifact.kustomize is not None:
            raise _both("chart", "kustomize")
        if artifact.chart.path and artifact.chart.url:
            raise _both("chart.path", "chart.url")
    if artifact.kustomize is not None and artifact.profile is not None:
        raise _both("kustomize", "profile")


@dataclass
class ArtifactWrapper:
    """An artifact together with where it came from."""

    artifact: Artifact = field(default_factory=Artifact)
    nested_profile_sub_directory_name: str = ""
    path_to_profile_clone: str = ""
    profile_name: str = ""

    @property
    def name(self) -> str:
        """The artifact's name."""
        return self.artifact.name


def _join(*parts: str) -> str:
    return os.path.normpath(os.path.join(*parts))


def _metadata(name: str, namespace: str) -> dict[str, str]:
    meta = {"name": name}
    if namespace:
        meta["namespace"] = namespace
    return meta


def _dump(obj: dict[str, Any], filename: str) -> None:
    with open(filename, "w", encoding="utf-8") as handle:
        yaml.safe_dump(obj, handle, default_flow_style=False, sort_keys=True)


@dataclass
class Writer:
    """Writes flux resources for artifacts under a root directory."""

    git_repository_name: str = ""
    git_repository_namespace: str = ""
    root_dir: str = ""

    def write(
        self, installation: ProfileInstallation, artifacts: list[ArtifactWrapper]
    ) -> None:
        """Write every artifact, then the installation itself."""
        for wrapper in artifacts:
            deps = [
                self._find_dependency(artifacts, wrapper, dep.name)
                for dep in wrapper.artifact.depends_on
            ]
            try:
                validate_artifact(wrapper.artifact)
            except ArtifactError as exc:
                raise ArtifactError(f"invalid artifact: {exc}") from exc

            if wrapper.artifact.chart is not None:
                self._write_chart_artifact(installation, wrapper, deps)
            elif wrapper.artifact.kustomize is not None:
                self._write_kustomize_artifact(installation, wrapper, deps)
            else:
                raise ArtifactError("no artifact type set")
        _dump(
            installation.to_dict(),
            os.path.join(self.root_dir, "profile-installation.yaml"),
        )

    @staticmethod
    def _find_dependency(
        artifacts: list[ArtifactWrapper], wrapper: ArtifactWrapper, name: str
    ) -> ArtifactWrapper:
        for candidate in artifacts:
            if candidate.name == name or candidate.nested_profile_sub_directory_name == name:
                return candidate
        raise ArtifactError(
            f"{wrapper.name}'s depending artifact {name} not found in the list of artifacts"
        )

    def _artifact_dir(self, wrapper: ArtifactWrapper) -> str:
        return _join(
            self.root_dir,
            "artifacts",
            wrapper.nested_profile_sub_directory_name,
            wrapper.name,
        )

    def _write_kustomize_artifact(
        self,
        installation: ProfileInstallation,
        wrapper: ArtifactWrapper,
        deps: list[ArtifactWrapper],
    ) -> None:
        artifact_dir = self._artifact_dir(wrapper)
        sub_dir = wrapper.artifact.kustomize.path
        target = _join(artifact_dir, sub_dir)
        self._copy_artifacts(wrapper, sub_dir, target)
        self._write_kustomize_resource([KUSTOMIZE_WRAPPER_OBJECT_NAME], artifact_dir)
        _dump(
            self._make_kustomization(wrapper, target, installation, deps),
            os.path.join(artifact_dir, KUSTOMIZE_WRAPPER_OBJECT_NAME),
        )

    def _write_chart_artifact(
        self,
        installation: ProfileInstallation,
        wrapper: ArtifactWrapper,
        deps: list[ArtifactWrapper],
    ) -> None:
        chart = wrapper.artifact.chart
        artifact_dir = self._artifact_dir(wrapper)
        helm_chart_dir = _join(artifact_dir, HELM_CHART_LOCATION)
        try:
            os.makedirs(helm_chart_dir, exist_ok=True)
        except OSError as exc:
            raise ArtifactError(f"failed to create directory {exc}") from exc

        helm_release, cfg_map = self._make_helm_release_objects(
            wrapper.artifact, installation
        )
        objects: list[dict[str, Any]] = []
        if cfg_map is not None:
            objects.append(cfg_map)
        objects.append(helm_release)

        if chart.path:
            if not self.git_repository_namespace or not self.git_repository_name:
                raise ArtifactError(
                    "in case of local resources, the flux gitrepository object's "
                    "details must be provided"
                )
            target = _join(helm_chart_dir, chart.path)
            helm_release["spec"]["chart"]["spec"]["chart"] = target
            self._copy_artifacts(wrapper, chart.path, target)
            self._write_kustomize_resource([f"{HELM_RELEASE_KIND}.yaml"], helm_chart_dir)
        else:
            objects.append(
                self._make_helm_repository(chart.url, wrapper.name, installation)
            )

        for obj in objects:
            _dump(obj, os.path.join(helm_chart_dir, f"{obj['kind']}.yaml"))

        self._write_kustomize_resource([KUSTOMIZE_WRAPPER_OBJECT_NAME], artifact_dir)
        wrapper_obj = self._make_kustomization(wrapper, helm_chart_dir, installation, deps)
        wrapper_obj["spec"]["healthChecks"] = [
            {
                "apiVersion": HELM_API_VERSION,
                "kind": HELM_RELEASE_KIND,
                **_metadata(
                    self._artifact_name(installation.name, wrapper.name),
                    installation.namespace,
                ),
            }
        ]
        _dump(wrapper_obj, os.path.join(artifact_dir, KUSTOMIZE_WRAPPER_OBJECT_NAME))

    @staticmethod
    def _write_kustomize_resource(resources: list[str], directory: str) -> None:
        filename = os.path.join(directory, "kustomization.yaml")
        try:
            _dump({"resources": list(resources)}, filename)
        except OSError as exc:
            raise ArtifactError(f"failed to write file {filename}: {exc}") from exc

    @staticmethod
    def _copy_artifacts(wrapper: ArtifactWrapper, sub_dir: str, dest_dir: str) -> None:
        src_dir = _join(wrapper.path_to_profile_clone, sub_dir)
        try:
            shutil.copytree(src_dir, dest_dir, dirs_exist_ok=True)
        except OSError as exc:
            raise ArtifactError(f"failed to copy files: {exc}") from exc

    def _make_helm_release_objects(
        self, artifact: Artifact, installation: ProfileInstallation
    ) -> tuple[dict[str, Any], dict[str, Any] | None]:
        chart = artifact.chart
        if chart.path:
            source_path = installation.source.path if installation.source else ""
            chart_spec = self._git_chart_spec(posixpath.join(source_path, chart.path))
        else:
            chart_spec = self._helm_chart_spec(chart.name, chart.version, artifact.name, installation)

        cfg_map = None
        values: list[dict[str, str]] = []
        if chart.default_values:
            cfg_map = self._default_values_config_map(
                artifact.name, chart.default_values, installation
            )
            # the default values always need to come first
            values.append(
                {
                    "kind": "ConfigMap",
                    "name": cfg_map["metadata"]["name"],
                    "valuesKey": DEFAULT_VALUES_KEY,
                }
            )
        if installation.config_map:
            values.append(
                {
                    "kind": "ConfigMap",
                    "name": installation.config_map,
                    "valuesKey": artifact.name.split("/")[-1],
                }
            )

        spec: dict[str, Any] = {
            "interval": DEFAULT_INTERVAL,
            "releaseName": artifact.name,
            "chart": {"spec": chart_spec},
        }
        if values:
            spec["valuesFrom"] = values
        release = {
            "apiVersion": HELM_API_VERSION,
            "kind": HELM_RELEASE_KIND,
            "metadata": _metadata(
                self._artifact_name(installation.name, artifact.name),
                installation.namespace,
            ),
            "spec": spec,
        }
        return release, cfg_map

    def _make_helm_repository(
        self, url: str, artifact_name: str, installation: ProfileInstallation
    ) -> dict[str, Any]:
        return {
            "apiVersion": SOURCE_API_VERSION,
            "kind": HELM_REPOSITORY_KIND,
            "metadata": _metadata(
                self._artifact_name(installation.name, artifact_name),
                installation.namespace,
            ),
            "spec": {"url": url},
        }

    def _git_chart_spec(self, path: str) -> dict[str, Any]:
        return {
            "chart": path,
            "sourceRef": {
                "kind": GIT_REPOSITORY_KIND,
                **_metadata(self.git_repository_name, self.git_repository_namespace),
            },
        }

    def _helm_chart_spec(
        self, chart: str, version: str, artifact_name: str, installation: ProfileInstallation
    ) -> dict[str, Any]:
        spec: dict[str, Any] = {
            "chart": chart,
            "sourceRef": {
                "kind": HELM_REPOSITORY_KIND,
                **_metadata(
                    self._artifact_name(installation.name, artifact_name),
                    installation.namespace,
                ),
            },
        }
        if version:
            spec["version"] = version
        return spec

    def _default_values_config_map(
        self, name: str, data: str, installation: ProfileInstallation
    ) -> dict[str, Any]:
        if "/" in name:
            name = os.path.basename(name)
        return {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": _metadata(
                "-".join([installation.name, name, "defaultvalues"]),
                installation.namespace,
            ),
            "data": {DEFAULT_VALUES_KEY: data},
        }

    def _make_kustomization(
        self,
        wrapper: ArtifactWrapper,
        repo_path: str,
        installation: ProfileInstallation,
        dependencies: list[ArtifactWrapper],
    ) -> dict[str, Any]:
        spec: dict[str, Any] = {
            "path": repo_path,
            "interval": DEFAULT_INTERVAL,
            "prune": True,
            "sourceRef": {
                "kind": GIT_REPOSITORY_KIND,
                **_metadata(self.git_repository_name, self.git_repository_namespace),
            },
        }
        if installation.namespace:
            spec["targetNamespace"] = installation.namespace
        if dependencies:
            spec["dependsOn"] = [
                _metadata(
                    self._artifact_name(installation.name, dep.name),
                    installation.namespace,
                )
                for dep in dependencies
            ]
        return {
            "apiVersion": KUSTOMIZE_API_VERSION,
            "kind": KUSTOMIZATION_KIND,
            "metadata": _metadata(
                self._artifact_name(installation.name, wrapper.name),
                installation.namespace,
            ),
            "spec": spec,
        }

    @staticmethod
    def _artifact_name(installation_name: str, artifact_name: str) -> str:
        # nested artifacts carry a / in their name
        if "/" in artifact_name:
            artifact_name = os.path.basename(artifact_name)
        return f"{installation_name}-{artifact_name}"