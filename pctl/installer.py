"""Installing a profile by cloning it and writing its artifacts."""

from __future__ import annotations

import copy
import os
import tempfile
import uuid
from dataclasses import dataclass
from typing import Any, Protocol

import yaml

from pctl.artifact import ArtifactWrapper, Writer
from pctl.git import GitError
from pctl.models import ProfileDefinition, ProfileInstallation, Source

__all__ = ["InstallError", "InstallerConfig", "Installer"]

PROFILE_FILE = "profile.yaml"


class InstallError(Exception):
    """A profile could not be installed."""


class _Cloner(Protocol):
    def clone(self, repo: str, branch: str, location: str) -> None: ...


class _ArtifactWriter(Protocol):
    def write(
        self, installation: ProfileInstallation, artifacts: list[ArtifactWrapper]
    ) -> None: ...


@dataclass
class InstallerConfig:
    """Configurable options of the installer."""

    git_client: Any = None
    root_dir: str = ""
    git_repo_namespace: str = ""
    git_repo_name: str = ""


def _clone_cache_key(url: str, branch: str) -> str:
    return f"{url}:{branch}"


def _join(*parts: str) -> str:
    return os.path.normpath(os.path.join(*parts))


class Installer:
    """Collects the artifacts of a profile, nested profiles included, and writes them."""

    def __init__(
        self,
        config: InstallerConfig,
        artifact_writer: _ArtifactWriter | None = None,
    ) -> None:
        self.config = config
        self.cloned_repos: dict[str, str] = {}
        self.artifact_writer = artifact_writer or Writer(
            git_repository_name=config.git_repo_name,
            git_repository_namespace=config.git_repo_namespace,
            root_dir=config.root_dir,
        )

    def install(self, installation: ProfileInstallation) -> None:
        """Install the profile described by ``installation``."""
        artifacts = self._collect_artifacts(installation, "")
        self.artifact_writer.write(installation, artifacts)

    def _collect_artifacts(
        self, installation: ProfileInstallation, nested_dir: str
    ) -> list[ArtifactWrapper]:
        source = installation.source
        if source is None:
            raise InstallError(f"installation {installation.name!r} has no source")
        branch_or_tag = source.tag or source.branch
        definition = self._clone_and_read_definition(
            source.url, branch_or_tag, source.path
        )
        clone_dir = self.cloned_repos[_clone_cache_key(source.url, branch_or_tag)]

        artifacts: list[ArtifactWrapper] = []
        for artifact in definition.artifacts:
            if artifact.profile is None:
                artifacts.append(
                    ArtifactWrapper(
                        artifact=artifact,
                        path_to_profile_clone=_join(clone_dir, source.path),
                        profile_name=definition.name,
                        nested_profile_sub_directory_name=nested_dir,
                    )
                )
                continue

            ref = artifact.profile.source
            if ref is None:
                raise InstallError(
                    f"nested profile artifact {artifact.name!r} has no source"
                )
            nested = copy.deepcopy(installation)
            path = ref.path
            if ref.tag:
                parts = ref.tag.split("/")
                path = parts[0] if len(parts) > 1 else "."
            nested.source = Source(
                url=ref.url, branch=ref.branch, tag=ref.tag, path=path
            )
            nested.name = artifact.name
            artifacts.extend(
                self._collect_artifacts(nested, os.path.join(nested_dir, nested.name))
            )
        return artifacts

    def _clone_and_read_definition(
        self, repo_url: str, branch: str, path: str
    ) -> ProfileDefinition:
        key = _clone_cache_key(repo_url, branch)
        clone_dir = self.cloned_repos.get(key)
        if clone_dir is None:
            # a random suffix keeps nested profiles out of each other's clones
            suffix = str(uuid.uuid4())[:6]
            try:
                clone_dir = tempfile.mkdtemp(prefix="cloned_profile" + suffix)
            except OSError as exc:
                raise InstallError(
                    f"failed to create temp folder for cloning repository: {exc}"
                ) from exc
            try:
                self.config.git_client.clone(repo_url, branch, clone_dir)
            except (GitError, OSError) as exc:
                raise InstallError(f'failed to clone repo "{repo_url}": {exc}') from exc
            self.cloned_repos[key] = clone_dir

        filename = os.path.join(clone_dir, path, PROFILE_FILE)
        try:
            with open(filename, encoding="utf-8") as handle:
                content = handle.read()
        except OSError as exc:
            raise InstallError(
                f'failed to read profile.yaml in repo "{repo_url}" '
                f'branch "{branch}" path "{path}": {exc}'
            ) from exc

        try:
            return ProfileDefinition.from_dict(yaml.safe_load(content))
        except (yaml.YAMLError, ValueError) as exc:
            raise InstallError(f"failed to parse profile.yaml: {exc}") from exc