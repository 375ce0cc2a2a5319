import os

import pytest
import yaml

from pctl.artifact import ArtifactError, ArtifactWrapper, Writer, validate_artifact
from pctl.models import (
    Artifact,
    Chart,
    DependsOn,
    Kustomize,
    ProfileInstallation,
    ProfileRef,
    Source,
)

GIT_REPO_NAME = "my-git-repo"
GIT_REPO_NAMESPACE = "my-git-repo-namespace"
PROFILE_URL = "github.com/weaveworks/profiles-examples"
PROFILE_BRANCH = "main"
PROFILE_PATH = "path/to/profile"
PROFILE_NAME = "weaveworks-nginx"
INSTALLATION_NAME = "install-name"
NAMESPACE = "my-namespace"
ARTIFACT_NAME = "1"

KUSTOMIZE_TYPE = {"kind": "Kustomization", "apiVersion": "kustomize.toolkit.fluxcd.io/v1beta1"}
HELM_RELEASE_TYPE = {"kind": "HelmRelease", "apiVersion": "helm.toolkit.fluxcd.io/v2beta1"}
HELM_REPO_TYPE = {"kind": "HelmRepository", "apiVersion": "source.toolkit.fluxcd.io/v1beta1"}
GIT_SOURCE_REF = {"kind": "GitRepository", "name": GIT_REPO_NAME, "namespace": GIT_REPO_NAMESPACE}


@pytest.fixture
def root_dir(tmp_path):
    path = tmp_path / "root-dir"
    path.mkdir()
    return str(path)


@pytest.fixture
def git_dir(tmp_path):
    path = tmp_path / "git-dir"
    files = path / PROFILE_PATH / "files"
    files.mkdir(parents=True)
    (files / "file1").write_text("foo")
    return str(path)


@pytest.fixture
def installation():
    return ProfileInstallation(
        name=INSTALLATION_NAME,
        namespace=NAMESPACE,
        source=Source(url=PROFILE_URL, branch=PROFILE_BRANCH, path=PROFILE_PATH),
    )


@pytest.fixture
def writer(root_dir):
    return Writer(
        git_repository_name=GIT_REPO_NAME,
        git_repository_namespace=GIT_REPO_NAMESPACE,
        root_dir=root_dir,
    )


def _files(root):
    found = []
    for dirpath, _dirs, names in os.walk(root):
        for name in names:
            found.append(os.path.relpath(os.path.join(dirpath, name), root).replace(os.sep, "/"))
    return sorted(found)


def _load(root, rel):
    with open(os.path.join(root, rel), encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def _wrapper(git_dir, artifact, nested="", profile_name=PROFILE_NAME):
    return ArtifactWrapper(
        artifact=artifact,
        path_to_profile_clone=os.path.join(git_dir, PROFILE_PATH),
        profile_name=profile_name,
        nested_profile_sub_directory_name=nested,
    )


def _name(artifact_name):
    return f"{INSTALLATION_NAME}-{artifact_name}"


def _kustomization(path, **extra):
    spec = {
        "path": path,
        "sourceRef": GIT_SOURCE_REF,
        "interval": "5m0s",
        "prune": True,
        "targetNamespace": NAMESPACE,
    }
    spec.update(extra)
    return {
        **KUSTOMIZE_TYPE,
        "metadata": {"name": _name(ARTIFACT_NAME), "namespace": NAMESPACE},
        "spec": spec,
    }


# --- helm charts -----------------------------------------------------------


def test_local_chart_generates_helm_resources(writer, installation, root_dir, git_dir):
    installation.config_map = "my-configmap"
    artifacts = [
        _wrapper(
            git_dir,
            Artifact(name=ARTIFACT_NAME, chart=Chart(path="files/", default_values="values")),
        )
    ]
    writer.write(installation, artifacts)

    assert _files(root_dir) == sorted(
        [
            "artifacts/1/kustomization.yaml",
            "artifacts/1/kustomize-flux.yaml",
            "artifacts/1/helm-chart/kustomization.yaml",
            "artifacts/1/helm-chart/HelmRelease.yaml",
            "artifacts/1/helm-chart/ConfigMap.yaml",
            "artifacts/1/helm-chart/files/file1",
            "profile-installation.yaml",
        ]
    )

    assert _load(root_dir, "artifacts/1/kustomization.yaml") == {
        "resources": ["kustomize-flux.yaml"]
    }
    assert _load(root_dir, "artifacts/1/kustomize-flux.yaml") == _kustomization(
        os.path.join(root_dir, "artifacts", "1", "helm-chart"),
        healthChecks=[
            {
                "apiVersion": "helm.toolkit.fluxcd.io/v2beta1",
                "kind": "HelmRelease",
                "name": _name(ARTIFACT_NAME),
                "namespace": NAMESPACE,
            }
        ],
    )
    assert _load(root_dir, "artifacts/1/helm-chart/kustomization.yaml") == {
        "resources": ["HelmRelease.yaml"]
    }
    assert _load(root_dir, "artifacts/1/helm-chart/ConfigMap.yaml") == {
        "kind": "ConfigMap",
        "apiVersion": "v1",
        "metadata": {"name": f"{INSTALLATION_NAME}-{ARTIFACT_NAME}-defaultvalues", "namespace": NAMESPACE},
        "data": {"default-values.yaml": "values"},
    }
    assert _load(root_dir, "artifacts/1/helm-chart/HelmRelease.yaml") == {
        **HELM_RELEASE_TYPE,
        "metadata": {"name": _name(ARTIFACT_NAME), "namespace": NAMESPACE},
        "spec": {
            "releaseName": ARTIFACT_NAME,
            "interval": "5m0s",
            "chart": {
                "spec": {
                    "chart": os.path.join(root_dir, "artifacts", "1", "helm-chart", "files"),
                    "sourceRef": GIT_SOURCE_REF,
                }
            },
            "valuesFrom": [
                {
                    "name": f"{INSTALLATION_NAME}-{ARTIFACT_NAME}-defaultvalues",
                    "kind": "ConfigMap",
                    "valuesKey": "default-values.yaml",
                },
                {"kind": "ConfigMap", "name": "my-configmap", "valuesKey": ARTIFACT_NAME},
            ],
        },
    }
    assert _load(root_dir, "artifacts/1/helm-chart/files/file1") == "foo"


def test_remote_chart_generates_helm_repository(writer, installation, root_dir, git_dir):
    artifacts = [
        _wrapper(
            git_dir,
            Artifact(
                name=ARTIFACT_NAME,
                chart=Chart(url="example.com", version="v1.0.0", name="chart-name"),
            ),
        )
    ]
    writer.write(installation, artifacts)

    assert _files(root_dir) == sorted(
        [
            "artifacts/1/kustomization.yaml",
            "artifacts/1/kustomize-flux.yaml",
            "artifacts/1/helm-chart/HelmRelease.yaml",
            "artifacts/1/helm-chart/HelmRepository.yaml",
            "profile-installation.yaml",
        ]
    )
    assert _load(root_dir, "artifacts/1/kustomize-flux.yaml") == _kustomization(
        os.path.join(root_dir, "artifacts", "1", "helm-chart"),
        healthChecks=[
            {
                "apiVersion": "helm.toolkit.fluxcd.io/v2beta1",
                "kind": "HelmRelease",
                "name": _name(ARTIFACT_NAME),
                "namespace": NAMESPACE,
            }
        ],
    )
    assert _load(root_dir, "artifacts/1/helm-chart/HelmRelease.yaml") == {
        **HELM_RELEASE_TYPE,
        "metadata": {"name": _name(ARTIFACT_NAME), "namespace": NAMESPACE},
        "spec": {
            "interval": "5m0s",
            "releaseName": ARTIFACT_NAME,
            "chart": {
                "spec": {
                    "chart": "chart-name",
                    "version": "v1.0.0",
                    "sourceRef": {
                        "kind": "HelmRepository",
                        "name": _name(ARTIFACT_NAME),
                        "namespace": NAMESPACE,
                    },
                }
            },
        },
    }
    assert _load(root_dir, "artifacts/1/helm-chart/HelmRepository.yaml") == {
        **HELM_REPO_TYPE,
        "metadata": {"name": _name(ARTIFACT_NAME), "namespace": NAMESPACE},
        "spec": {"url": "example.com"},
    }


def test_chart_copy_failure(writer, installation, git_dir, tmp_path):
    wrapper = _wrapper(
        git_dir, Artifact(name=ARTIFACT_NAME, chart=Chart(path="files/", default_values="values"))
    )
    wrapper.path_to_profile_clone = str(tmp_path / "i" / "dont" / "exist")
    with pytest.raises(ArtifactError, match="failed to copy files:"):
        writer.write(installation, [wrapper])


def test_local_chart_requires_git_repository_details(installation, root_dir, git_dir):
    writer = Writer(root_dir=root_dir)
    wrapper = _wrapper(git_dir, Artifact(name=ARTIFACT_NAME, chart=Chart(path="files/")))
    with pytest.raises(ArtifactError, match="flux gitrepository object's details must be provided"):
        writer.write(installation, [wrapper])


# --- kustomize -------------------------------------------------------------


def test_kustomize_artifact(writer, installation, root_dir, git_dir):
    artifacts = [_wrapper(git_dir, Artifact(name=ARTIFACT_NAME, kustomize=Kustomize(path="files/")))]
    writer.write(installation, artifacts)

    assert _files(root_dir) == sorted(
        [
            "artifacts/1/kustomization.yaml",
            "artifacts/1/kustomize-flux.yaml",
            "artifacts/1/files/file1",
            "profile-installation.yaml",
        ]
    )
    assert _load(root_dir, "artifacts/1/kustomization.yaml") == {
        "resources": ["kustomize-flux.yaml"]
    }
    assert _load(root_dir, "artifacts/1/kustomize-flux.yaml") == _kustomization(
        os.path.join(root_dir, "artifacts", "1", "files")
    )
    restored = ProfileInstallation.from_dict(_load(root_dir, "profile-installation.yaml"))
    assert restored == installation


def test_kustomize_copy_failure(writer, installation, git_dir, tmp_path):
    wrapper = _wrapper(git_dir, Artifact(name=ARTIFACT_NAME, kustomize=Kustomize(path="files/")))
    wrapper.path_to_profile_clone = str(tmp_path / "i" / "dont" / "exist")
    with pytest.raises(ArtifactError, match="failed to copy files:"):
        writer.write(installation, [wrapper])


# --- nested artifacts and dependencies -------------------------------------


def test_nested_artifact_goes_into_subdirectory(writer, installation, root_dir, git_dir):
    artifacts = [
        _wrapper(
            git_dir,
            Artifact(name=ARTIFACT_NAME, kustomize=Kustomize(path="files/")),
            nested="nested-profile",
        )
    ]
    writer.write(installation, artifacts)
    assert _files(root_dir) == sorted(
        [
            "artifacts/nested-profile/1/kustomization.yaml",
            "artifacts/nested-profile/1/kustomize-flux.yaml",
            "artifacts/nested-profile/1/files/file1",
            "profile-installation.yaml",
        ]
    )
    restored = ProfileInstallation.from_dict(_load(root_dir, "profile-installation.yaml"))
    assert restored == installation


def test_depends_on_is_set(writer, installation, root_dir, git_dir):
    artifacts = [
        _wrapper(
            git_dir,
            Artifact(
                name=ARTIFACT_NAME,
                kustomize=Kustomize(path="files/"),
                depends_on=[DependsOn(name="2"), DependsOn(name="nested-profile")],
            ),
        ),
        _wrapper(git_dir, Artifact(name="2", kustomize=Kustomize(path="files/"))),
        _wrapper(
            git_dir,
            Artifact(name="3", kustomize=Kustomize(path="files/")),
            nested="nested-profile",
            profile_name="profile-name-2",
        ),
    ]
    writer.write(installation, artifacts)

    assert _files(root_dir) == sorted(
        [
            "artifacts/1/kustomization.yaml",
            "artifacts/1/kustomize-flux.yaml",
            "artifacts/1/files/file1",
            "artifacts/2/kustomization.yaml",
            "artifacts/2/kustomize-flux.yaml",
            "artifacts/2/files/file1",
            "artifacts/nested-profile/3/kustomization.yaml",
            "artifacts/nested-profile/3/kustomize-flux.yaml",
            "artifacts/nested-profile/3/files/file1",
            "profile-installation.yaml",
        ]
    )
    assert _load(root_dir, "artifacts/1/kustomize-flux.yaml") == _kustomization(
        os.path.join(root_dir, "artifacts", "1", "files"),
        dependsOn=[
            {"name": _name("2"), "namespace": NAMESPACE},
            {"name": _name("3"), "namespace": NAMESPACE},
        ],
    )
    nested = _load(root_dir, "artifacts/nested-profile/3/kustomize-flux.yaml")
    expected = _kustomization(os.path.join(root_dir, "artifacts", "nested-profile", "3", "files"))
    expected["metadata"]["name"] = _name("3")
    assert nested == expected
    restored = ProfileInstallation.from_dict(_load(root_dir, "profile-installation.yaml"))
    assert restored == installation


def test_missing_dependency(writer, installation, git_dir):
    artifacts = [
        _wrapper(
            git_dir,
            Artifact(
                name=ARTIFACT_NAME,
                kustomize=Kustomize(path="files/"),
                depends_on=[DependsOn(name="ghost")],
            ),
        )
    ]
    with pytest.raises(
        ArtifactError,
        match="1's depending artifact ghost not found in the list of artifacts",
    ):
        writer.write(installation, artifacts)


# --- invalid artifacts -----------------------------------------------------


def test_no_type_set(writer, installation, git_dir):
    with pytest.raises(ArtifactError, match="no artifact type set"):
        writer.write(installation, [_wrapper(git_dir, Artifact())])


@pytest.mark.parametrize(
    "artifact, message",
    [
        (
            Artifact(chart=Chart(path="foo", url="bar")),
            "expected exactly one, got both: chart.path, chart.url",
        ),
        (
            Artifact(chart=Chart(path="foo"), kustomize=Kustomize(path="bar")),
            "expected exactly one, got both: chart, kustomize",
        ),
        (
            Artifact(profile=ProfileRef(), chart=Chart(path="foo")),
            "expected exactly one, got both: chart, profile",
        ),
        (
            Artifact(profile=ProfileRef(), kustomize=Kustomize(path="foo")),
            "expected exactly one, got both: kustomize, profile",
        ),
    ],
)
def test_invalid_artifacts(writer, installation, git_dir, artifact, message):
    with pytest.raises(ArtifactError) as info:
        writer.write(installation, [_wrapper(git_dir, artifact)])
    assert str(info.value) == f"invalid artifact: {message}"


def test_validate_artifact_directly():
    with pytest.raises(ArtifactError, match="expected exactly one, got both: chart, profile"):
        validate_artifact(Artifact(chart=Chart(), profile=ProfileRef()))


def test_wrapper_name_comes_from_artifact():
    wrapper = ArtifactWrapper(artifact=Artifact(name="artifact-3"))
    assert wrapper.name == "artifact-3"