# pctl

A library for working with GitOps profiles. It clones profile repositories
with the `git` command line, reads their `profile.yaml` definitions
(following nested profiles), and writes the Flux resources for each artifact
into a directory. It can also summarise profile installations, drive common
git operations and open a pull request on GitHub.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `pctl.installer`

`Installer(config, artifact_writer=None)` takes an `InstallerConfig`
(`git_client`, `root_dir`, `git_repo_namespace`, `git_repo_name`).
`Installer.install(installation)` clones the installation's source (the tag
if one is set, otherwise the branch) into a temporary directory, reads
`profile.yaml` at the source path, and walks its artifacts. An artifact that
refers to another profile is followed recursively, and its artifacts are
placed under a sub-directory named after it. A repository and branch pair is
cloned only once per installer. The collected artifacts are handed to the
artifact writer, a `pctl.artifact.Writer` unless another one is given.
Clone, read and parse failures raise `InstallError`.

### `pctl.artifact`

`Writer(git_repository_name, git_repository_namespace, root_dir)` and its
`write(installation, artifacts)` method take a list of `ArtifactWrapper`
objects (`artifact`, `nested_profile_sub_directory_name`,
`path_to_profile_clone`, `profile_name`). For each artifact, under
`<root_dir>/artifacts/<nested dir>/<artifact name>/`, it writes:

- for a kustomize artifact: a copy of the artifact's directory, a
  `kustomization.yaml` and a `kustomize-flux.yaml` holding a Flux
  `Kustomization` that points at the copy;
- for a chart artifact: a `helm-chart/` directory with `HelmRelease.yaml`,
  `ConfigMap.yaml` when the chart has default values, and either a copy of a
  local chart plus a `kustomization.yaml`, or `HelmRepository.yaml` for a
  remote chart; then a `kustomization.yaml` and a `kustomize-flux.yaml`
  whose `Kustomization` health-checks the `HelmRelease`.

`dependsOn` entries become `dependsOn` references in the `Kustomization`.
Finally the installation itself is written to `profile-installation.yaml`.

`validate_artifact(artifact)` checks that an artifact sets only one of chart,
kustomize and profile, and not both a chart path and a chart URL. All
failures raise `ArtifactError`.

### `pctl.models`

Dataclasses for the resources: `ProfileInstallation`, `ProfileDefinition`,
`Artifact`, `Source`, `Catalog`, `Chart`, `Kustomize`, `ProfileRef` and
`DependsOn`. `ProfileInstallation` and `ProfileDefinition` have `to_dict()`
and `from_dict(data)` for the manifest layout (`apiVersion`, `kind`,
`metadata`, `spec`); `from_dict` raises `ValueError` on malformed data.

### `pctl.installation`

`Manager(client).list()` returns a `Summary` (name, namespace, version,
profile, catalog, branch, path, url) for each installation. Fields that are
not set read `-`. The client is any object with a
`list_profile_installations()` method returning `ProfileInstallation`
objects or manifest mappings. Failures raise `ListError`.

### `pctl.git`

`CLIGit(config, runner)` takes a `CLIGitConfig` (`directory`, `branch`,
`remote`, `message`, `base`, `quiet`) and a runner. It offers `clone`, `init`,
`add`, `commit` (only when `has_changes()` is true), `create_branch` (skipped
when the branch is the base), `checkout`, `push`, `remove_all`,
`is_repository` (raises `OSError` when there is no `.git`) and `merge`, which
returns the list of conflicting files or an empty list. Failures raise
`GitError`.

### `pctl.scm`

`Client(SCMConfig(branch, base, repo, client))` opens a pull request with
`create_pull_request()` and returns a `PullRequest` (`number`, `link`). When
no client is given it builds a `GitHubClient` from the `GITHUB_TOKEN`
environment variable, and raises `SCMError` if that is not set.
`GitHubClient(token, base_url, session)` talks to the GitHub REST API, or to
`<base_url>/api/v3` for another host. Failures raise `SCMError`.

### `pctl.runner`

`CLIRunner().run(command, *args)` runs a command and returns its combined
stdout and stderr as bytes. A missing executable or a non-zero exit raises
`CommandError`, which carries `command`, `output` and `returncode`.

### `pctl.formatter`

`JSONFormatter().format(getter)` renders what `getter()` returns as JSON
indented by two spaces (dataclasses are converted to mappings).
`TableFormatter().format(getter)` renders a `TableContents(headers, data)` as
a borderless, tab separated table with upper-cased headers; any other value
raises `TypeError`.

### `pctl.log`

`actionf`, `waitingf`, `successf`, `warningf` and `failuref` print a
`%`-formatted message to stdout after a marker (`►`, `◎`, `✔`,
`⚠️ WARNING:`, `✗`).

## Example

```python
from pctl.git import CLIGit, CLIGitConfig
from pctl.installer import Installer, InstallerConfig
from pctl.models import ProfileInstallation, Source
from pctl.runner import CLIRunner

git = CLIGit(CLIGitConfig(directory="."), CLIRunner())
installer = Installer(
    InstallerConfig(
        git_client=git,
        root_dir="out",
        git_repo_namespace="flux-system",
        git_repo_name="my-repo",
    )
)
installer.install(
    ProfileInstallation(
        name="nginx",
        namespace="default",
        source=Source(
            url="https://github.com/org/profiles",
            branch="main",
            path="nginx",
        ),
    )
)
```

## What it does not do

- There is no command-line program; everything is used from Python.
- It does not talk to a Kubernetes cluster. `Manager` lists whatever the
  client you pass it returns, and nothing is applied to a cluster; the
  written files are meant to be committed to a repository that Flux watches.
- Pull requests can only be opened on GitHub or a GitHub-compatible API.