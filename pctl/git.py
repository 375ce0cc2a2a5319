"""High level git operations driven through the git command line."""

from __future__ import annotations

import os
from dataclasses import dataclass

from pctl import log
from pctl.runner import CommandError, Runner

__all__ = ["GitError", "CLIGitConfig", "CLIGit"]

_GIT = "git"


class GitError(Exception):
    """A git operation failed."""


@dataclass
class CLIGitConfig:
    """Configuration of a command line based git client."""

    directory: str = ""
    branch: str = ""
    remote: str = ""
    message: str = ""
    base: str = ""
    quiet: bool = False


class CLIGit:
    """Git operations performed by running the git executable."""

    def __init__(self, config: CLIGitConfig, runner: Runner) -> None:
        self.config = config
        self.runner = runner

    @property
    def directory(self) -> str:
        """The working directory of the repository."""
        return self.config.directory

    def _scoped(self, *args: str) -> list[str]:
        directory = self.config.directory
        return [
            "--git-dir",
            os.path.join(directory, ".git"),
            "--work-tree",
            directory,
            *args,
        ]

    def _run_git(self, *args: str) -> bytes:
        try:
            return self.runner.run(_GIT, *args)
        except CommandError as exc:
            output = exc.output.decode(errors="replace") if exc.output else ""
            log.failuref("failed to run git with output: %s", output)
            raise

    def _say(self, message: str) -> None:
        if not self.config.quiet:
            log.actionf(message)

    def remove_all(self) -> None:
        """Stage everything, then remove all files from the repository."""
        self.add(".")
        try:
            self._run_git(*self._scoped("rm", "-rf", "."))
        except CommandError as exc:
            raise GitError(f"failed to run rm: {exc}") from exc

    def clone(self, repo: str, branch: str, location: str) -> None:
        """Shallow clone ``branch`` of ``repo`` into ``location``."""
        try:
            self._run_git("clone", "--branch", branch, "--depth", "1", repo, location)
        except CommandError as exc:
            raise GitError(f"failed to run clone: {exc}") from exc

    def commit(self) -> None:
        """Commit all changes, doing nothing when there are none."""
        try:
            changed = self.has_changes()
        except GitError as exc:
            raise GitError(
                f"failed to detect if repository has changes: {exc}"
            ) from exc
        if not changed:
            return
        try:
            self._run_git(*self._scoped("commit", "-am", self.config.message))
        except CommandError as exc:
            raise GitError(f"failed to run commit: {exc}") from exc

    def create_branch(self, branch: str) -> None:
        """Create and check out ``branch`` unless it is the base branch."""
        if branch == self.config.base:
            return
        self._say("creating new branch")
        try:
            self._run_git(*self._scoped("checkout", "-b", branch))
        except CommandError as exc:
            raise GitError(f"failed to create new branch {branch}: {exc}") from exc

    def is_repository(self) -> None:
        """Raise an OSError unless the directory holds a .git entry."""
        os.stat(os.path.join(self.config.directory, ".git"))

    def has_changes(self) -> bool:
        """Return whether the working tree has uncommitted changes."""
        try:
            out = self.runner.run(_GIT, *self._scoped("status", "-s"))
        except CommandError as exc:
            raise GitError(f"failed to check if there are changes: {exc}") from exc
        return out != b""

    def push(self) -> None:
        """Push the configured branch to the configured remote."""
        self._say("pushing to remote")
        remote, branch = self.config.remote, self.config.branch
        try:
            self._run_git(*self._scoped("push", remote, branch))
        except CommandError as exc:
            raise GitError(
                f"failed to push changes to remote {remote} with branch {branch}: {exc}"
            ) from exc

    def add(self, directory: str) -> None:
        """Stage the changes under ``directory``."""
        self._say("adding unstaged changes")
        try:
            self._run_git(*self._scoped("add", directory))
        except CommandError as exc:
            raise GitError(f"failed to run add: {exc}") from exc

    def init(self) -> None:
        """Create a repository with ``main`` as its initial branch."""
        try:
            self._run_git("init", self.config.directory, "-b", "main")
        except CommandError as exc:
            raise GitError(f"failed to init: {exc}") from exc

    def merge(self, branch: str) -> list[str]:
        """Merge ``branch`` into the current branch.

        Returns the files in conflict, or an empty list on a clean merge.
        """
        try:
            self.runner.run(_GIT, *self._scoped("merge", branch))
        except CommandError as exc:
            if b"Merge conflict" not in (exc.output or b""):
                raise GitError(f"failed to run merge: {exc}") from exc
            try:
                listing = self.runner.run(
                    _GIT, *self._scoped("diff", "--name-only", "--diff-filter=U")
                )
            except CommandError as list_exc:
                raise GitError(
                    f"failed to list files with merge conflicts: {list_exc}"
                ) from list_exc
            return listing.decode().removesuffix("\n").split("\n")
        return []

    def checkout(self, branch: str) -> None:
        """Check out ``branch``."""
        try:
            self._run_git(*self._scoped("checkout", branch))
        except CommandError as exc:
            raise GitError(f"failed to checkout branch {branch}: {exc}") from exc