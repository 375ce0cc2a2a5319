"""Opening pull requests on a hosted git platform."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from pctl import log

__all__ = ["SCMError", "PullRequest", "GitHubClient", "SCMConfig", "Client"]

GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"
PULL_REQUEST_TITLE = "PCTL Generated Profile Resource Update"
_PUBLIC_GITHUB_API = "https://api.github.com"


class SCMError(Exception):
    """Talking to the source control platform failed."""


@dataclass(frozen=True)
class PullRequest:
    """A pull request that was created."""

    number: int
    link: str


class _PullRequestCreator(Protocol):
    def create_pull_request(
        self, repo: str, title: str, head: str, base: str
    ) -> PullRequest: ...


class GitHubClient:
    """A minimal GitHub REST client able to open pull requests."""

    def __init__(
        self,
        token: str = "",
        base_url: str = "",
        session: requests.Session | None = None,
    ) -> None:
        self.token = token
        self.api_url = self._api_url(base_url)
        self.session = session or requests.Session()

    @staticmethod
    def _api_url(base_url: str) -> str:
        stripped = base_url.rstrip("/")
        if not stripped or stripped == _PUBLIC_GITHUB_API:
            return _PUBLIC_GITHUB_API
        return stripped + "/api/v3"

    def create_pull_request(
        self, repo: str, title: str, head: str, base: str
    ) -> PullRequest:
        """Open a pull request merging ``head`` into ``base`` on ``repo``."""
        url = f"{self.api_url}/repos/{repo}/pulls"
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        body = {"title": title, "head": head, "base": base, "body": ""}
        try:
            response = self.session.post(url, json=body, headers=headers, timeout=30)
        except requests.RequestException as exc:
            raise SCMError(f'Post "{url}": {exc}') from exc

        payload = self._json(response)
        if not response.ok:
            message = payload.get("message") or response.reason or (
                f"status {response.status_code}"
            )
            raise SCMError(message)
        return PullRequest(
            number=int(payload.get("number", 0)),
            link=str(payload.get("html_url", "")),
        )

    @staticmethod
    def _json(response: requests.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}


@dataclass
class SCMConfig:
    """What is needed to open a pull request."""

    branch: str = ""
    base: str = ""
    repo: str = ""
    client: _PullRequestCreator | None = None


class Client:
    """Opens pull requests for the configured branch."""

    def __init__(self, config: SCMConfig) -> None:
        if config.client is None:
            token = os.environ.get(GITHUB_TOKEN_ENV_VAR, "")
            if not token:
                raise SCMError(
                    f"failed to create scm client: {GITHUB_TOKEN_ENV_VAR} not set"
                )
            config.client = GitHubClient(token=token)
        self.config = config

    def create_pull_request(self) -> PullRequest:
        """Open the pull request and report where it lives."""
        cfg = self.config
        log.actionf("Creating pull request with : %s%s%s", cfg.repo, cfg.base, cfg.branch)
        try:
            request = cfg.client.create_pull_request(
                cfg.repo, PULL_REQUEST_TITLE, cfg.branch, cfg.base
            )
        except SCMError as exc:
            raise SCMError(f"error while creating pr: {exc}") from exc
        log.successf(
            "PR created with number: %d and URL: %s", request.number, request.link
        )
        return request