"""Listing the profile installations present in a cluster."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from pctl.models import ProfileInstallation

__all__ = ["ListError", "Summary", "Manager"]

_MISSING = "-"


class ListError(Exception):
    """Profile installations could not be listed."""


class _InstallationClient(Protocol):
    def list_profile_installations(self) -> Iterable[ProfileInstallation | dict[str, Any]]: ...


@dataclass(frozen=True)
class Summary:
    """A one-line description of an installation."""

    name: str
    namespace: str
    version: str = _MISSING
    profile: str = _MISSING
    catalog: str = _MISSING
    branch: str = _MISSING
    path: str = _MISSING
    url: str = _MISSING


def _summarise(item: ProfileInstallation) -> Summary:
    version = profile = catalog = _MISSING
    branch = path = url = _MISSING
    if item.catalog is not None:
        version = item.catalog.version
        profile = item.catalog.profile
        catalog = item.catalog.catalog
    if item.source is not None:
        path = item.source.path or _MISSING
        branch = item.source.branch or _MISSING
        url = item.source.url or _MISSING
    return Summary(
        name=item.name,
        namespace=item.namespace,
        version=version,
        profile=profile,
        catalog=catalog,
        branch=branch,
        path=path,
        url=url,
    )


class Manager:
    """Gets and lists profile installations through a cluster client."""

    def __init__(self, client: _InstallationClient) -> None:
        self.client = client

    def list(self) -> list[Summary]:
        """Return a summary of every installation the client knows of."""
        try:
            items = [
                item
                if isinstance(item, ProfileInstallation)
                else ProfileInstallation.from_dict(item)
                for item in self.client.list_profile_installations()
            ]
        except Exception as exc:
            raise ListError(f"failed to list profile installations: {exc}") from exc
        return [_summarise(item) for item in items]