"""Console status messages prefixed with a tickmark."""

from __future__ import annotations

__all__ = ["actionf", "waitingf", "successf", "warningf", "failuref"]


def _emit(tickmark: str, message: str, args: tuple) -> None:
    text = message % args if args else message
    print(tickmark, text)


def actionf(message: str, *args) -> None:
    """Announce an action being taken."""
    _emit("►", message, args)


def waitingf(message: str, *args) -> None:
    """Announce that something is being waited for."""
    _emit("◎", message, args)


def successf(message: str, *args) -> None:
    """Announce a success."""
    _emit("✔", message, args)


def warningf(message: str, *args) -> None:
    """Print a warning."""
    _emit("⚠️ WARNING:", message, args)


def failuref(message: str, *args) -> None:
    """Announce a failure."""
    _emit("✗", message, args)