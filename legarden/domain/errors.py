from __future__ import annotations


class LeGardenError(Exception):
    """Base class for controller errors."""


class DeviceFailure(LeGardenError):
    """An output command was rejected, faulted or timed out."""

    def __init__(self, actor_id: str, reason: str) -> None:
        super().__init__(f"{actor_id}: {reason}")
        self.actor_id = actor_id
        self.reason = reason


class DeviceUnavailable(LeGardenError):
    """The device controller cannot drive any output at all (fatal at startup)."""


class PublishFailure(LeGardenError):
    """The cloud endpoint rejected an event or could not be reached."""


class ConnectivityUnavailable(PublishFailure):
    """The wide-area link is known to be down."""


class ConfigurationInvalid(LeGardenError, ValueError):
    def __init__(self, reason: str, actor_id: str | None = None) -> None:
        msg = f"actor {actor_id!r}: {reason}" if actor_id else reason
        super().__init__(msg)
        self.actor_id = actor_id
        self.reason = reason


class ActorNotFound(LeGardenError, KeyError):
    def __init__(self, actor_id: str) -> None:
        super().__init__(actor_id)
        self.actor_id = actor_id

    def __str__(self) -> str:
        return f"Unknown actor: {self.actor_id}"
