from __future__ import annotations
from typing import Iterable, Iterator

from .errors import ActorNotFound, ConfigurationInvalid
from .models import Actor


class ActorRepository:
    """Fixed set of actors, keyed by identity, in configuration order.

    The shape never changes after construction; only the state fields of the
    contained actors are mutated (by the control loop).
    """

    def __init__(self, actors: Iterable[Actor]) -> None:
        self._actors: dict[str, Actor] = {}
        for actor in actors:
            if actor.actor_id in self._actors:
                raise ConfigurationInvalid("duplicate actor identity", actor.actor_id)
            self._actors[actor.actor_id] = actor

    def get(self, actor_id: str) -> Actor:
        try:
            return self._actors[actor_id]
        except KeyError:
            raise ActorNotFound(actor_id) from None

    def all(self) -> list[Actor]:
        return list(self._actors.values())

    def ids(self) -> list[str]:
        return list(self._actors)

    def __len__(self) -> int:
        return len(self._actors)

    def __iter__(self) -> Iterator[Actor]:
        return iter(self.all())

    def __contains__(self, actor_id: object) -> bool:
        return actor_id in self._actors
