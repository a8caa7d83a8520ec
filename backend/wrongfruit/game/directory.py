from __future__ import annotations

import logging
import random
import string
from threading import RLock
from typing import Any, Callable

from .models import Player, RoomSettings
from .room import Notify, Room


log = logging.getLogger(__name__)

CODE_LENGTH = 4


class RoomDirectory:
    """Registry of active rooms and of which room each connection is in.

    One instance lives for the lifetime of the application. Directory
    mutations are serialized by the directory lock; gameplay inside a room is
    serialized by that room's own lock. The directory lock is always taken
    before a room lock, never the other way round.
    """

    def __init__(
        self,
        defaults: RoomSettings | None = None,
        notify: Notify | None = None,
        spawn: Callable[..., Any] | None = None,
        sleep: Callable[[float], Any] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.defaults = defaults or RoomSettings()
        self._notify = notify
        self._spawn = spawn
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        self._player_rooms: dict[str, str] = {}

    def _generate_code(self) -> str:
        code = "".join(self._rng.choices(string.ascii_uppercase, k=CODE_LENGTH))
        while code in self._rooms:
            code = "".join(self._rng.choices(string.ascii_uppercase, k=CODE_LENGTH))
        return code

    def create_room(
        self, identity: str, name: str, settings: RoomSettings | None = None
    ) -> tuple[Room, Player]:
        with self._lock:
            # One room per connection.
            self.remove_player(identity)

            code = self._generate_code()
            room = Room(
                code,
                settings=settings or self.defaults,
                notify=self._notify,
                spawn=self._spawn,
                sleep=self._sleep,
                rng=self._rng,
            )
            player = Player(id=identity, name=name, room_code=code)
            room.add_player(player)

            self._rooms[code] = room
            self._player_rooms[identity] = code
            log.info(f"Room created: {code} by {name}")
            return room, player

    def join_error(self, code: str) -> str | None:
        with self._lock:
            room = self._rooms.get((code or "").strip().upper())
            if room is None:
                return "Room not found"
            if room.is_full:
                return "Room is full"
            if room.phase != "waiting":
                return "Game already in progress"
            return None

    def join_room(self, code: str, identity: str, name: str) -> tuple[Room, Player] | None:
        with self._lock:
            code = (code or "").strip().upper()
            room = self._rooms.get(code)
            if room is None:
                return None

            current = self._player_rooms.get(identity)
            if current == code:
                return None

            with room.lock:
                if room.is_full or room.phase != "waiting":
                    return None
                if current is not None:
                    self.remove_player(identity)
                player = Player(id=identity, name=name, room_code=code)
                if not room.add_player(player):
                    return None

            self._player_rooms[identity] = code
            log.info(f"{name} joined room {code}")
            return room, player

    def remove_player(self, identity: str) -> tuple[Room, Player] | None:
        """Detach ``identity`` from its room; an emptied room is torn down."""
        with self._lock:
            code = self._player_rooms.pop(identity, None)
            if code is None:
                return None
            room = self._rooms.get(code)
            if room is None:
                return None

            with room.lock:
                player = room.remove_player(identity)
                if room.player_count == 0:
                    room.close()
                    del self._rooms[code]
                    log.info(f"Room {code} closed")

            if player is None:
                return None
            log.info(f"{player.name} left room {code}")
            return room, player

    def get_room(self, code: str) -> Room | None:
        with self._lock:
            return self._rooms.get((code or "").strip().upper())

    def room_for(self, identity: str) -> Room | None:
        with self._lock:
            code = self._player_rooms.get(identity)
            return self._rooms.get(code) if code else None

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)
