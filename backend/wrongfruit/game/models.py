from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Literal


Role = Literal["crewmate", "imposter"]
Phase = Literal["waiting", "role-reveal", "word-input", "discussion", "voting", "results"]
Winner = Literal["crewmates", "imposter"]

MIN_PLAYERS = 3
MAX_PLAYERS_CEILING = 10
NAME_MAX_LEN = 20
WORD_MAX_LEN = 20


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Player:
    id: str
    name: str
    room_code: str
    role: Role = "crewmate"
    word: str | None = None
    submitted: bool = False
    votes: int = 0
    is_alive: bool = True
    is_host: bool = False
    joined_at_ms: int = field(default_factory=now_ms)

    @property
    def is_imposter(self) -> bool:
        return self.role == "imposter"

    def reset_for_new_round(self) -> None:
        self.word = None
        self.submitted = False
        self.votes = 0

    def reset_for_new_game(self) -> None:
        self.role = "crewmate"
        self.is_alive = True
        self.reset_for_new_round()

    def eliminate(self) -> None:
        self.is_alive = False

    def to_dict(self, reveal: bool = False) -> dict[str, Any]:
        """Client-safe view. Role and word are only included once revealed."""
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "isAlive": self.is_alive,
            "hasSubmittedWord": self.submitted,
            "votes": self.votes,
            "isHost": self.is_host,
        }
        if reveal:
            payload["role"] = self.role
            payload["word"] = self.word
        return payload

    def private_view(self) -> dict[str, Any]:
        return self.to_dict(reveal=True)


@dataclass(frozen=True)
class RoomSettings:
    max_players: int = 10
    imposter_count: int = 1
    discussion_seconds: int = 60
    voting_seconds: int = 30
    max_rounds: int = 3

    @classmethod
    def from_config(cls, config: Any) -> RoomSettings:
        get = config.get if hasattr(config, "get") else lambda k, d=None: getattr(config, k, d)
        return cls(
            max_players=min(int(get("MAX_PLAYERS", 10)), MAX_PLAYERS_CEILING),
            imposter_count=int(get("IMPOSTER_COUNT", 1)),
            discussion_seconds=int(get("DISCUSSION_SECONDS", 60)),
            voting_seconds=int(get("VOTING_SECONDS", 30)),
            max_rounds=int(get("MAX_ROUNDS", 3)),
        )

    def is_valid(self) -> bool:
        if not MIN_PLAYERS <= self.max_players <= MAX_PLAYERS_CEILING:
            return False
        if self.imposter_count < 1 or self.imposter_count >= self.max_players:
            return False
        if not 10 <= self.discussion_seconds <= 300:
            return False
        if not 10 <= self.voting_seconds <= 300:
            return False
        return 1 <= self.max_rounds <= 20

    def with_overrides(self, raw: dict | None) -> RoomSettings | None:
        """Apply client-supplied overrides; None when anything is out of range."""
        if not raw:
            return self
        if not isinstance(raw, dict):
            return None

        keys = {
            "maxPlayers": "max_players",
            "imposterCount": "imposter_count",
            "discussionTime": "discussion_seconds",
            "votingTime": "voting_seconds",
            "maxRounds": "max_rounds",
        }
        values = {
            "max_players": self.max_players,
            "imposter_count": self.imposter_count,
            "discussion_seconds": self.discussion_seconds,
            "voting_seconds": self.voting_seconds,
            "max_rounds": self.max_rounds,
        }
        for wire_key, attr in keys.items():
            if wire_key not in raw:
                continue
            value = raw[wire_key]
            if isinstance(value, bool) or not isinstance(value, int):
                return None
            values[attr] = value

        settings = RoomSettings(**values)
        if not settings.is_valid():
            return None
        return settings

    def to_dict(self) -> dict[str, int]:
        return {
            "maxPlayers": self.max_players,
            "imposterCount": self.imposter_count,
            "discussionTime": self.discussion_seconds,
            "votingTime": self.voting_seconds,
            "maxRounds": self.max_rounds,
        }


def normalize_name(raw: Any) -> str | None:
    """Trimmed display name, or None when it is empty, too long or unprintable."""
    if not isinstance(raw, str):
        return None
    name = raw.strip()
    if not name or len(name) > NAME_MAX_LEN:
        return None
    if not name.isprintable():
        return None
    # Avoid obvious HTML/script injection.
    if "<" in name or ">" in name:
        return None
    return name


def normalize_word(raw: Any) -> str | None:
    """A single token of 1-20 characters, or None."""
    if not isinstance(raw, str):
        return None
    word = raw.strip()
    if not word or len(word) > WORD_MAX_LEN:
        return None
    if any(ch.isspace() for ch in word):
        return None
    return word
