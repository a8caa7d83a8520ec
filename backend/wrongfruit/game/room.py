from __future__ import annotations

import logging
import random
from threading import RLock
from typing import Any, Callable

from .models import MIN_PLAYERS, Phase, Player, RoomSettings, Winner, normalize_word
from .timer import RoundTimer
from .words import pick_fruit


log = logging.getLogger(__name__)

# notify(room_code, event, payload, to) -- ``to`` is a player id, or None for the whole room.
Notify = Callable[[str, str, dict, "str | None"], None]

IN_GAME_PHASES = ("role-reveal", "word-input", "discussion", "voting")


def _discard_notification(room_code: str, event: str, payload: dict, to: str | None = None) -> None:
    return None


class Room:
    """A single game: roster, phase machine and the round countdown.

    All public methods take the room lock, and so do timer callbacks, so
    concurrent submissions, votes and timer expiry are applied one at a time.
    Rejections are reported through return values, never by raising.
    """

    def __init__(
        self,
        code: str,
        settings: RoomSettings | None = None,
        notify: Notify | None = None,
        spawn: Callable[..., Any] | None = None,
        sleep: Callable[[float], Any] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.code = code
        self.settings = settings or RoomSettings()
        self.lock = RLock()
        self.players: dict[str, Player] = {}
        self.phase: Phase = "waiting"
        self.current_round = 1
        self.current_word: str | None = None
        self.reveal_order: list[str] = []
        # voter id -> target id for the current ballot
        self.voted: dict[str, str] = {}
        self.winner: Winner | None = None
        self._notify = notify or _discard_notification
        self._rng = rng or random.Random()
        self.timer = RoundTimer(
            self.lock, spawn=spawn, sleep=sleep, on_tick=self._on_tick, on_error=self._on_timer_error
        )

    # ---- roster ----

    @property
    def max_rounds(self) -> int:
        return self.settings.max_rounds

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_full(self) -> bool:
        return len(self.players) >= self.settings.max_players

    @property
    def alive_players(self) -> list[Player]:
        return [p for p in self.players.values() if p.is_alive]

    @property
    def host(self) -> Player | None:
        for p in self.players.values():
            if p.is_host:
                return p
        return None

    def get_player(self, player_id: str) -> Player | None:
        return self.players.get(player_id)

    def roster(self, reveal: bool = False) -> list[dict[str, Any]]:
        with self.lock:
            return [p.to_dict(reveal=reveal) for p in self.players.values()]

    def add_player(self, player: Player) -> bool:
        with self.lock:
            if self.is_full or player.id in self.players:
                return False
            player.room_code = self.code
            player.is_host = self.host is None
            self.players[player.id] = player
            return True

    def remove_player(self, player_id: str) -> Player | None:
        with self.lock:
            player = self.players.pop(player_id, None)
            if player is None:
                return None

            self._withdraw_ballots(player_id)
            if player_id in self.reveal_order:
                self.reveal_order.remove(player_id)

            if player.is_host:
                player.is_host = False
                # Earliest-joined remaining player takes over.
                for remaining in self.players.values():
                    remaining.is_host = True
                    break

            if self.players and self.phase in IN_GAME_PHASES:
                self._recheck_after_departure()
            return player

    def _withdraw_ballots(self, player_id: str) -> None:
        # The leaver's own vote no longer counts.
        target_id = self.voted.pop(player_id, None)
        target = self.players.get(target_id) if target_id else None
        if target is not None and target.votes > 0:
            target.votes -= 1
        # Votes cast for the leaver are void; those voters may vote again.
        for voter_id in [v for v, t in self.voted.items() if t == player_id]:
            del self.voted[voter_id]

    def _recheck_after_departure(self) -> None:
        alive = self.alive_players
        if not any(p.is_imposter for p in alive):
            self._finish("crewmates")
        elif all(p.is_imposter for p in alive):
            self._finish("imposter")
        elif self.phase == "word-input" and all(p.submitted for p in alive):
            self._begin_discussion()
        elif self.phase == "voting" and all(p.id in self.voted for p in alive):
            self.end_voting()

    # ---- lifecycle ----

    def can_start_game(self) -> tuple[bool, str | None]:
        with self.lock:
            if self.phase != "waiting":
                return False, "Game already in progress"
            if len(self.players) < MIN_PLAYERS:
                return False, f"Need at least {MIN_PLAYERS} players"
            return True, None

    def request_start(self, player_id: str) -> str | None:
        """Start on behalf of ``player_id``; returns a rejection reason or None."""
        with self.lock:
            player = self.players.get(player_id)
            if player is None or not player.is_host:
                return "Only the host can start the game"
            ok, reason = self.can_start_game()
            if not ok:
                return reason
            self.start_game()
            return None

    def start_game(self) -> bool:
        with self.lock:
            ok, _ = self.can_start_game()
            if not ok:
                return False

            self.current_round = 1
            self.winner = None
            self.current_word = pick_fruit(self._rng)

            players = list(self.players.values())
            for p in players:
                p.reset_for_new_game()

            shuffled = players[:]
            self._rng.shuffle(shuffled)
            imposters = min(self.settings.imposter_count, len(players) - 1)
            for p in shuffled[:imposters]:
                p.role = "imposter"

            self._shuffle_reveal_order()
            self.voted.clear()

            # Roles are revealed instantly; word input opens right away.
            self.phase = "role-reveal"
            self._set_phase("word-input")
            log.info(f"Game started in room {self.code} with {len(players)} players")

            roster = self.roster()
            for p in players:
                self._notify(self.code, "game-started", self._role_payload(p, roster), p.id)
            return True

    def return_to_lobby(self, player_id: str) -> bool:
        with self.lock:
            player = self.players.get(player_id)
            if player is None or not player.is_host or self.phase != "results":
                return False
            self.timer.stop()
            self.current_round = 1
            self.current_word = None
            self.winner = None
            self.reveal_order = []
            self.voted.clear()
            for p in self.players.values():
                p.reset_for_new_game()
            self._set_phase("waiting")
            return True

    def close(self) -> None:
        with self.lock:
            self.timer.stop()
            self.players.clear()
            self.reveal_order = []
            self.voted.clear()

    # ---- round actions ----

    def submit_word(self, player_id: str, word: Any) -> bool:
        with self.lock:
            player = self.players.get(player_id)
            if player is None or self.phase != "word-input" or not player.is_alive:
                return False
            if player.submitted:
                return False

            trimmed = normalize_word(word)
            if trimmed is None:
                return False

            # Imposters must see at least one genuine clue before guessing.
            if player.is_imposter and not any(
                p.submitted for p in self.alive_players if not p.is_imposter
            ):
                return False

            player.word = trimmed
            player.submitted = True

            alive = self.alive_players
            submitted = sum(1 for p in alive if p.submitted)
            self._notify(
                self.code,
                "player-submitted",
                {"playerId": player_id, "submitted": submitted, "total": len(alive)},
                None,
            )

            if submitted == len(alive):
                self._begin_discussion()
            return True

    def vote(self, voter_id: str, target_id: str) -> bool:
        with self.lock:
            voter = self.players.get(voter_id)
            target = self.players.get(target_id)
            if voter is None or target is None or self.phase != "voting":
                return False
            if not voter.is_alive or not target.is_alive or voter_id in self.voted:
                return False

            target.votes += 1
            self.voted[voter_id] = target_id
            self._notify(
                self.code,
                "vote-received",
                {"voterId": voter_id, "targetPlayerId": target_id, "votes": target.votes},
                None,
            )

            if all(p.id in self.voted for p in self.alive_players):
                self.end_voting()
            return True

    def end_voting(self) -> None:
        with self.lock:
            if self.phase != "voting":
                return
            self.timer.stop()

            alive = self.alive_players
            max_votes = max((p.votes for p in alive), default=0)
            leaders = [p for p in alive if p.votes == max_votes]

            if max_votes > 0 and len(leaders) == 1:
                voted_out = leaders[0]
                voted_out.eliminate()
                log.info(f"Room {self.code}: {voted_out.name} voted out ({voted_out.role})")
                if not any(p.is_imposter for p in self.alive_players):
                    self._finish("crewmates")
                    return

            self._next_round()

    def reveal_next(self) -> dict | None:
        with self.lock:
            if self.phase != "discussion":
                return None
            while self.reveal_order:
                player = self.players.get(self.reveal_order.pop(0))
                if player is None or not player.word:
                    continue
                payload = {
                    "playerId": player.id,
                    "name": player.name,
                    "word": player.word,
                    "isImposter": player.is_imposter,
                }
                self._notify(self.code, "word-revealed", payload, None)
                return payload
            return None

    # ---- transitions ----

    def _next_round(self) -> None:
        self.current_round += 1
        if self.current_round > self.max_rounds or not any(
            not p.is_imposter for p in self.alive_players
        ):
            self._finish("imposter")
            return

        self.current_word = pick_fruit(self._rng)
        for p in self.players.values():
            p.reset_for_new_round()
        self.voted.clear()
        self._shuffle_reveal_order()
        self._set_phase("word-input")

        roster = self.roster()
        for p in self.players.values():
            payload = self._role_payload(p, roster)
            payload["round"] = self.current_round
            self._notify(self.code, "round-started", payload, p.id)

    def _begin_discussion(self) -> None:
        self._set_phase("discussion")
        self.timer.start(self.settings.discussion_seconds, self._begin_voting)

    def _begin_voting(self) -> None:
        if self.phase != "discussion":
            return
        self._set_phase("voting")
        self.timer.start(self.settings.voting_seconds, self.end_voting)

    def _finish(self, winner: Winner) -> None:
        self.timer.stop()
        self.winner = winner
        self._set_phase("results")
        log.info(f"Room {self.code}: game over, {winner} win")
        self._notify(
            self.code,
            "game-ended",
            {
                "winner": winner,
                "fruit": self.current_word,
                "players": self.roster(reveal=True),
            },
            None,
        )

    def _set_phase(self, phase: Phase) -> None:
        if phase not in ("discussion", "voting"):
            self.timer.stop()
        self.phase = phase
        self._notify(
            self.code,
            "phase-changed",
            {"phase": phase, "round": self.current_round, "timer": self._timer_for(phase)},
            None,
        )

    def _timer_for(self, phase: Phase) -> int:
        if phase == "discussion":
            return self.settings.discussion_seconds
        if phase == "voting":
            return self.settings.voting_seconds
        return 0

    def _on_tick(self, remaining: int) -> None:
        self._notify(self.code, "timer-tick", {"phase": self.phase, "remaining": remaining}, None)

    def _on_timer_error(self) -> None:
        log.exception(
            f"Room {self.code}: timer callback failed in phase {self.phase} "
            f"(round {self.current_round}), countdown stopped"
        )

    def _shuffle_reveal_order(self) -> None:
        order = [p.id for p in self.alive_players]
        self._rng.shuffle(order)
        self.reveal_order = order

    def _role_payload(self, player: Player, roster: list[dict]) -> dict:
        return {
            "isImposter": player.is_imposter,
            "role": player.role,
            "fruit": None if player.is_imposter else self.current_word,
            "players": roster,
        }

    # ---- views ----

    def to_dict(self) -> dict[str, Any]:
        with self.lock:
            ended = self.phase == "results"
            host = self.host
            payload = {
                "code": self.code,
                "phase": self.phase,
                "hostId": host.id if host else None,
                "players": self.roster(reveal=ended),
                "currentRound": self.current_round,
                "maxRounds": self.max_rounds,
                "timer": self.timer.remaining if self.phase in ("discussion", "voting") else 0,
                "settings": self.settings.to_dict(),
                "winner": self.winner,
            }
            if ended:
                payload["fruit"] = self.current_word
            return payload
