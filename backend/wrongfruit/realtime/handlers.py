from __future__ import annotations

import logging
from typing import Any

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.directory import RoomDirectory
from ..game.models import normalize_name


log = logging.getLogger(__name__)


def _room_code(data: Any) -> str:
    # start-game / reveal-next may send the bare code instead of an object.
    if isinstance(data, str):
        return data.strip().upper()
    return str((data or {}).get("roomCode", "")).strip().upper()


def _reject(message: str) -> dict:
    log.debug(f"Rejected {request.sid}: {message}")
    emit("error", {"message": message})
    return {"ok": False, "error": message}


def register_socketio_handlers(socketio: SocketIO, directory: RoomDirectory) -> None:
    def _member_room(room_code: str):
        room = directory.room_for(request.sid)
        if room is None or (room_code and room.code != room_code):
            return None
        return room

    def _leave_current_room() -> None:
        left = directory.remove_player(request.sid)
        if left is None:
            return
        room, player = left
        leave_room(room.code)
        if room.player_count:
            socketio.emit(
                "player-left",
                {"playerId": player.id, "players": room.roster()},
                to=room.code,
            )

    @socketio.on("create-room")
    def create_room(data):
        payload = data or {}
        name = normalize_name(payload.get("playerName"))
        if name is None:
            return _reject("Please enter your name")

        settings = directory.defaults.with_overrides(payload.get("settings"))
        if settings is None:
            return _reject("Invalid room settings")

        _leave_current_room()
        room, player = directory.create_room(request.sid, name, settings)
        join_room(room.code)

        response = {"roomCode": room.code, "player": player.private_view(), "room": room.to_dict()}
        emit("room-created", response)
        return {"ok": True, **response}

    @socketio.on("join-room")
    def join_room_event(data):
        payload = data or {}
        name = normalize_name(payload.get("playerName"))
        if name is None:
            return _reject("Please enter your name")

        room_code = _room_code(payload)
        reason = directory.join_error(room_code)
        if reason:
            return _reject(reason)

        _leave_current_room()
        result = directory.join_room(room_code, request.sid, name)
        if result is None:
            return _reject("Could not join room. Room may be full or game already in progress.")

        room, player = result
        join_room(room.code)

        players = room.roster()
        emit("player-joined", {"player": player.to_dict(), "players": players}, to=room.code, include_self=False)

        response = {"roomCode": room.code, "player": player.private_view(), "room": room.to_dict()}
        emit("joined-room", response)
        return {"ok": True, **response}

    @socketio.on("leave-room")
    def leave_room_event(data=None):
        _leave_current_room()
        return {"ok": True}

    @socketio.on("start-game")
    def start_game(data):
        room = _member_room(_room_code(data))
        if room is None:
            return _reject("Room not found")

        reason = room.request_start(request.sid)
        if reason:
            return _reject(reason)
        return {"ok": True}

    @socketio.on("submit-word")
    def submit_word(data):
        payload = data or {}
        room = _member_room(_room_code(payload))
        if room is None:
            return _reject("Room not found")

        if not room.submit_word(request.sid, payload.get("word")):
            return _reject("Cannot submit word at this time")
        return {"ok": True}

    @socketio.on("vote")
    def vote(data):
        payload = data or {}
        room = _member_room(_room_code(payload))
        if room is None:
            return _reject("Room not found")

        target_id = str(payload.get("targetPlayerId", "")).strip()
        if target_id == request.sid:
            return _reject("You cannot vote for yourself")

        if not room.vote(request.sid, target_id):
            return _reject("Cannot vote at this time")
        return {"ok": True}

    @socketio.on("reveal-next")
    def reveal_next(data):
        room = _member_room(_room_code(data))
        if room is None:
            return _reject("Room not found")

        revealed = room.reveal_next()
        if revealed is None:
            return _reject("Cannot reveal words at this time")
        return {"ok": True, **revealed}

    @socketio.on("return-to-lobby")
    def return_to_lobby(data):
        room = _member_room(_room_code(data))
        if room is None:
            return _reject("Room not found")

        if not room.return_to_lobby(request.sid):
            return _reject("Only the host can return to the lobby after a game")
        return {"ok": True, "room": room.to_dict()}

    @socketio.on("disconnect")
    def on_disconnect(*args):
        _leave_current_room()

    @socketio.on_error_default
    def on_error(exc):
        log.exception(f"Unhandled error for {request.sid}: {exc}")
        emit("error", {"message": "Something went wrong"})
        return {"ok": False, "error": "Something went wrong"}
