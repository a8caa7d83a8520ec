from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game.directory import RoomDirectory

bp = Blueprint("rooms", __name__)


def _directory() -> RoomDirectory:
    return current_app.extensions["wrongfruit"]


@bp.get("/rooms")
def list_rooms():
    rooms = []
    for room in _directory().list_rooms():
        with room.lock:
            rooms.append(
                {
                    "code": room.code,
                    "phase": room.phase,
                    "players": room.player_count,
                    "maxPlayers": room.settings.max_players,
                }
            )
    return jsonify({"rooms": rooms})


@bp.get("/rooms/<code>")
def get_room(code: str):
    room = _directory().get_room(code)
    if not room:
        return jsonify({"error": "room_not_found"}), 404
    return jsonify(room.to_dict())
