"""Room roster."""
from __future__ import annotations

from typing import Any

from flask_restx import Namespace, Resource

from ..models import Facility, Room
from .common import envelope


ns = Namespace("rooms", description="Rooms grouped by facility")


def serialize_room(room: Room) -> dict[str, Any]:
    return {
        "id": room.id,
        "name": room.name,
        "facility_id": room.facility_id,
        "facility_name": room.facility.name if room.facility else None,
        "display_name": room.display_name,
    }


@ns.route("")
class RoomList(Resource):
    def get(self) -> tuple[dict[str, Any], int]:
        rooms = Room.query.join(Facility).order_by(Facility.name, Room.name).all()
        return envelope([serialize_room(room) for room in rooms])
