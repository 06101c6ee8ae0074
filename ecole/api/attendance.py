"""Attendance endpoints: per-session roster, presence updates and calendars."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from .. import attendance as attendance_service
from ..auth import admin_required
from ..models import PRESENCE_STATUT_CHOICES
from ..replacements import rr_map_for_seance
from ..utils import parse_date
from .serializers import (
    register_models,
    seance_envelope_model,
    seance_model,
    serialize_presence,
    serialize_seance,
    user_model,
)


ns = Namespace("attendance", description="Attendance records")
register_models(ns, user_model, seance_model, seance_envelope_model)

presence_model = ns.model(
    "PresenceInput",
    {
        "statut": fields.String(
            required=True, enum=list(PRESENCE_STATUT_CHOICES)
        ),
        "notes": fields.String,
    },
)

bulk_item_model = ns.inherit(
    "BulkPresenceInput", presence_model, {"eleveId": fields.Integer(required=True)}
)

bulk_model = ns.model(
    "BulkAttendanceInput",
    {"attendances": fields.List(fields.Nested(bulk_item_model), required=True)},
)


@ns.route("/seances/<int:seance_id>")
class SeanceAttendance(Resource):
    method_decorators = [admin_required]

    def get(self, seance_id: int) -> dict[str, Any]:
        seance = attendance_service.get_seance(seance_id)
        payload = serialize_seance(seance, with_presences=True, with_classe=True)
        payload["rrMap"] = rr_map_for_seance(seance.id)
        return payload

    @ns.expect(bulk_model)
    def put(self, seance_id: int) -> dict[str, Any]:
        payload = request.get_json(silent=True) or {}
        presences = attendance_service.bulk_update_presences(
            seance_id, payload.get("attendances")
        )
        return {
            "message": f"{len(presences)} présences mises à jour",
            "attendances": [serialize_presence(presence) for presence in presences],
        }


@ns.route("/<int:presence_id>")
class PresenceResource(Resource):
    method_decorators = [admin_required]

    @ns.expect(presence_model)
    def put(self, presence_id: int) -> dict[str, Any]:
        payload = request.get_json(silent=True) or {}
        presence = attendance_service.update_presence(
            presence_id, payload.get("statut"), payload.get("notes")
        )
        return serialize_presence(presence)


@ns.route("/week/<string:start_date>")
class WeekAttendance(Resource):
    method_decorators = [admin_required]

    def get(self, start_date: str) -> list[dict[str, Any]]:
        seances = attendance_service.seances_for_week(parse_date(start_date))
        return [
            serialize_seance(seance, with_presences=True, with_classe=True)
            for seance in seances
        ]


@ns.route("/calendar/<string:year>")
class YearCalendar(Resource):
    method_decorators = [admin_required]

    def get(self, year: str) -> dict[str, Any]:
        annee, weeks = attendance_service.calendar_weeks(year)
        return {
            "year": annee,
            "weeks": [
                {
                    "weekStart": week["weekStart"],
                    "seances": [serialize_seance(seance) for seance in week["seances"]],
                }
                for week in weeks
            ],
        }


toggle_model = ns.model(
    "CalendarToggle",
    {
        "seanceId": fields.Integer(required=True),
        "actif": fields.Boolean(description="Absent means visible"),
    },
)


@ns.route("/calendar/toggle")
class CalendarToggle(Resource):
    method_decorators = [admin_required]

    @ns.expect(toggle_model)
    @ns.marshal_with(seance_envelope_model)
    def put(self) -> dict[str, Any]:
        payload = request.get_json(silent=True) or {}
        seance = attendance_service.toggle_seance(payload.get("seanceId"), payload.get("actif"))
        return {"message": "Séance basculée", "seance": serialize_seance(seance)}


@ns.route("/calendar/reset/<string:year>")
class CalendarReset(Resource):
    method_decorators = [admin_required]

    def post(self, year: str) -> dict[str, Any]:
        updated = attendance_service.reset_calendar(year)
        return {"message": "Calendrier réinitialisé", "updated": updated}
