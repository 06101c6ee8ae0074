"""Replacement request endpoints."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from .. import replacements
from ..auth import admin_required, login_required
from ..models import RRStatus
from .serializers import (
    classe_ref_model,
    eleve_model,
    register_models,
    rr_model,
    rr_seance_model,
)


ns = Namespace("rr", description="Replacement requests between two sessions")
register_models(ns, eleve_model, classe_ref_model, rr_seance_model, rr_model)

rr_create_model = ns.model(
    "RRInput",
    {
        "eleveId": fields.Integer(required=True),
        "originSeanceId": fields.Integer(required=True),
        "destinationSeanceId": fields.Integer(required=True),
        "notes": fields.String,
        "rrType": fields.String(default="same_week"),
        "penalizeRR": fields.Boolean(default=True),
    },
)

rr_update_model = ns.model(
    "RRUpdate",
    {
        "status": fields.String(enum=RRStatus.values()),
        "notes": fields.String,
    },
)

rr_envelope_model = ns.model(
    "RREnvelope",
    {"message": fields.String, "rr": fields.Nested(rr_model)},
)


@ns.route("")
class RRList(Resource):
    @login_required
    @ns.marshal_list_with(rr_model)
    def get(self) -> list[dict[str, Any]]:
        return [replacements.rr_summary(rr) for rr in replacements.list_rrs()]

    @admin_required
    @ns.expect(rr_create_model)
    @ns.marshal_with(rr_envelope_model, code=201)
    def post(self) -> tuple[dict[str, Any], int]:
        payload = request.get_json(silent=True) or {}
        rr = replacements.create_rr(
            payload.get("eleveId"),
            payload.get("originSeanceId"),
            payload.get("destinationSeanceId"),
            notes=payload.get("notes"),
            rr_type=payload.get("rrType"),
            penalize_rr=payload.get("penalizeRR"),
        )
        return {"message": "Demande de remplacement créée", "rr": replacements.rr_summary(rr)}, 201


@ns.route("/<int:rr_id>")
class RRResource(Resource):
    @login_required
    @ns.marshal_with(rr_model)
    def get(self, rr_id: int) -> dict[str, Any]:
        return replacements.rr_summary(replacements.get_rr(rr_id))

    @admin_required
    @ns.expect(rr_update_model)
    @ns.marshal_with(rr_envelope_model)
    def put(self, rr_id: int) -> dict[str, Any]:
        payload = request.get_json(silent=True) or {}
        rr = replacements.update_rr(
            rr_id,
            status=payload.get("status"),
            notes=payload["notes"] if "notes" in payload else ...,
        )
        return {"message": "Demande de remplacement mise à jour", "rr": replacements.rr_summary(rr)}

    @admin_required
    @ns.marshal_with(rr_envelope_model)
    def delete(self, rr_id: int) -> dict[str, Any]:
        summary = replacements.delete_rr(rr_id)
        return {"message": "Demande de remplacement supprimée", "rr": summary}
