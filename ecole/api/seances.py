"""Single session endpoints."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from .. import seances as seance_service
from ..auth import admin_required
from ..models import SEANCE_STATUT_CHOICES
from .serializers import (
    register_models,
    seance_envelope_model,
    seance_model,
    serialize_seance,
    user_model,
)


ns = Namespace("seances", description="Update or delete a single session")
register_models(ns, user_model, seance_model, seance_envelope_model)

seance_update_model = ns.model(
    "SeanceUpdate",
    {
        "dateHeure": fields.String(description="ISO 8601"),
        "duree": fields.Integer(min=1),
        "statut": fields.String(enum=list(SEANCE_STATUT_CHOICES)),
        "notes": fields.String,
        "weekNumber": fields.Integer(min=1),
        "presentTeacherId": fields.Integer,
        "rrPossibles": fields.Boolean,
    },
)


@ns.route("/<int:seance_id>")
class SeanceResource(Resource):
    method_decorators = [admin_required]

    @ns.expect(seance_update_model)
    @ns.marshal_with(seance_envelope_model)
    def put(self, seance_id: int) -> dict[str, Any]:
        payload = request.get_json(silent=True) or {}
        seance = seance_service.update_seance(seance_id, payload)
        return {"message": "Séance mise à jour avec succès", "seance": serialize_seance(seance)}

    def delete(self, seance_id: int) -> dict[str, str]:
        seance_service.delete_seance(seance_id)
        return {"message": "Séance supprimée avec succès"}
