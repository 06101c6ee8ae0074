"""Class endpoints, including session generation and cascading edits."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from .. import classes as classe_service
from .. import seances as seance_service
from ..auth import admin_required
from ..cascade import update_classe
from ..generation import generate_seances
from .serializers import (
    register_models,
    seance_envelope_model,
    seance_model,
    serialize_classe,
    serialize_seance,
    user_model,
)


ns = Namespace("classes", description="Classes, their sessions and their students")
register_models(ns, user_model, seance_model, seance_envelope_model)

classe_model = ns.model(
    "ClasseInput",
    {
        "nom": fields.String(required=True),
        "description": fields.String,
        "level": fields.String,
        "typeCours": fields.String,
        "location": fields.String,
        "salle": fields.String,
        "teacherId": fields.Integer(required=True),
        "dureeSeance": fields.Integer(required=True, min=1, description="Minutes"),
        "semainesSeances": fields.List(fields.Integer, required=True),
        "jourSemaine": fields.Integer(min=0, max=6, description="0 = dimanche"),
        "heureDebut": fields.String(description="HH:MM"),
        "rrPossibles": fields.Boolean,
        "isRecuperation": fields.Boolean,
        "eleveIds": fields.List(fields.Integer),
    },
)

generation_model = ns.model(
    "GenerationInput",
    {
        "annee": fields.Integer(required=True, min=2000, max=2100),
        "jourSemaine": fields.Integer(min=1, max=7, description="1 = lundi, 7 = dimanche"),
        "heureDebut": fields.String(description="HH:MM"),
    },
)

seance_input_model = ns.model(
    "SeanceInput",
    {
        "dateHeure": fields.String(required=True, description="ISO 8601"),
        "duree": fields.Integer(min=1),
        "notes": fields.String,
        "presentTeacherId": fields.Integer,
        "weekNumber": fields.Integer(min=1),
        "rrPossibles": fields.Boolean,
    },
)


def _payload() -> dict[str, Any]:
    return request.get_json(silent=True) or {}


@ns.route("")
class ClasseList(Resource):
    method_decorators = [admin_required]

    def get(self) -> list[dict[str, Any]]:
        return [serialize_classe(classe) for classe in classe_service.list_classes()]

    @ns.expect(classe_model)
    def post(self) -> tuple[dict[str, Any], int]:
        classe = classe_service.create_classe(_payload())
        return {"message": "Classe créée avec succès", "class": serialize_classe(classe)}, 201


@ns.route("/<int:classe_id>")
class ClasseResource(Resource):
    method_decorators = [admin_required]

    def get(self, classe_id: int) -> dict[str, Any]:
        return serialize_classe(classe_service.get_classe(classe_id))

    @ns.expect(classe_model)
    def put(self, classe_id: int) -> dict[str, Any]:
        update_classe(classe_id, _payload())
        classe = classe_service.get_classe(classe_id)
        return {"message": "Classe mise à jour avec succès", "class": serialize_classe(classe)}

    def delete(self, classe_id: int) -> dict[str, str]:
        classe_service.delete_classe(classe_id)
        return {"message": "Classe supprimée avec succès"}


@ns.route("/<int:classe_id>/generate-seances")
class SeanceGeneration(Resource):
    method_decorators = [admin_required]

    @ns.expect(generation_model)
    def post(self, classe_id: int) -> dict[str, Any]:
        payload = _payload()
        result = generate_seances(
            classe_id,
            payload.get("annee"),
            jour_semaine=payload.get("jourSemaine"),
            heure_debut=payload.get("heureDebut"),
        )
        return {
            "message": f"{result.count} séances générées avec succès",
            "count": result.count,
            "skipped": result.skipped,
        }


@ns.route("/<int:classe_id>/seances")
class ClasseSeanceList(Resource):
    method_decorators = [admin_required]

    @ns.marshal_list_with(seance_model)
    def get(self, classe_id: int) -> list[dict[str, Any]]:
        return [serialize_seance(seance) for seance in seance_service.list_seances(classe_id)]

    @ns.expect(seance_input_model)
    @ns.marshal_with(seance_envelope_model, code=201)
    def post(self, classe_id: int) -> tuple[dict[str, Any], int]:
        seance = seance_service.create_seance(classe_id, _payload())
        return {"message": "Séance créée avec succès", "seance": serialize_seance(seance)}, 201
