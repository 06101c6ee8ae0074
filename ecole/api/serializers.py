"""JSON representations shared by the API namespaces.

The ``*_model`` definitions describe the same shapes for flask-restx; a
namespace marshalling with them registers them through :func:`register_models`.
"""
from __future__ import annotations

from typing import Any

from flask_restx import Model, Namespace, fields

from ..models import (
    DEST_STATUT_CHOICES,
    SEANCE_STATUT_CHOICES,
    Classe,
    Eleve,
    Presence,
    RRStatus,
    Seance,
    User,
)


user_model = Model(
    "User",
    {
        "id": fields.Integer,
        "nom": fields.String,
        "prenom": fields.String,
        "email": fields.String,
    },
)

eleve_model = Model(
    "Eleve",
    {"id": fields.Integer, "nom": fields.String, "prenom": fields.String},
)

seance_model = Model(
    "Seance",
    {
        "id": fields.Integer,
        "classeId": fields.Integer,
        "dateHeure": fields.String(description="ISO 8601, local time"),
        "duree": fields.Integer(description="Minutes"),
        "statut": fields.String(enum=list(SEANCE_STATUT_CHOICES)),
        "notes": fields.String,
        "weekNumber": fields.Integer,
        "rrPossibles": fields.Boolean,
        "actif": fields.Boolean,
        "presentTeacherId": fields.Integer,
        "presentTeacher": fields.Nested(user_model, allow_null=True),
    },
)

seance_envelope_model = Model(
    "SeanceEnvelope",
    {"message": fields.String, "seance": fields.Nested(seance_model)},
)

classe_ref_model = Model("ClasseRef", {"id": fields.Integer, "nom": fields.String})

rr_seance_model = Model(
    "RRSeance",
    {
        "id": fields.Integer,
        "dateHeure": fields.String,
        "weekNumber": fields.Integer,
        "classe": fields.Nested(classe_ref_model, allow_null=True),
    },
)

rr_model = Model(
    "ReplacementRequest",
    {
        "id": fields.Integer,
        "eleveId": fields.Integer,
        "originSeanceId": fields.Integer,
        "destinationSeanceId": fields.Integer,
        "status": fields.String(enum=RRStatus.values()),
        "destStatut": fields.String(enum=list(DEST_STATUT_CHOICES)),
        "rrType": fields.String,
        "penalizeRR": fields.Boolean,
        "notes": fields.String,
        "createdAt": fields.String,
        "updatedAt": fields.String,
        "eleve": fields.Nested(eleve_model, allow_null=True),
        "originSeance": fields.Nested(rr_seance_model, allow_null=True),
        "destinationSeance": fields.Nested(rr_seance_model, allow_null=True),
    },
)


def register_models(ns: Namespace, *models: Model) -> None:
    for model in models:
        ns.add_model(model.name, model)


def serialize_user(user: User | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {"id": user.id, "nom": user.nom, "prenom": user.prenom, "email": user.email}


def serialize_eleve(eleve: Eleve | None) -> dict[str, Any] | None:
    if eleve is None:
        return None
    return {"id": eleve.id, "nom": eleve.nom, "prenom": eleve.prenom}


def serialize_presence(presence: Presence, *, with_eleve: bool = True) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": presence.id,
        "seanceId": presence.seance_id,
        "eleveId": presence.eleve_id,
        "statut": presence.statut,
        "notes": presence.notes,
    }
    if with_eleve:
        payload["eleve"] = serialize_eleve(presence.eleve)
    return payload


def serialize_seance(
    seance: Seance,
    *,
    with_presences: bool = False,
    presence_details: bool = True,
    with_classe: bool = False,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": seance.id,
        "classeId": seance.classe_id,
        "dateHeure": seance.date_heure.isoformat(),
        "duree": seance.duree,
        "statut": seance.statut,
        "notes": seance.notes,
        "weekNumber": seance.week_number,
        "rrPossibles": seance.rr_possibles,
        "actif": seance.actif,
        "presentTeacherId": seance.present_teacher_id,
        "presentTeacher": serialize_user(seance.present_teacher),
    }
    if with_presences:
        payload["presences"] = [
            serialize_presence(presence, with_eleve=presence_details)
            for presence in seance.presences
        ]
    if with_classe:
        classe = seance.classe
        payload["classe"] = {
            "id": classe.id,
            "nom": classe.nom,
            "level": classe.level,
            "typeCours": classe.type_cours,
            "location": classe.location,
            "salle": classe.salle,
            "teacher": serialize_user(classe.teacher),
            "eleves": [
                {"eleveId": inscription.eleve_id, "eleve": serialize_eleve(inscription.eleve)}
                for inscription in classe.eleves
            ],
        }
    return payload


def serialize_classe(classe: Classe) -> dict[str, Any]:
    return {
        "id": classe.id,
        "nom": classe.nom,
        "description": classe.description,
        "level": classe.level,
        "typeCours": classe.type_cours,
        "location": classe.location,
        "salle": classe.salle,
        "teacherId": classe.teacher_id,
        "dureeSeance": classe.duree_seance,
        "semainesSeances": classe.semaines,
        "jourSemaine": classe.jour_semaine,
        "heureDebut": classe.heure_debut,
        "rrPossibles": classe.rr_possibles,
        "isRecuperation": classe.is_recuperation,
        "teacher": serialize_user(classe.teacher),
        "eleves": [
            {"eleveId": inscription.eleve_id, "eleve": serialize_eleve(inscription.eleve)}
            for inscription in classe.eleves
        ],
        "seances": [
            serialize_seance(seance, with_presences=True, presence_details=False)
            for seance in classe.seances
        ],
    }
