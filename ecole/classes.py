from __future__ import annotations

from typing import Any, List, Mapping

from flask import current_app
from sqlalchemy.orm import selectinload

from .cascade import parse_classe_update
from .errors import NotFoundError, ValidationError
from .extensions import db
from .models import Classe, ClasseEleve, Seance, User


def _classe_query():
    return Classe.query.options(
        selectinload(Classe.teacher),
        selectinload(Classe.eleves).selectinload(ClasseEleve.eleve),
        selectinload(Classe.seances).selectinload(Seance.present_teacher),
        selectinload(Classe.seances).selectinload(Seance.presences),
    )


def list_classes() -> List[Classe]:
    return _classe_query().order_by(Classe.nom).all()


def get_classe(classe_id: int) -> Classe:
    classe = _classe_query().filter(Classe.id == classe_id).first()
    if classe is None:
        raise NotFoundError("Classe non trouvée")
    return classe


def create_classe(payload: Mapping[str, Any]) -> Classe:
    if not isinstance(payload.get("nom"), str) or not payload["nom"].strip():
        raise ValidationError("Le nom de la classe est requis")
    if not payload.get("teacherId"):
        raise ValidationError("Un enseignant doit être assigné")
    if not payload.get("dureeSeance"):
        raise ValidationError("La durée de séance doit être positive")
    if not isinstance(payload.get("semainesSeances"), list):
        raise ValidationError("Les semaines de séances doivent être spécifiées")
    update = parse_classe_update(payload)

    if db.session.get(User, update.teacher_id) is None:
        raise ValidationError("Enseignant non trouvé")

    classe = Classe(
        nom=update.nom,
        teacher_id=update.teacher_id,
        duree_seance=update.duree_seance,
        jour_semaine=update.jour_semaine,
        heure_debut=update.heure_debut.strftime("%H:%M") if update.heure_debut else None,
        rr_possibles=bool(update.rr_possibles),
        is_recuperation=bool(update.is_recuperation),
        **update.texts,
    )
    classe.semaines = update.semaines or []
    try:
        db.session.add(classe)
        db.session.flush()
        db.session.add_all(
            ClasseEleve(classe_id=classe.id, eleve_id=eleve_id)
            for eleve_id in update.eleve_ids or []
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Class creation failed")
        raise
    return get_classe(classe.id)


def delete_classe(classe_id: int) -> None:
    classe = db.session.get(Classe, classe_id)
    if classe is None:
        raise NotFoundError("Classe non trouvée")
    db.session.delete(classe)
    db.session.commit()
