"""Class template edits and their propagation to future sessions."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from time import monotonic
from typing import Any, Iterable, List, Mapping, Optional

from flask import current_app

from .errors import (
    CascadeTimeout,
    ClasseUpdateError,
    EcoleError,
    NotFoundError,
    ValidationError,
)
from .extensions import db
from .models import Classe, ClasseEleve, Presence, Seance, User
from .utils import apply_heure, coerce_int, parse_heure, validate_week_numbers


TEXT_FIELDS: dict[str, str] = {
    "description": "description",
    "level": "level",
    "typeCours": "type_cours",
    "location": "location",
    "salle": "salle",
}


@dataclass
class ClasseUpdate:
    """Validated partial update of a class.

    ``None`` means "field absent from the request"; text fields are kept in
    ``texts`` because ``None`` is a legitimate value for them.
    """

    nom: Optional[str] = None
    texts: dict[str, Optional[str]] = field(default_factory=dict)
    teacher_id: Optional[int] = None
    duree_seance: Optional[int] = None
    semaines: Optional[List[int]] = None
    jour_semaine: Optional[int] = None
    jour_semaine_set: bool = False
    heure_debut: Optional[time] = None
    heure_debut_set: bool = False
    rr_possibles: Optional[bool] = None
    is_recuperation: Optional[bool] = None
    eleve_ids: Optional[List[int]] = None


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Valeur texte attendue")
    value = value.strip()
    return value or None


def parse_classe_update(payload: Mapping[str, Any]) -> ClasseUpdate:
    """Validate a camelCase class payload before anything is written."""

    update = ClasseUpdate()
    if payload.get("nom"):
        update.nom = _clean_text(payload["nom"])
    for key, attribute in TEXT_FIELDS.items():
        if key in payload:
            update.texts[attribute] = _clean_text(payload[key])
    if payload.get("teacherId"):
        update.teacher_id = coerce_int(payload["teacherId"], "L'enseignant")
    if payload.get("dureeSeance"):
        duree = coerce_int(payload["dureeSeance"], "La durée de séance")
        if duree <= 0:
            raise ValidationError("La durée de séance doit être positive")
        update.duree_seance = duree
    # An empty list is a legitimate template: it clears every week.
    if payload.get("semainesSeances") is not None:
        update.semaines = validate_week_numbers(payload["semainesSeances"])
    if "jourSemaine" in payload:
        update.jour_semaine_set = True
        if payload["jourSemaine"] is not None:
            jour = coerce_int(payload["jourSemaine"], "Le jour de la semaine")
            if not 0 <= jour <= 6:
                raise ValidationError(
                    "Le jour de la semaine doit être entre 0 (dimanche) et 6 (samedi)"
                )
            update.jour_semaine = jour
    if "heureDebut" in payload:
        update.heure_debut_set = True
        if payload["heureDebut"]:
            update.heure_debut = parse_heure(payload["heureDebut"])
    if payload.get("rrPossibles") is not None:
        update.rr_possibles = bool(payload["rrPossibles"])
    if payload.get("isRecuperation") is not None:
        update.is_recuperation = bool(payload["isRecuperation"])
    if "eleveIds" in payload:
        raw_ids = payload["eleveIds"] or []
        if not isinstance(raw_ids, (list, tuple)):
            raise ValidationError("eleveIds doit être une liste")
        # Duplicates would violate the enrollment unique constraint.
        update.eleve_ids = list(dict.fromkeys(coerce_int(value, "eleveIds") for value in raw_ids))
    return update


class _Deadline:
    def __init__(self, seconds: float) -> None:
        self.expires_at = monotonic() + seconds

    def check(self) -> None:
        if monotonic() > self.expires_at:
            raise CascadeTimeout()


def _apply_classe_fields(classe: Classe, update: ClasseUpdate) -> None:
    if update.nom:
        classe.nom = update.nom
    for attribute, value in update.texts.items():
        setattr(classe, attribute, value)
    if update.teacher_id is not None:
        classe.teacher_id = update.teacher_id
    if update.duree_seance is not None:
        classe.duree_seance = update.duree_seance
    if update.semaines is not None:
        classe.semaines = update.semaines
    if update.jour_semaine_set:
        classe.jour_semaine = update.jour_semaine
    if update.heure_debut_set:
        classe.heure_debut = (
            update.heure_debut.strftime("%H:%M") if update.heure_debut else None
        )
    if update.rr_possibles is not None:
        classe.rr_possibles = update.rr_possibles
    if update.is_recuperation is not None:
        classe.is_recuperation = update.is_recuperation


def _replace_enrollments(classe_id: int, eleve_ids: Iterable[int]) -> None:
    ClasseEleve.query.filter(ClasseEleve.classe_id == classe_id).delete(
        synchronize_session="fetch"
    )
    db.session.add_all(
        ClasseEleve(classe_id=classe_id, eleve_id=eleve_id) for eleve_id in eleve_ids
    )
    db.session.flush()


def _bulk_set(seance_ids: List[int], values: dict) -> None:
    Seance.query.filter(Seance.id.in_(seance_ids)).update(
        values, synchronize_session="fetch"
    )


def reconcile_presences(seance_id: int, eleve_ids: Iterable[int]) -> tuple[int, int]:
    """Align the presence rows of one session with an enrollment set.

    Returns ``(added, removed)``. Retained students keep their row and its
    recorded status.
    """

    target = list(dict.fromkeys(eleve_ids))
    target_set = set(target)
    current_ids = {
        eleve_id
        for (eleve_id,) in db.session.query(Presence.eleve_id).filter(
            Presence.seance_id == seance_id
        )
    }
    to_add = [eleve_id for eleve_id in target if eleve_id not in current_ids]
    to_delete = [eleve_id for eleve_id in current_ids if eleve_id not in target_set]
    if to_add:
        db.session.add_all(
            Presence(seance_id=seance_id, eleve_id=eleve_id, statut="no_status")
            for eleve_id in to_add
        )
    if to_delete:
        Presence.query.filter(
            Presence.seance_id == seance_id, Presence.eleve_id.in_(to_delete)
        ).delete(synchronize_session="fetch")
    db.session.flush()
    return len(to_add), len(to_delete)


def _cascade(
    classe: Classe,
    update: ClasseUpdate,
    now: datetime,
    deadline: _Deadline,
) -> int:
    _apply_classe_fields(classe, update)
    db.session.flush()

    if update.eleve_ids is not None:
        _replace_enrollments(classe.id, update.eleve_ids)
    deadline.check()

    # Computed once and reused by every step below.
    future_seances: list[Seance] = (
        Seance.query.filter(Seance.classe_id == classe.id, Seance.date_heure >= now)
        .order_by(Seance.date_heure)
        .all()
    )
    if not future_seances:
        return 0
    future_ids = [seance.id for seance in future_seances]

    if update.rr_possibles is not None:
        _bulk_set(future_ids, {Seance.rr_possibles: update.rr_possibles})
    if update.duree_seance is not None:
        _bulk_set(future_ids, {Seance.duree: update.duree_seance})
    if update.teacher_id is not None:
        _bulk_set(future_ids, {Seance.present_teacher_id: update.teacher_id})
    deadline.check()

    if update.heure_debut is not None:
        for seance in future_seances:
            seance.date_heure = apply_heure(seance.date_heure, update.heure_debut)
        db.session.flush()
        deadline.check()

    if update.eleve_ids is not None:
        for seance in future_seances:
            reconcile_presences(seance.id, update.eleve_ids)
            deadline.check()

    return len(future_seances)


def update_classe(
    classe_id: int,
    payload: Mapping[str, Any],
    *,
    now: datetime | None = None,
    timeout: float | None = None,
) -> Classe:
    """Apply ``payload`` to a class and cascade it to its future sessions.

    Everything happens in a single transaction: on any failure, including
    the timeout, nothing is kept and :class:`ClasseUpdateError` is raised.
    Past sessions (``date_heure < now``) are never modified.
    """

    update = parse_classe_update(payload)
    classe = db.session.get(Classe, classe_id)
    if classe is None:
        raise NotFoundError("Classe non trouvée")
    if update.teacher_id is not None and db.session.get(User, update.teacher_id) is None:
        raise NotFoundError("Enseignant non trouvé")

    if now is None:
        now = datetime.now()
    if timeout is None:
        timeout = current_app.config.get("CASCADE_TIMEOUT_SECONDS", 30)

    try:
        touched = _cascade(classe, update, now, _Deadline(timeout))
        db.session.commit()
    except CascadeTimeout:
        db.session.rollback()
        current_app.logger.error(
            "Class %s update exceeded %ss, rolled back", classe_id, timeout
        )
        raise ClasseUpdateError() from None
    except EcoleError:
        db.session.rollback()
        raise
    except Exception as exc:
        db.session.rollback()
        current_app.logger.exception("Class %s update failed", classe_id)
        raise ClasseUpdateError() from exc

    current_app.logger.info(
        "Class %s updated, %s future session(s) cascaded", classe_id, touched
    )
    return classe
