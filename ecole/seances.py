from __future__ import annotations

from bisect import bisect_left
from typing import Any, List, Mapping

from flask import current_app
from sqlalchemy.exc import IntegrityError

from .errors import ConflictError, NotFoundError, ValidationError
from .extensions import db
from .models import SEANCE_STATUT_CHOICES, Classe, Presence, Seance, User
from .utils import coerce_int, parse_iso_datetime


def list_seances(classe_id: int) -> List[Seance]:
    return (
        Seance.query.filter(Seance.classe_id == classe_id)
        .order_by(Seance.date_heure)
        .all()
    )


def _positive_int(value: Any, label: str) -> int:
    number = coerce_int(value, label)
    if number <= 0:
        raise ValidationError(f"{label} doit être positif")
    return number


def _teacher_id(value: Any) -> int | None:
    if not value:
        return None
    teacher_id = coerce_int(value, "L'enseignant présent")
    if db.session.get(User, teacher_id) is None:
        raise NotFoundError("Enseignant non trouvé")
    return teacher_id


def chronological_position(classe_id: int, date_heure) -> int:
    """1-based rank ``date_heure`` would take among the class's sessions."""

    existing = [
        moment
        for (moment,) in db.session.query(Seance.date_heure)
        .filter(Seance.classe_id == classe_id)
        .order_by(Seance.date_heure)
    ]
    return bisect_left(existing, date_heure) + 1


def _shift_week_numbers(classe_id: int, date_heure) -> int:
    """Make room for a session inserted at ``date_heure``.

    Later sessions move one rank down so computed week numbers stay unique
    and increasing with the date.
    """

    return Seance.query.filter(
        Seance.classe_id == classe_id,
        Seance.date_heure > date_heure,
        Seance.week_number.isnot(None),
    ).update({Seance.week_number: Seance.week_number + 1}, synchronize_session="fetch")


def create_seance(classe_id: int, payload: Mapping[str, Any]) -> Seance:
    """Create one session by hand, defaults taken from the class template."""

    date_heure = parse_iso_datetime(payload.get("dateHeure"))
    classe = db.session.get(Classe, classe_id)
    if classe is None:
        raise NotFoundError("Classe non trouvée")

    duree = payload.get("duree")
    duree = _positive_int(duree, "La durée") if duree else classe.duree_seance or 60
    rr_possibles = payload.get("rrPossibles")
    week_number = payload.get("weekNumber")
    renumber = not week_number
    if renumber:
        week_number = chronological_position(classe.id, date_heure)
    else:
        week_number = _positive_int(week_number, "Le numéro de semaine")

    seance = Seance(
        classe_id=classe.id,
        date_heure=date_heure,
        duree=duree,
        notes=payload.get("notes") or None,
        rr_possibles=bool(classe.rr_possibles if rr_possibles is None else rr_possibles),
        week_number=week_number,
        present_teacher_id=_teacher_id(payload.get("presentTeacherId")),
    )
    try:
        if renumber:
            _shift_week_numbers(classe.id, date_heure)
        db.session.add(seance)
        db.session.flush()
        db.session.add_all(
            Presence(seance_id=seance.id, eleve_id=eleve_id, statut="no_status")
            for eleve_id in sorted(classe.eleve_ids())
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Une séance existe déjà à cette date pour cette classe") from None
    current_app.logger.info(
        "Session %s created for class %s at rank %s", seance.id, classe.id, week_number
    )
    return seance


def update_seance(seance_id: int, payload: Mapping[str, Any]) -> Seance:
    values: dict[str, Any] = {}
    if payload.get("dateHeure"):
        values["date_heure"] = parse_iso_datetime(payload["dateHeure"])
    if payload.get("duree"):
        values["duree"] = _positive_int(payload["duree"], "La durée")
    if payload.get("statut"):
        if payload["statut"] not in SEANCE_STATUT_CHOICES:
            raise ValidationError(
                "Statut invalide. Doit être : " + ", ".join(SEANCE_STATUT_CHOICES)
            )
        values["statut"] = payload["statut"]
    if "notes" in payload:
        values["notes"] = payload["notes"] or None
    if payload.get("weekNumber") is not None:
        values["week_number"] = _positive_int(payload["weekNumber"], "Le numéro de semaine")
    if "presentTeacherId" in payload:
        values["present_teacher_id"] = _teacher_id(payload["presentTeacherId"])
    if payload.get("rrPossibles") is not None:
        values["rr_possibles"] = bool(payload["rrPossibles"])

    seance = db.session.get(Seance, seance_id)
    if seance is None:
        raise NotFoundError("Séance non trouvée")
    for attribute, value in values.items():
        setattr(seance, attribute, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Une séance existe déjà à cette date pour cette classe") from None
    return seance


def delete_seance(seance_id: int) -> None:
    seance = db.session.get(Seance, seance_id)
    if seance is None:
        raise NotFoundError("Séance non trouvée")
    db.session.delete(seance)
    db.session.commit()
