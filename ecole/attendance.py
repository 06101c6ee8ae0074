from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, List, Mapping

from flask import current_app
from sqlalchemy.orm import selectinload

from .errors import NotFoundError, ValidationError
from .extensions import db
from .models import PRESENCE_STATUT_CHOICES, Classe, ClasseEleve, Presence, Seance
from .replacements import ensure_presence, sync_dest_statut
from .utils import coerce_int, sunday_based_weekday, validate_year


def validate_statut(statut: Any, eleve_id: int | None = None) -> str:
    if statut not in PRESENCE_STATUT_CHOICES:
        suffix = f" pour l'élève {eleve_id}" if eleve_id is not None else ""
        raise ValidationError(
            f"Statut invalide{suffix}. Doit être : " + ", ".join(PRESENCE_STATUT_CHOICES)
        )
    return statut


def _seance_options():
    return (
        selectinload(Seance.classe)
        .selectinload(Classe.eleves)
        .selectinload(ClasseEleve.eleve),
        selectinload(Seance.presences).selectinload(Presence.eleve),
        selectinload(Seance.present_teacher),
    )


def get_seance(seance_id: int) -> Seance:
    seance = (
        Seance.query.options(*_seance_options()).filter(Seance.id == seance_id).first()
    )
    if seance is None:
        raise NotFoundError("Séance non trouvée")
    return seance


def update_presence(presence_id: int, statut: Any, notes: Any = None) -> Presence:
    statut = validate_statut(statut)
    presence = db.session.get(Presence, presence_id)
    if presence is None:
        raise NotFoundError("Présence non trouvée")
    presence.statut = statut
    presence.notes = notes or None
    sync_dest_statut(presence.seance_id, presence.eleve_id, statut)
    db.session.commit()
    return presence


def bulk_update_presences(
    seance_id: int, attendances: Iterable[Mapping[str, Any]]
) -> List[Presence]:
    """Upsert the presences of a session from ``{eleveId, statut, notes}`` items.

    Every item is validated before the first write.
    """

    if not isinstance(attendances, list):
        raise ValidationError("attendances doit être un tableau")
    items: list[tuple[int, str, Any]] = []
    for entry in attendances:
        if not isinstance(entry, Mapping):
            raise ValidationError("Chaque présence doit être un objet")
        eleve_id = coerce_int(entry.get("eleveId"), "eleveId")
        items.append((eleve_id, validate_statut(entry.get("statut"), eleve_id), entry.get("notes")))

    seance = db.session.get(Seance, seance_id)
    if seance is None:
        raise NotFoundError("Séance non trouvée")

    results: list[Presence] = []
    try:
        for eleve_id, statut, notes in items:
            presence = ensure_presence(seance.id, eleve_id)
            presence.statut = statut
            presence.notes = notes or None
            sync_dest_statut(seance.id, eleve_id, statut)
            results.append(presence)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Bulk attendance update failed for session %s", seance_id)
        raise
    return results


def seances_for_week(start: date) -> List[Seance]:
    begin = datetime.combine(start, time())
    end = begin + timedelta(days=7)
    return (
        Seance.query.options(*_seance_options())
        .filter(Seance.date_heure >= begin, Seance.date_heure < end)
        .order_by(Seance.date_heure)
        .all()
    )


def _year_bounds(year: int) -> tuple[datetime, datetime]:
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


def toggle_seance(seance_id: Any, actif: Any = None) -> Seance:
    """Show or hide a session on the calendar; ``None`` means show."""

    if not seance_id:
        raise ValidationError("seanceId est requis")
    seance = db.session.get(Seance, coerce_int(seance_id, "seanceId"))
    if seance is None:
        raise NotFoundError("Séance non trouvée")
    seance.actif = True if actif is None else bool(actif)
    db.session.commit()
    return seance


def reset_calendar(annee: Any) -> int:
    """Hide every session of a year; returns how many rows were touched."""

    year = validate_year(annee)
    start, end = _year_bounds(year)
    updated = Seance.query.filter(
        Seance.date_heure >= start, Seance.date_heure < end
    ).update({Seance.actif: False}, synchronize_session="fetch")
    db.session.commit()
    current_app.logger.info("Calendar %s reset, %s session(s) hidden", year, updated)
    return updated


def calendar_weeks(annee: Any) -> tuple[int, list[dict[str, Any]]]:
    """Group the sessions of a year by week, weeks starting on Sunday."""

    year = validate_year(annee)
    start, end = _year_bounds(year)
    seances = (
        Seance.query.options(selectinload(Seance.classe))
        .filter(Seance.date_heure >= start, Seance.date_heure < end)
        .order_by(Seance.date_heure)
        .all()
    )
    weeks: "OrderedDict[date, list[Seance]]" = OrderedDict()
    for seance in seances:
        day = seance.date_heure.date()
        week_start = day - timedelta(days=sunday_based_weekday(day))
        weeks.setdefault(week_start, []).append(seance)
    return year, [
        {"weekStart": week_start.isoformat(), "seances": items}
        for week_start, items in weeks.items()
    ]
