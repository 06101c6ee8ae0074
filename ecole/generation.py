from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Sequence

from flask import current_app
from sqlalchemy.exc import IntegrityError

from .errors import NotFoundError, ValidationError
from .extensions import db
from .models import Classe, Presence, Seance
from .utils import (
    apply_heure,
    coerce_int,
    generation_day_from_classe_day,
    parse_heure,
    sunday_based_weekday,
    validate_year,
)


@dataclass(frozen=True)
class PlannedSeance:
    date_heure: datetime
    duree: int
    week_number: int


@dataclass
class GenerationResult:
    classe_id: int
    created: List[Seance]
    skipped: int = 0

    @property
    def count(self) -> int:
        return len(self.created)


def first_week_anchor(annee: int) -> date:
    """Return the Monday that opens week 1 of ``annee``.

    This is the first Monday on or after January 1st.
    """

    first_day = date(annee, 1, 1)
    days_to_monday = (8 - sunday_based_weekday(first_day)) % 7
    return first_day + timedelta(days=days_to_monday)


def plan_seances(
    annee: int,
    weeks: Iterable[int],
    jour_semaine: int,
    heure: time,
    duree: int,
) -> List[PlannedSeance]:
    """Expand template week numbers into dated occurrences.

    ``jour_semaine`` counts from Monday (1) to Sunday (7). The returned
    occurrences are sorted chronologically and numbered from 1 in that
    order, whatever the order of ``weeks``.
    """

    anchor = first_week_anchor(annee)
    moments = []
    for week in weeks:
        day = anchor + timedelta(days=(week - 1) * 7 + (jour_semaine - 1))
        moments.append(apply_heure(datetime.combine(day, time()), heure))
    moments.sort()
    return [
        PlannedSeance(date_heure=moment, duree=duree, week_number=index)
        for index, moment in enumerate(moments, start=1)
    ]


def _resolve_day(classe: Classe, jour_semaine) -> int:
    if jour_semaine is None:
        if classe.jour_semaine is None:
            raise ValidationError("Année, jour de la semaine et heure de début requis")
        return generation_day_from_classe_day(classe.jour_semaine)
    day = coerce_int(jour_semaine, "Le jour de la semaine")
    if not 1 <= day <= 7:
        raise ValidationError(
            "Le jour de la semaine doit être entre 1 (lundi) et 7 (dimanche)"
        )
    return day


def _resolve_heure(classe: Classe, heure_debut) -> time:
    if heure_debut is None:
        if not classe.heure_debut:
            raise ValidationError("Année, jour de la semaine et heure de début requis")
        heure_debut = classe.heure_debut
    return parse_heure(heure_debut)


def _insert_skipping_duplicates(
    classe: Classe, planned: Sequence[PlannedSeance]
) -> tuple[List[Seance], int]:
    existing = {
        moment
        for (moment,) in db.session.query(Seance.date_heure).filter(
            Seance.classe_id == classe.id
        )
    }
    eleve_ids = sorted(classe.eleve_ids())
    created: list[Seance] = []
    skipped = 0
    for item in planned:
        if item.date_heure in existing:
            skipped += 1
            continue
        seance = Seance(
            classe_id=classe.id,
            date_heure=item.date_heure,
            duree=item.duree,
            week_number=item.week_number,
            rr_possibles=bool(classe.rr_possibles),
        )
        # A concurrent request may have inserted the same slot meanwhile.
        try:
            with db.session.begin_nested():
                db.session.add(seance)
                db.session.flush()
        except IntegrityError:
            skipped += 1
            continue
        for eleve_id in eleve_ids:
            db.session.add(Presence(seance_id=seance.id, eleve_id=eleve_id, statut="no_status"))
        existing.add(item.date_heure)
        created.append(seance)
    return created, skipped


def generate_seances(
    classe_id: int,
    annee,
    jour_semaine=None,
    heure_debut=None,
) -> GenerationResult:
    """Generate the sessions of ``classe_id`` for the calendar year ``annee``.

    ``jour_semaine`` (1=Monday..7=Sunday) and ``heure_debut`` fall back to
    the class template when omitted. Slots already holding a session of the
    class are skipped, so running the generation twice is harmless.
    """

    year = validate_year(annee)
    classe = db.session.get(Classe, classe_id)
    if classe is None:
        raise NotFoundError("Classe non trouvée")
    day = _resolve_day(classe, jour_semaine)
    heure = _resolve_heure(classe, heure_debut)
    weeks = classe.semaines

    planned = plan_seances(year, weeks, day, heure, classe.duree_seance)
    if not planned:
        return GenerationResult(classe_id=classe.id, created=[])

    try:
        created, skipped = _insert_skipping_duplicates(classe, planned)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            "Session generation failed for class %s (%s)", classe_id, year
        )
        raise

    current_app.logger.info(
        "Generated %s session(s) for class %s in %s (%s skipped)",
        len(created),
        classe_id,
        year,
        skipped,
    )
    return GenerationResult(classe_id=classe.id, created=created, skipped=skipped)
