from __future__ import annotations

import json
import re
from datetime import date, datetime, time
from typing import Any, Iterable, List

from .errors import ValidationError


DATE_FORMAT = "%Y-%m-%d"
HEURE_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")

MIN_YEAR = 2000
MAX_YEAR = 2100


def parse_heure(value: Any) -> time:
    """Parse an ``HH:MM`` string into a :class:`~datetime.time`.

    Single digit hours (``"9:30"``) are accepted, seconds are not.
    """

    if not isinstance(value, str):
        raise ValidationError("L'heure de début doit être au format HH:MM")
    match = HEURE_PATTERN.match(value.strip())
    if match is None:
        raise ValidationError("L'heure de début doit être au format HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def apply_heure(moment: datetime, heure: time) -> datetime:
    return moment.replace(hour=heure.hour, minute=heure.minute, second=0, microsecond=0)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def coerce_int(value: Any, label: str) -> int:
    if _is_int(value):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{label} doit être un entier")


def validate_week_numbers(values: Any) -> List[int]:
    if not isinstance(values, (list, tuple)):
        raise ValidationError("Les semaines de séances doivent être spécifiées")
    weeks: list[int] = []
    for value in values:
        if not _is_int(value) or value < 1:
            raise ValidationError(
                "Les semaines de séances doivent être des entiers positifs"
            )
        weeks.append(value)
    return weeks


def parse_week_numbers(raw: str | None) -> List[int]:
    """Decode the JSON list stored in ``classe.semaines_seances``.

    Order and duplicates are preserved so that a stored template reads back
    exactly as it was written.
    """

    if not raw:
        return []
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationError("Semaines de séances illisibles") from None
    return validate_week_numbers(payload)


def serialise_week_numbers(weeks: Iterable[int]) -> str:
    return json.dumps(list(weeks))


# ``Classe.jour_semaine`` counts from Sunday (0) to Saturday (6) while the
# generation endpoint counts from Monday (1) to Sunday (7).

def generation_day_from_classe_day(jour_semaine: int) -> int:
    if not 0 <= jour_semaine <= 6:
        raise ValidationError(
            "Le jour de la semaine doit être entre 0 (dimanche) et 6 (samedi)"
        )
    return 7 if jour_semaine == 0 else jour_semaine


def classe_day_from_generation_day(jour: int) -> int:
    if not 1 <= jour <= 7:
        raise ValidationError(
            "Le jour de la semaine doit être entre 1 (lundi) et 7 (dimanche)"
        )
    return 0 if jour == 7 else jour


def sunday_based_weekday(day: date) -> int:
    return (day.weekday() + 1) % 7


def validate_year(annee: Any) -> int:
    year = coerce_int(annee, "L'année")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"L'année doit être comprise entre {MIN_YEAR} et {MAX_YEAR}")
    return year


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise ValidationError("Format de date invalide (AAAA-MM-JJ attendu)") from None


def parse_iso_datetime(value: Any) -> datetime:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Date et heure de la séance requises")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    try:
        moment = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError("Format de date invalide") from None
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment
