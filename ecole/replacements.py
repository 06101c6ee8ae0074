"""Replacement requests: a student attends another occurrence of a class."""
from __future__ import annotations

from typing import Any, List, Optional

from flask import current_app
from sqlalchemy.orm import selectinload

from .errors import InvalidTransition, InvariantViolation, NotFoundError, ValidationError
from .extensions import db
from .models import (
    DEFAULT_RR_TYPE,
    DEST_STATUT_CHOICES,
    Classe,
    Presence,
    ReplacementRequest,
    RRStatus,
    Seance,
)
from .utils import coerce_int


def _rr_query():
    return ReplacementRequest.query.options(
        selectinload(ReplacementRequest.eleve),
        selectinload(ReplacementRequest.origin_seance).selectinload(Seance.classe),
        selectinload(ReplacementRequest.destination_seance).selectinload(Seance.classe),
    )


def _load_seance_with_roster(seance_id: int) -> Optional[Seance]:
    return (
        Seance.query.options(selectinload(Seance.classe).selectinload(Classe.eleves))
        .filter(Seance.id == seance_id)
        .first()
    )


def ensure_presence(seance_id: int, eleve_id: int) -> Presence:
    """Fetch the presence of a student at a session, creating it if needed."""

    presence = Presence.query.filter_by(seance_id=seance_id, eleve_id=eleve_id).first()
    if presence is None:
        presence = Presence(seance_id=seance_id, eleve_id=eleve_id, statut="no_status")
        db.session.add(presence)
        db.session.flush()
    return presence


def create_rr(
    eleve_id: Any,
    origin_seance_id: Any,
    destination_seance_id: Any,
    *,
    notes: Optional[str] = None,
    rr_type: Optional[str] = None,
    penalize_rr: Optional[bool] = None,
) -> ReplacementRequest:
    if not eleve_id or not origin_seance_id or not destination_seance_id:
        raise ValidationError(
            "eleveId, originSeanceId et destinationSeanceId sont requis"
        )
    eleve_id = coerce_int(eleve_id, "eleveId")
    origin_seance_id = coerce_int(origin_seance_id, "originSeanceId")
    destination_seance_id = coerce_int(destination_seance_id, "destinationSeanceId")

    origin = _load_seance_with_roster(origin_seance_id)
    destination = _load_seance_with_roster(destination_seance_id)
    if origin is None or destination is None:
        raise NotFoundError("Séance d'origine ou de destination introuvable")

    if not (origin.classe.has_eleve(eleve_id) and destination.classe.has_eleve(eleve_id)):
        current_app.logger.warning(
            "RR refused: student %s not enrolled in both classes %s and %s",
            eleve_id,
            origin.classe_id,
            destination.classe_id,
        )
        raise InvariantViolation("L'élève doit être inscrit dans les deux classes")

    try:
        presence = ensure_presence(destination.id, eleve_id)
        rr = ReplacementRequest(
            eleve_id=eleve_id,
            origin_seance_id=origin.id,
            destination_seance_id=destination.id,
            status=RRStatus.OPEN.value,
            dest_statut=(
                presence.statut if presence.statut in DEST_STATUT_CHOICES else "no_status"
            ),
            notes=notes or None,
            rr_type=rr_type or DEFAULT_RR_TYPE,
            penalize_rr=True if penalize_rr is None else bool(penalize_rr),
        )
        db.session.add(rr)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info(
        "RR %s created for student %s (%s -> %s)",
        rr.id,
        eleve_id,
        origin.id,
        destination.id,
    )
    return get_rr(rr.id)


def list_rrs() -> List[ReplacementRequest]:
    return _rr_query().order_by(
        ReplacementRequest.created_at.desc(), ReplacementRequest.id.desc()
    ).all()


def get_rr(rr_id: int) -> ReplacementRequest:
    rr = _rr_query().filter(ReplacementRequest.id == rr_id).first()
    if rr is None:
        raise NotFoundError("Demande de remplacement introuvable")
    return rr


def parse_status(value: Any) -> RRStatus:
    try:
        return RRStatus(value)
    except ValueError:
        raise ValidationError(
            "Statut invalide. Valeurs possibles : " + ", ".join(RRStatus.values())
        ) from None


def update_rr(rr_id: int, *, status: Any = None, notes: Any = ...) -> ReplacementRequest:
    """Change the status and/or the notes of a replacement request.

    ``notes`` left to ``...`` is untouched, ``None`` clears it. Leaving a
    terminal status raises :class:`InvalidTransition`; asking for the current
    status is a no-op.
    """

    target = parse_status(status) if status else None
    rr = db.session.get(ReplacementRequest, rr_id)
    if rr is None:
        raise NotFoundError("Demande de remplacement introuvable")

    if target is not None:
        try:
            rr.transition_to(target)
        except ValueError:
            current_app.logger.warning(
                "RR %s: refused transition %s -> %s", rr_id, rr.status, target.value
            )
            raise InvalidTransition(
                f"Une demande au statut « {rr.status} » ne peut plus changer de statut"
            ) from None
    if notes is not ...:
        rr.notes = notes
    db.session.commit()
    return get_rr(rr_id)


def delete_rr(rr_id: int) -> dict[str, Any]:
    """Hard-delete a request; the presences it created are kept."""

    rr = get_rr(rr_id)
    summary = rr_summary(rr)
    db.session.delete(rr)
    db.session.commit()
    return summary


def rr_map_for_seance(seance_id: int) -> dict[str, list[dict[str, Any]]]:
    """Split the live requests touching a session by the side it plays."""

    requests = (
        ReplacementRequest.query.filter(
            ReplacementRequest.status != RRStatus.CANCELLED.value,
            (ReplacementRequest.origin_seance_id == seance_id)
            | (ReplacementRequest.destination_seance_id == seance_id),
        )
        .order_by(ReplacementRequest.id)
        .all()
    )
    origin = [
        {
            "id": rr.id,
            "eleveId": rr.eleve_id,
            "destinationSeanceId": rr.destination_seance_id,
            "status": rr.status,
            "destStatut": rr.dest_statut,
        }
        for rr in requests
        if rr.origin_seance_id == seance_id
    ]
    destination = [
        {
            "id": rr.id,
            "eleveId": rr.eleve_id,
            "originSeanceId": rr.origin_seance_id,
            "status": rr.status,
            "destStatut": rr.dest_statut,
        }
        for rr in requests
        if rr.destination_seance_id == seance_id
    ]
    return {"origin": origin, "destination": destination}


def sync_dest_statut(seance_id: int, eleve_id: int, statut: str) -> int:
    """Copy a destination presence status onto the matching requests.

    The caller commits. ``awaiting`` has no destination meaning and is ignored.
    """

    if statut not in DEST_STATUT_CHOICES:
        return 0
    return ReplacementRequest.query.filter(
        ReplacementRequest.destination_seance_id == seance_id,
        ReplacementRequest.eleve_id == eleve_id,
        ReplacementRequest.status != RRStatus.CANCELLED.value,
    ).update({ReplacementRequest.dest_statut: statut}, synchronize_session="fetch")


def _seance_summary(seance: Seance | None) -> dict[str, Any] | None:
    if seance is None:
        return None
    return {
        "id": seance.id,
        "dateHeure": seance.date_heure.isoformat(),
        "weekNumber": seance.week_number,
        "classe": {"id": seance.classe.id, "nom": seance.classe.nom}
        if seance.classe
        else None,
    }


def rr_summary(rr: ReplacementRequest) -> dict[str, Any]:
    return {
        "id": rr.id,
        "eleveId": rr.eleve_id,
        "originSeanceId": rr.origin_seance_id,
        "destinationSeanceId": rr.destination_seance_id,
        "status": rr.status,
        "destStatut": rr.dest_statut,
        "rrType": rr.rr_type,
        "penalizeRR": rr.penalize_rr,
        "notes": rr.notes,
        "createdAt": rr.created_at.isoformat() if rr.created_at else None,
        "updatedAt": rr.updated_at.isoformat() if rr.updated_at else None,
        "eleve": {"id": rr.eleve.id, "nom": rr.eleve.nom, "prenom": rr.eleve.prenom}
        if rr.eleve
        else None,
        "originSeance": _seance_summary(rr.origin_seance),
        "destinationSeance": _seance_summary(rr.destination_seance),
    }
