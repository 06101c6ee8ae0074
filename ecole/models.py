from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional, Set

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .extensions import db
from .utils import parse_week_numbers, serialise_week_numbers


SEANCE_STATUT_CHOICES: tuple[str, ...] = ("programmed", "done", "cancelled")
PRESENCE_STATUT_CHOICES: tuple[str, ...] = ("present", "absent", "no_status", "awaiting")
DEST_STATUT_CHOICES: tuple[str, ...] = ("present", "absent", "no_status")

DEFAULT_RR_TYPE = "same_week"


class RRStatus(str, enum.Enum):
    OPEN = "open"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not RRStatus.OPEN

    def can_transition_to(self, target: "RRStatus") -> bool:
        return target in RR_TRANSITIONS[self]

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


RR_TRANSITIONS: dict[RRStatus, frozenset[RRStatus]] = {
    RRStatus.OPEN: frozenset({RRStatus.COMPLETED, RRStatus.CANCELLED}),
    RRStatus.COMPLETED: frozenset(),
    RRStatus.CANCELLED: frozenset(),
}


class TimeStampedModel:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class User(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    nom: Mapped[str] = mapped_column(String(120), nullable=False)
    prenom: Mapped[Optional[str]] = mapped_column(String(120))
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    classes: Mapped[List["Classe"]] = relationship(back_populates="teacher")

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.prenom, self.nom) if part)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<User {self.email}>"


class Eleve(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    nom: Mapped[str] = mapped_column(String(120), nullable=False)
    prenom: Mapped[Optional[str]] = mapped_column(String(120))

    inscriptions: Mapped[List["ClasseEleve"]] = relationship(
        back_populates="eleve", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Eleve {self.prenom} {self.nom}>"


class Classe(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    nom: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    level: Mapped[Optional[str]] = mapped_column(String(120))
    type_cours: Mapped[Optional[str]] = mapped_column(String(120))
    location: Mapped[Optional[str]] = mapped_column(String(255))
    salle: Mapped[Optional[str]] = mapped_column(String(120))
    teacher_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False)
    duree_seance: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    semaines_seances: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    jour_semaine: Mapped[Optional[int]] = mapped_column(Integer)
    heure_debut: Mapped[Optional[str]] = mapped_column(String(5))
    rr_possibles: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_recuperation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    teacher: Mapped["User"] = relationship(back_populates="classes")
    eleves: Mapped[List["ClasseEleve"]] = relationship(
        back_populates="classe", cascade="all, delete-orphan"
    )
    seances: Mapped[List["Seance"]] = relationship(
        back_populates="classe",
        cascade="all, delete-orphan",
        order_by="Seance.date_heure",
    )

    __table_args__ = (
        CheckConstraint("duree_seance > 0", name="chk_classe_duree_positive"),
        CheckConstraint(
            "jour_semaine IS NULL OR jour_semaine BETWEEN 0 AND 6",
            name="chk_classe_jour_semaine",
        ),
    )

    @property
    def semaines(self) -> list[int]:
        return parse_week_numbers(self.semaines_seances)

    @semaines.setter
    def semaines(self, weeks: list[int]) -> None:
        self.semaines_seances = serialise_week_numbers(weeks)

    def eleve_ids(self) -> Set[int]:
        return {inscription.eleve_id for inscription in self.eleves}

    def has_eleve(self, eleve_id: int) -> bool:
        return eleve_id in self.eleve_ids()

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Classe {self.nom}>"


class ClasseEleve(db.Model):
    __tablename__ = "classe_eleve"

    id: Mapped[int] = mapped_column(primary_key=True)
    classe_id: Mapped[int] = mapped_column(
        ForeignKey("classe.id", ondelete="CASCADE"), nullable=False
    )
    eleve_id: Mapped[int] = mapped_column(
        ForeignKey("eleve.id", ondelete="CASCADE"), nullable=False
    )

    classe: Mapped["Classe"] = relationship(back_populates="eleves")
    eleve: Mapped["Eleve"] = relationship(back_populates="inscriptions")

    __table_args__ = (
        UniqueConstraint("classe_id", "eleve_id", name="uq_classe_eleve"),
    )


class Seance(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    classe_id: Mapped[int] = mapped_column(
        ForeignKey("classe.id", ondelete="CASCADE"), nullable=False
    )
    date_heure: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duree: Mapped[int] = mapped_column(Integer, nullable=False)
    statut: Mapped[str] = mapped_column(String(20), nullable=False, default="programmed")
    notes: Mapped[Optional[str]] = mapped_column(Text)
    week_number: Mapped[Optional[int]] = mapped_column(Integer)
    rr_possibles: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Shown on the yearly calendar; a reset switches a whole year off.
    actif: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    present_teacher_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("user.id", ondelete="SET NULL")
    )

    classe: Mapped["Classe"] = relationship(back_populates="seances")
    present_teacher: Mapped[Optional["User"]] = relationship()
    presences: Mapped[List["Presence"]] = relationship(
        back_populates="seance", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("classe_id", "date_heure", name="uq_seance_classe_date"),
    )

    def presence_for(self, eleve_id: int) -> Optional["Presence"]:
        return next((p for p in self.presences if p.eleve_id == eleve_id), None)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Seance {self.classe_id} {self.date_heure:%Y-%m-%d %H:%M}>"


class Presence(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    seance_id: Mapped[int] = mapped_column(
        ForeignKey("seance.id", ondelete="CASCADE"), nullable=False
    )
    eleve_id: Mapped[int] = mapped_column(
        ForeignKey("eleve.id", ondelete="CASCADE"), nullable=False
    )
    statut: Mapped[str] = mapped_column(String(20), nullable=False, default="no_status")
    notes: Mapped[Optional[str]] = mapped_column(Text)

    seance: Mapped["Seance"] = relationship(back_populates="presences")
    eleve: Mapped["Eleve"] = relationship()

    __table_args__ = (
        UniqueConstraint("seance_id", "eleve_id", name="uq_presence_seance_eleve"),
    )


class ReplacementRequest(db.Model, TimeStampedModel):
    __tablename__ = "replacement_request"

    id: Mapped[int] = mapped_column(primary_key=True)
    eleve_id: Mapped[int] = mapped_column(
        ForeignKey("eleve.id", ondelete="CASCADE"), nullable=False
    )
    origin_seance_id: Mapped[int] = mapped_column(
        ForeignKey("seance.id", ondelete="CASCADE"), nullable=False
    )
    destination_seance_id: Mapped[int] = mapped_column(
        ForeignKey("seance.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=RRStatus.OPEN.value)
    dest_statut: Mapped[str] = mapped_column(String(20), nullable=False, default="no_status")
    rr_type: Mapped[str] = mapped_column(String(50), nullable=False, default=DEFAULT_RR_TYPE)
    penalize_rr: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    eleve: Mapped["Eleve"] = relationship()
    origin_seance: Mapped["Seance"] = relationship(foreign_keys=[origin_seance_id])
    destination_seance: Mapped["Seance"] = relationship(foreign_keys=[destination_seance_id])

    @property
    def state(self) -> RRStatus:
        return RRStatus(self.status)

    def transition_to(self, target: RRStatus) -> bool:
        """Move to ``target``; returns ``False`` when already there.

        Raises :class:`ValueError` when the transition is not allowed, which
        is always the case once the request reached a terminal state.
        """

        current = self.state
        if target is current:
            return False
        if not current.can_transition_to(target):
            raise ValueError(f"{current.value} -> {target.value}")
        self.status = target.value
        return True

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<ReplacementRequest {self.eleve_id} {self.origin_seance_id}->{self.destination_seance_id}>"
