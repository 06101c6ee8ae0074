from __future__ import annotations

from datetime import date

from .extensions import db
from .generation import generate_seances
from .models import Classe, ClasseEleve, Eleve, User


def seed_data() -> None:
    if User.query.count():
        return

    admin = User(nom="Martin", prenom="Alice", email="alice@example.com", admin=True)
    teacher = User(nom="Durand", prenom="Bruno", email="bruno@example.com")
    eleves = [
        Eleve(nom="Petit", prenom="Léa"),
        Eleve(nom="Moreau", prenom="Hugo"),
        Eleve(nom="Roux", prenom="Inès"),
    ]
    db.session.add_all([admin, teacher, *eleves])
    db.session.flush()

    mardi = Classe(
        nom="Piano débutant (mardi)",
        level="Débutant",
        type_cours="Individuel",
        location="Conservatoire",
        salle="B12",
        teacher_id=teacher.id,
        duree_seance=60,
        jour_semaine=2,
        heure_debut="14:00",
        rr_possibles=True,
    )
    mardi.semaines = [1, 2, 4, 5, 6]
    jeudi = Classe(
        nom="Piano débutant, jeudi (récupération)",
        level="Débutant",
        type_cours="Individuel",
        location="Conservatoire",
        salle="B12",
        teacher_id=teacher.id,
        duree_seance=60,
        jour_semaine=4,
        heure_debut="18:30",
        rr_possibles=True,
        is_recuperation=True,
    )
    jeudi.semaines = [1, 2, 3, 4, 5, 6]
    db.session.add_all([mardi, jeudi])
    db.session.flush()

    for eleve in eleves:
        db.session.add(ClasseEleve(classe_id=mardi.id, eleve_id=eleve.id))
    db.session.add(ClasseEleve(classe_id=jeudi.id, eleve_id=eleves[0].id))
    db.session.commit()

    year = date.today().year
    generate_seances(mardi.id, year)
    generate_seances(jeudi.id, year)
