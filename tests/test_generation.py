import unittest
from datetime import date, datetime, time

from ecole import create_app, db
from ecole.errors import NotFoundError, ValidationError
from ecole.generation import first_week_anchor, generate_seances, plan_seances
from ecole.models import Classe, ClasseEleve, Eleve, Presence, Seance, User
from config import TestConfig


class DatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.app = create_app(TestConfig)
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

    def tearDown(self) -> None:
        db.session.remove()
        db.drop_all()
        self.app_context.pop()


class WeekAnchorTestCase(unittest.TestCase):
    def test_anchor_is_first_monday_of_the_year(self) -> None:
        # 2025-01-01 is a Wednesday, 2024-01-01 a Monday, 2023-01-01 a Sunday.
        self.assertEqual(first_week_anchor(2025), date(2025, 1, 6))
        self.assertEqual(first_week_anchor(2024), date(2024, 1, 1))
        self.assertEqual(first_week_anchor(2023), date(2023, 1, 2))

    def test_plan_numbers_weeks_in_chronological_order(self) -> None:
        planned = plan_seances(2025, [3, 1, 2], 1, time(9, 0), 45)
        self.assertEqual(
            [item.date_heure for item in planned],
            [
                datetime(2025, 1, 6, 9, 0),
                datetime(2025, 1, 13, 9, 0),
                datetime(2025, 1, 20, 9, 0),
            ],
        )
        self.assertEqual([item.week_number for item in planned], [1, 2, 3])
        self.assertTrue(all(item.duree == 45 for item in planned))

    def test_sunday_is_the_last_day_of_the_week(self) -> None:
        planned = plan_seances(2025, [1], 7, time(10, 15), 60)
        self.assertEqual(planned[0].date_heure, datetime(2025, 1, 12, 10, 15))


class SeanceGenerationTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.teacher = User(nom="Durand", prenom="Bruno", email="bruno@example.com")
        self.eleves = [Eleve(nom="Petit", prenom="Léa"), Eleve(nom="Roux", prenom="Inès")]
        db.session.add_all([self.teacher, *self.eleves])
        db.session.commit()

    def _create_classe(self, weeks, **overrides) -> Classe:
        values = dict(
            nom="Piano",
            teacher_id=self.teacher.id,
            duree_seance=60,
            jour_semaine=2,
            heure_debut="14:00",
        )
        values.update(overrides)
        classe = Classe(**values)
        classe.semaines = weeks
        db.session.add(classe)
        db.session.commit()
        return classe

    def _seances(self, classe: Classe) -> list[Seance]:
        return (
            Seance.query.filter_by(classe_id=classe.id).order_by(Seance.date_heure).all()
        )

    def test_tuesday_pattern_skips_missing_template_week(self) -> None:
        classe = self._create_classe([1, 2, 4])

        result = generate_seances(classe.id, 2025, 2, "14:00")

        self.assertEqual(result.count, 3)
        seances = self._seances(classe)
        self.assertEqual(
            [seance.date_heure for seance in seances],
            [
                datetime(2025, 1, 7, 14, 0),
                datetime(2025, 1, 14, 14, 0),
                datetime(2025, 1, 28, 14, 0),
            ],
        )
        self.assertEqual([seance.week_number for seance in seances], [1, 2, 3])
        self.assertEqual({seance.duree for seance in seances}, {60})

    def test_unordered_template_still_numbers_chronologically(self) -> None:
        classe = self._create_classe([3, 1, 2])

        generate_seances(classe.id, 2025, 2, "14:00")

        seances = self._seances(classe)
        self.assertEqual([seance.week_number for seance in seances], [1, 2, 3])
        self.assertEqual(db.session.get(Classe, classe.id).semaines, [3, 1, 2])

    def test_regeneration_is_idempotent(self) -> None:
        classe = self._create_classe([1, 2, 4])

        first = generate_seances(classe.id, 2025, 2, "14:00")
        second = generate_seances(classe.id, 2025, 2, "14:00")

        self.assertEqual(first.count, 3)
        self.assertEqual(second.count, 0)
        self.assertEqual(second.skipped, 3)
        self.assertEqual(len(self._seances(classe)), 3)

    def test_empty_template_creates_nothing(self) -> None:
        classe = self._create_classe([])

        result = generate_seances(classe.id, 2025, 2, "14:00")

        self.assertEqual(result.count, 0)
        self.assertEqual(self._seances(classe), [])

    def test_rr_flag_is_a_snapshot_of_the_class(self) -> None:
        classe = self._create_classe([1, 2], rr_possibles=True)

        generate_seances(classe.id, 2025, 2, "14:00")
        classe.rr_possibles = False
        db.session.commit()

        self.assertTrue(all(seance.rr_possibles for seance in self._seances(classe)))

    def test_enrolled_students_get_a_presence_per_session(self) -> None:
        classe = self._create_classe([1, 2])
        for eleve in self.eleves:
            db.session.add(ClasseEleve(classe_id=classe.id, eleve_id=eleve.id))
        db.session.commit()

        generate_seances(classe.id, 2025, 2, "14:00")

        for seance in self._seances(classe):
            presences = Presence.query.filter_by(seance_id=seance.id).all()
            self.assertEqual(
                sorted(p.eleve_id for p in presences), sorted(e.id for e in self.eleves)
            )
            self.assertEqual({p.statut for p in presences}, {"no_status"})

    def test_defaults_come_from_the_class_template(self) -> None:
        # jour_semaine counts from Sunday, 0 therefore maps to the 7th day.
        classe = self._create_classe([1], jour_semaine=0, heure_debut="18:30")

        generate_seances(classe.id, 2025)

        self.assertEqual(
            [seance.date_heure for seance in self._seances(classe)],
            [datetime(2025, 1, 12, 18, 30)],
        )

    def test_invalid_input_is_rejected_before_insert(self) -> None:
        classe = self._create_classe([1, 2])

        with self.assertRaises(ValidationError):
            generate_seances(classe.id, 2025, 2, "25:00")
        with self.assertRaises(ValidationError):
            generate_seances(classe.id, 2025, 8, "14:00")
        with self.assertRaises(ValidationError):
            generate_seances(classe.id, 1999, 2, "14:00")

        self.assertEqual(self._seances(classe), [])

    def test_missing_day_without_class_default_is_rejected(self) -> None:
        classe = self._create_classe([1], jour_semaine=None)

        with self.assertRaises(ValidationError):
            generate_seances(classe.id, 2025, None, "14:00")

    def test_unknown_class(self) -> None:
        with self.assertRaises(NotFoundError):
            generate_seances(4242, 2025, 2, "14:00")


if __name__ == "__main__":
    unittest.main()
