import unittest
from datetime import datetime

from ecole import create_app, db
from ecole.attendance import reset_calendar, seances_for_week, toggle_seance
from ecole.auth import create_token
from ecole.errors import ConflictError, NotFoundError, ValidationError
from ecole.models import Classe, ClasseEleve, Eleve, Presence, Seance, User
from ecole.seances import create_seance, delete_seance, list_seances, update_seance
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


class SeanceServiceTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.teacher = User(nom="Durand", prenom="Bruno", email="bruno@example.com")
        self.eleves = [Eleve(nom="Petit", prenom="Léa"), Eleve(nom="Roux", prenom="Inès")]
        db.session.add_all([self.teacher, *self.eleves])
        db.session.flush()
        self.classe = Classe(
            nom="Piano", teacher_id=self.teacher.id, duree_seance=45, rr_possibles=True
        )
        db.session.add(self.classe)
        db.session.flush()
        for eleve in self.eleves:
            db.session.add(ClasseEleve(classe_id=self.classe.id, eleve_id=eleve.id))
        db.session.commit()

    def _week_numbers(self) -> list[tuple[str, int]]:
        return [
            (seance.date_heure.date().isoformat(), seance.week_number)
            for seance in list_seances(self.classe.id)
        ]

    def test_defaults_come_from_the_class(self) -> None:
        seance = create_seance(self.classe.id, {"dateHeure": "2025-01-07T14:00:00"})

        self.assertEqual(seance.duree, 45)
        self.assertTrue(seance.rr_possibles)
        self.assertTrue(seance.actif)
        self.assertEqual(seance.week_number, 1)
        presences = Presence.query.filter_by(seance_id=seance.id).all()
        self.assertEqual(
            sorted(p.eleve_id for p in presences), sorted(e.id for e in self.eleves)
        )
        self.assertEqual({p.statut for p in presences}, {"no_status"})

    def test_inserting_before_existing_sessions_renumbers_them(self) -> None:
        create_seance(self.classe.id, {"dateHeure": "2025-01-14T14:00:00"})
        create_seance(self.classe.id, {"dateHeure": "2025-01-07T14:00:00"})
        create_seance(self.classe.id, {"dateHeure": "2025-01-10T14:00:00"})

        self.assertEqual(
            self._week_numbers(),
            [("2025-01-07", 1), ("2025-01-10", 2), ("2025-01-14", 3)],
        )

    def test_explicit_week_number_leaves_others_alone(self) -> None:
        create_seance(self.classe.id, {"dateHeure": "2025-01-14T14:00:00"})
        create_seance(self.classe.id, {"dateHeure": "2025-01-07T14:00:00", "weekNumber": 9})

        self.assertEqual(self._week_numbers(), [("2025-01-07", 9), ("2025-01-14", 1)])

    def test_duplicate_slot_is_a_conflict_and_keeps_numbering(self) -> None:
        create_seance(self.classe.id, {"dateHeure": "2025-01-07T14:00:00"})
        create_seance(self.classe.id, {"dateHeure": "2025-01-14T14:00:00"})

        with self.assertRaises(ConflictError):
            create_seance(self.classe.id, {"dateHeure": "2025-01-07T14:00:00"})

        self.assertEqual(self._week_numbers(), [("2025-01-07", 1), ("2025-01-14", 2)])

    def test_create_rejects_bad_input(self) -> None:
        with self.assertRaises(ValidationError):
            create_seance(self.classe.id, {})
        with self.assertRaises(ValidationError):
            create_seance(self.classe.id, {"dateHeure": "2025-01-07T14:00:00", "duree": -1})
        with self.assertRaises(NotFoundError):
            create_seance(4242, {"dateHeure": "2025-01-07T14:00:00"})
        with self.assertRaises(NotFoundError):
            create_seance(
                self.classe.id,
                {"dateHeure": "2025-01-07T14:00:00", "presentTeacherId": 4242},
            )
        self.assertEqual(list_seances(self.classe.id), [])

    def test_update_fields(self) -> None:
        seance = create_seance(self.classe.id, {"dateHeure": "2025-01-07T14:00:00"})

        updated = update_seance(
            seance.id,
            {
                "dateHeure": "2025-01-08T09:00:00",
                "duree": 30,
                "statut": "done",
                "notes": "Répétition",
                "presentTeacherId": self.teacher.id,
                "rrPossibles": False,
            },
        )

        self.assertEqual(updated.date_heure, datetime(2025, 1, 8, 9, 0))
        self.assertEqual(updated.duree, 30)
        self.assertEqual(updated.statut, "done")
        self.assertEqual(updated.notes, "Répétition")
        self.assertEqual(updated.present_teacher_id, self.teacher.id)
        self.assertFalse(updated.rr_possibles)

    def test_update_errors(self) -> None:
        first = create_seance(self.classe.id, {"dateHeure": "2025-01-07T14:00:00"})
        second = create_seance(self.classe.id, {"dateHeure": "2025-01-14T14:00:00"})

        with self.assertRaises(ValidationError):
            update_seance(first.id, {"statut": "postponed"})
        with self.assertRaises(ConflictError):
            update_seance(second.id, {"dateHeure": "2025-01-07T14:00:00"})
        with self.assertRaises(NotFoundError):
            update_seance(4242, {"duree": 30})

        self.assertEqual(
            db.session.get(Seance, second.id).date_heure, datetime(2025, 1, 14, 14, 0)
        )

    def test_delete_removes_presences(self) -> None:
        seance = create_seance(self.classe.id, {"dateHeure": "2025-01-07T14:00:00"})
        seance_id = seance.id

        delete_seance(seance_id)

        self.assertIsNone(db.session.get(Seance, seance_id))
        self.assertEqual(Presence.query.filter_by(seance_id=seance_id).count(), 0)
        with self.assertRaises(NotFoundError):
            delete_seance(seance_id)

    def test_week_view_spans_seven_days(self) -> None:
        for moment in ("2025-01-05T10:00:00", "2025-01-11T23:00:00", "2025-01-12T10:00:00"):
            create_seance(self.classe.id, {"dateHeure": moment})

        seances = seances_for_week(datetime(2025, 1, 5).date())

        self.assertEqual(
            [seance.date_heure for seance in seances],
            [datetime(2025, 1, 5, 10, 0), datetime(2025, 1, 11, 23, 0)],
        )

    def test_toggle_and_reset_calendar(self) -> None:
        january = create_seance(self.classe.id, {"dateHeure": "2025-01-07T14:00:00"})
        december = create_seance(self.classe.id, {"dateHeure": "2025-12-30T14:00:00"})
        next_year = create_seance(self.classe.id, {"dateHeure": "2026-01-06T14:00:00"})

        self.assertFalse(toggle_seance(january.id, False).actif)
        self.assertTrue(toggle_seance(january.id).actif)

        self.assertEqual(reset_calendar(2025), 2)
        self.assertFalse(db.session.get(Seance, january.id).actif)
        self.assertFalse(db.session.get(Seance, december.id).actif)
        self.assertTrue(db.session.get(Seance, next_year.id).actif)

        with self.assertRaises(ValidationError):
            toggle_seance(None)
        with self.assertRaises(NotFoundError):
            toggle_seance(4242)
        with self.assertRaises(ValidationError):
            reset_calendar("deux-mille")


class SeanceApiTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.client = self.app.test_client()
        admin = User(nom="Martin", prenom="Alice", email="alice@example.com", admin=True)
        db.session.add(admin)
        db.session.flush()
        self.classe = Classe(nom="Piano", teacher_id=admin.id, duree_seance=60)
        db.session.add(self.classe)
        db.session.commit()
        self.headers = {"Authorization": f"Bearer {create_token(admin.id)}"}

    def test_session_endpoints(self) -> None:
        url = f"/api/classes/{self.classe.id}/seances"

        created = self.client.post(
            url, json={"dateHeure": "2025-01-14T14:00:00"}, headers=self.headers
        )
        self.assertEqual(created.status_code, 201)
        seance = created.get_json()["seance"]
        self.assertEqual(seance["dateHeure"], "2025-01-14T14:00:00")
        self.assertTrue(seance["actif"])
        self.assertIsNone(seance["presentTeacher"])

        duplicate = self.client.post(
            url, json={"dateHeure": "2025-01-14T14:00:00"}, headers=self.headers
        )
        self.assertEqual(duplicate.status_code, 409)
        self.assertIn("error", duplicate.get_json())

        updated = self.client.put(
            f"/api/seances/{seance['id']}", json={"duree": 30}, headers=self.headers
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.get_json()["seance"]["duree"], 30)

        week = self.client.get("/api/attendance/week/2025-01-12", headers=self.headers)
        self.assertEqual([item["id"] for item in week.get_json()], [seance["id"]])
        bad_week = self.client.get("/api/attendance/week/12-01-2025", headers=self.headers)
        self.assertEqual(bad_week.status_code, 400)

        deleted = self.client.delete(f"/api/seances/{seance['id']}", headers=self.headers)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(self.client.get(url, headers=self.headers).get_json(), [])

    def test_calendar_toggle_and_reset_endpoints(self) -> None:
        seance = Seance(classe_id=self.classe.id, date_heure=datetime(2025, 3, 4, 14), duree=60)
        db.session.add(seance)
        db.session.commit()

        toggled = self.client.put(
            "/api/attendance/calendar/toggle",
            json={"seanceId": seance.id, "actif": False},
            headers=self.headers,
        )
        self.assertEqual(toggled.status_code, 200)
        self.assertFalse(toggled.get_json()["seance"]["actif"])

        missing = self.client.put(
            "/api/attendance/calendar/toggle", json={}, headers=self.headers
        )
        self.assertEqual(missing.status_code, 400)

        reset = self.client.post("/api/attendance/calendar/reset/2025", headers=self.headers)
        self.assertEqual(reset.get_json()["updated"], 1)

    def test_response_schemas_are_published(self) -> None:
        response = self.client.get("/api/swagger.json")

        self.assertEqual(response.status_code, 200)
        definitions = response.get_json()["definitions"]
        for name in ("Seance", "SeanceEnvelope", "ReplacementRequest", "RREnvelope"):
            self.assertIn(name, definitions)
        self.assertIn("actif", definitions["Seance"]["properties"])


if __name__ == "__main__":
    unittest.main()
