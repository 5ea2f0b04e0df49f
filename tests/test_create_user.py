"""Operator script that creates pre-verified users (the only path to an admin account)."""

import io
import unicodedata
import unittest
from contextlib import contextmanager, redirect_stderr, redirect_stdout
from unittest.mock import MagicMock, patch

from sqlalchemy.exc import DataError

from app.core.security import verify_password
from app.repositories import InMemoryProfileRepository, InMemoryUserRepository
from app.scripts import create_user
from app.services.auth import normalize_email


class TestCreateUser(unittest.TestCase):
    def setUp(self) -> None:
        self.users = InMemoryUserRepository()
        self.profiles = InMemoryProfileRepository()

        @contextmanager
        def scope():
            yield MagicMock()

        patches = [
            patch.object(create_user, "session_scope", scope),
            patch.object(create_user, "SqlAlchemyUserRepository", return_value=self.users),
            patch.object(create_user, "SqlAlchemyProfileRepository", return_value=self.profiles),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)

    def run_script(self, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = create_user.main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_creates_verified_admin_by_default(self) -> None:
        code, out, _ = self.run_script("Admin@MedMap.co.za", "S3cure!Passw0rd")
        self.assertEqual(code, 0)
        self.assertIn("admin@medmap.co.za", out)
        user = self.users.get_by_email("admin@medmap.co.za")
        self.assertEqual(user.role, "admin")
        self.assertTrue(user.is_email_verified)
        self.assertTrue(verify_password("S3cure!Passw0rd", user.password_hash))
        self.assertEqual(self.profiles.profiles, [])

    def test_doctor_and_patient_get_empty_profiles(self) -> None:
        self.assertEqual(self.run_script("doc@medmap.co.za", "S3cure!Passw0rd", "doctor")[0], 0)
        self.assertEqual(self.run_script("pat@medmap.co.za", "S3cure!Passw0rd", "patient")[0], 0)
        doctor = self.users.get_by_email("doc@medmap.co.za")
        patient = self.users.get_by_email("pat@medmap.co.za")
        by_user = {p.user_id: p for p in self.profiles.profiles}
        self.assertEqual(by_user[doctor.id].role, "doctor")
        self.assertEqual(by_user[doctor.id].fields, {"verification_status": "pending"})
        self.assertEqual(by_user[patient.id].role, "patient")
        self.assertEqual(by_user[patient.id].fields, {})

    def test_profile_failure_removes_user(self) -> None:
        failing = MagicMock()
        failing.create_doctor_profile.side_effect = DataError("INSERT", {}, Exception("boom"))
        with patch.object(create_user, "SqlAlchemyProfileRepository", return_value=failing):
            code, _, err = self.run_script("doc@medmap.co.za", "S3cure!Passw0rd", "doctor")
        self.assertEqual(code, 1)
        self.assertIn("Could not create doctor profile", err)
        self.assertIsNone(self.users.get_by_email("doc@medmap.co.za"))

    def test_email_is_stored_in_the_form_login_looks_up(self) -> None:
        decomposed = unicodedata.normalize("NFD", "José@example.com")
        self.assertEqual(self.run_script(decomposed, "S3cure!Passw0rd")[0], 0)
        self.assertIsNotNone(self.users.get_by_email(normalize_email(decomposed)))
        self.assertIsNotNone(self.users.get_by_email(normalize_email("JOSÉ@example.com")))

    def test_refuses_duplicate(self) -> None:
        self.run_script("admin@medmap.co.za", "S3cure!Passw0rd")
        code, _, err = self.run_script("admin@medmap.co.za", "S3cure!Passw0rd", "doctor")
        self.assertEqual(code, 1)
        self.assertIn("already exists", err)

    def test_refuses_weak_password_and_bad_email(self) -> None:
        code, _, err = self.run_script("admin@medmap.co.za", "password")
        self.assertEqual(code, 1)
        self.assertIn("uppercase", err)
        code, _, err = self.run_script("not-an-email", "S3cure!Passw0rd")
        self.assertEqual(code, 1)
        self.assertIn("Invalid email address", err)
        self.assertIsNone(self.users.get_by_email("admin@medmap.co.za"))


if __name__ == "__main__":
    unittest.main()
