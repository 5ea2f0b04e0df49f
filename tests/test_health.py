"""Tests for GET /api/health with a mocked database session."""

import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.core.database import get_db
from app.main import app


class TestHealth(unittest.TestCase):
    def setUp(self) -> None:
        self.db = MagicMock()
        app.dependency_overrides[get_db] = lambda: self.db
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def test_reports_connected_database(self) -> None:
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["service"], "medmap-auth")
        self.assertEqual(body["environment"], "dev")
        self.assertEqual(body["database"], "connected")
        self.db.execute.assert_called_once()

    def test_reports_disconnected_database(self) -> None:
        self.db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["database"], "disconnected")
        self.assertEqual(response.json()["status"], "degraded")

    def test_root(self) -> None:
        self.assertEqual(self.client.get("/").json(), {"message": "MedMap Auth API"})


if __name__ == "__main__":
    unittest.main()
