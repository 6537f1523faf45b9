"""Tests for the HTTP API."""

from __future__ import annotations

import unittest

from fastapi.testclient import TestClient

from seqarrange.web.server import app
from tests.shapes_fixture import L_SHAPE, SQUARE


SMALL = {"maximum_bounding_box_size": 40}


class TestServer(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def _objects(self):
        return [
            {"id": "sq", "contour": [list(p) for p in SQUARE]},
            {"id": "l", "contour": [list(p) for p in L_SHAPE], "duration": 2},
        ]

    def test_health(self):
        r = self.client.get("/api/health")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["status"], "ok")
        self.assertIn("mk3s", r.json()["printers"])

    def test_arrange_then_check(self):
        r = self.client.post("/api/arrange", json={"objects": self._objects(), "config": SMALL})
        self.assertEqual(r.status_code, 200, r.text)
        schedule = r.json()
        self.assertEqual(schedule["status"]["kind"], "valid")
        self.assertEqual(schedule["remaining"], [])
        ids = {p["id"] for plate in schedule["plates"] for p in plate["placements"]}
        self.assertEqual(ids, {"sq", "l"})

        r = self.client.post("/api/check", json={
            "objects": self._objects(), "schedule": schedule, "config": SMALL})
        self.assertEqual(r.status_code, 200, r.text)
        self.assertTrue(r.json()["printable"])

    def test_invalid_contour(self):
        r = self.client.post("/api/arrange", json={
            "objects": [{"id": 1, "contour": [[0, 0], [1, 1]]}]})
        self.assertEqual(r.status_code, 422)

    def test_unknown_config_key(self):
        r = self.client.post("/api/arrange", json={
            "objects": self._objects(), "config": {"bogus": 1}})
        self.assertEqual(r.status_code, 422)

    def test_unknown_printer(self):
        r = self.client.post("/api/arrange", json={
            "objects": self._objects(), "printer": "nope"})
        self.assertEqual(r.status_code, 422)


if __name__ == "__main__":
    unittest.main()
