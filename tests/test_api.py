import os
import unittest

from fastapi.testclient import TestClient

from signal_control.main import app, kernel


class TestApi(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        os.environ.pop("SIGNAL_CONTROL_CONFIG", None)

    def test_groups(self):
        with TestClient(app) as client:
            response = client.get("/api/groups")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [{"id": "crossroads", "strategy": "Priority Actuated", "phases": 2}])

    def test_group_status(self):
        with TestClient(app) as client:
            response = client.get("/api/groups/crossroads")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["groupId"], "crossroads")
        self.assertIn(body["phaseState"], ["STEADY", "INTERGREEN", "ALL_RED"])
        self.assertEqual(sorted(s["name"] for s in body["signals"]), ["E", "N", "S", "W"])

    def test_unknown_group(self):
        with TestClient(app) as client:
            self.assertEqual(client.get("/api/groups/nowhere").status_code, 404)
            self.assertEqual(client.get("/api/groups/nowhere/costs").status_code, 404)

    def test_costs(self):
        with TestClient(app) as client:
            response = client.get("/api/groups/crossroads/costs")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(sorted(body["delayCostByUrgency"]), ["1", "2", "3", "4", "5"])
        self.assertGreaterEqual(body["cumulativeDelayCost"], 0.0)

    def test_broadcast_queued(self):
        payload = {"vehicle_id": 77, "urgency": 3, "speed": 0.0, "delay_time": 12.0, "distance": 8.0}
        with TestClient(app) as client:
            response = client.post("/api/groups/crossroads/signals/E/approaches", json=payload)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "queued")
        self.assertEqual(response.json()["vehicleId"], 77)
        self.assertIn("crossroads", kernel.groups)

    def test_broadcast_rejected(self):
        payload = {"vehicle_id": 78, "urgency": 3}
        with TestClient(app) as client:
            unknown_signal = client.post("/api/groups/crossroads/signals/Z/approaches", json=payload)
            bad_urgency = client.post("/api/groups/crossroads/signals/E/approaches",
                                      json={"vehicle_id": 79, "urgency": 9})
        self.assertEqual(unknown_signal.status_code, 404)
        self.assertEqual(bad_urgency.status_code, 422)

    def test_root(self):
        with TestClient(app) as client:
            response = client.get("/")
        self.assertEqual(response.json()["status"], "Signal Control Core Running")


if __name__ == '__main__':
    unittest.main()
