import random
import unittest

from signal_control.domain import config
from signal_control.domain.errors import ConfigurationError
from signal_control.domain.models import SignalStatus
from signal_control.domain.vehicles import VehicleClass, stop_cost
from signal_control.systems.signal_head import SignalHead

from fixtures import record


class TestSignalHead(unittest.TestCase):
    def setUp(self):
        self.completed = []
        self.head = SignalHead("A1", "G1", self.completed.append)

    def test_latest_broadcast_replaces_record(self):
        self.head.add_approach(7, record(7, distance=80.0))
        self.head.add_approach(7, record(7, distance=40.0))

        self.assertEqual(len(self.head.approaches), 1)
        self.assertEqual(self.head.approaches[7].distance, 40.0)

    def test_stopped_vehicle_evicted_after_silence(self):
        # urgency 3, stopped, silent for 2.2s
        self.head.add_approach(1, record(1, urgency=3, speed=0.0, delay_time=0.0))

        self.assertEqual(self.head.evict_stale(1.0), [])
        evicted = self.head.evict_stale(1.2)

        self.assertEqual([r.vehicle_id for r in evicted], [1])
        self.assertAlmostEqual(self.head.cumulative_delay_cost, 0.007 * 2.2 * 3)
        self.assertAlmostEqual(self.head.cumulative_delay_time_by_urgency[3], 2.2)
        self.assertEqual(self.head.vehicle_count_by_urgency[3], 1)
        self.assertNotIn(1, self.head.approaches)

        # completed record carries the delay that was charged
        self.assertAlmostEqual(evicted[0].delay_time, 2.2)
        self.assertAlmostEqual(self.completed[0].delay_cost(), self.head.cumulative_delay_cost)

    def test_moving_vehicle_settles_broadcast_delay(self):
        self.head.add_approach(2, record(2, urgency=2, speed=12.0, delay_time=4.0))
        self.head.evict_stale(2.1)

        self.assertAlmostEqual(self.head.cumulative_delay_cost, 0.007 * 4.0 * 2)

    def test_refresh_keeps_record_alive(self):
        self.head.add_approach(3, record(3))
        for _ in range(10):
            self.head.evict_stale(1.0)
            self.head.add_approach(3, record(3))

        self.assertIn(3, self.head.approaches)
        self.assertEqual(self.head.cumulative_delay_cost, 0.0)

    def test_eviction_happens_once(self):
        self.head.add_approach(4, record(4, urgency=5, delay_time=10.0))
        self.head.evict_stale(3.0)
        cost = self.head.cumulative_delay_cost

        self.assertEqual(self.head.evict_stale(3.0), [])
        self.assertEqual(self.head.cumulative_delay_cost, cost)
        self.assertEqual(len(self.completed), 1)
        self.assertEqual(self.head.vehicle_count_by_urgency[5], 1)

    def test_removed_record_is_not_settled(self):
        self.head.add_approach(5, record(5, delay_time=10.0))
        removed = self.head.remove_approach(5)

        self.assertEqual(removed.vehicle_id, 5)
        self.assertEqual(self.head.evict_stale(5.0), [])
        self.assertEqual(self.head.cumulative_delay_cost, 0.0)
        self.assertIsNone(self.head.remove_approach(5))

    def test_incurred_stopping_cost_folded_on_receipt(self):
        self.head.add_approach(6, record(6, incurred_stopping_cost=0.25))
        self.head.add_approach(6, record(6, incurred_stopping_cost=0.0))
        self.head.add_approach(8, record(8, incurred_stopping_cost=0.5))

        self.assertAlmostEqual(self.head.cumulative_stopping_cost, 0.75)
        self.assertAlmostEqual(self.head.stopping_cost_for_phase, 0.75)

        self.head.reset_phase_costs()
        self.assertEqual(self.head.stopping_cost_for_phase, 0.0)
        self.assertAlmostEqual(self.head.cumulative_stopping_cost, 0.75)

    def test_urgency_breakdown_matches_cumulative_cost(self):
        rng = random.Random(7)
        vehicle_id = 0
        for _ in range(300):
            if rng.random() < 0.4:
                vehicle_id += 1
                self.head.add_approach(vehicle_id, record(
                    vehicle_id,
                    urgency=rng.randint(1, 5),
                    speed=rng.choice([0.0, 8.0]),
                    delay_time=rng.uniform(0.0, 30.0),
                ))
            self.head.evict_stale(rng.uniform(0.1, 1.0))

        total = sum(t * config.DELAY_COST_PER_SECOND * u
                    for u, t in self.head.cumulative_delay_time_by_urgency.items())
        self.assertAlmostEqual(total, self.head.cumulative_delay_cost)
        self.assertAlmostEqual(sum(self.head.delay_cost_by_urgency().values()), self.head.cumulative_delay_cost)
        self.assertEqual(sum(self.head.vehicle_count_by_urgency.values()), len(self.completed))

    def test_approach_cost_lookahead(self):
        self.head.add_approach(1, record(1, urgency=2, speed=0.0, delay_time=10.0, stopping_cost=0.0))
        self.head.add_approach(2, record(2, urgency=4, speed=10.0, delay_time=3.0, stopping_cost=0.05))

        # only the stopped vehicle accrues delay over the lookahead
        self.assertAlmostEqual(self.head.approach_cost(0), 0.007 * 10.0 * 2 + 0.05)
        self.assertAlmostEqual(self.head.approach_cost(5), 0.007 * 15.0 * 2 + 0.05)
        self.assertAlmostEqual(self.head.stopping_cost(), 0.05)
        self.assertAlmostEqual(self.head.delay_cost(), 0.007 * (10.0 * 2 + 3.0 * 4))

    def test_average_delay_time_per_urgency(self):
        self.head.add_approach(1, record(1, urgency=1, speed=5.0, delay_time=4.0))
        self.head.add_approach(2, record(2, urgency=1, speed=5.0, delay_time=8.0))
        self.head.evict_stale(2.5)

        averages = self.head.average_delay_time_per_urgency()
        self.assertAlmostEqual(averages[1], 6.0)
        self.assertEqual(averages[5], 0.0)

    def test_detection_range(self):
        self.head.add_approach(1, record(1, distance=45.0))
        self.assertFalse(self.head.detects_vehicle_within(30.0))
        self.head.add_approach(2, record(2, distance=12.0))
        self.assertTrue(self.head.detects_vehicle_within(30.0))


class TestSignalHeadConfiguration(unittest.TestCase):
    def test_status_must_be_registered(self):
        head = SignalHead("N", "G1")
        head.add_possible_status(SignalStatus.RED)
        head.add_possible_status(SignalStatus.GREEN)

        head.set_status(SignalStatus.GREEN)
        self.assertEqual(head.status, SignalStatus.GREEN)
        self.assertEqual(head.light_count, 2)
        with self.assertRaises(ConfigurationError):
            head.set_status(SignalStatus.AMBER)

    def test_position_set_once(self):
        head = SignalHead("N", "G1")
        self.assertFalse(head.has_position)
        with self.assertRaises(ConfigurationError):
            _ = head.position

        head.set_position(190.0)
        self.assertEqual(head.position, 190.0)
        with self.assertRaises(ConfigurationError):
            head.set_position(100.0)


class TestCostFunctions(unittest.TestCase):
    def test_stop_cost_by_class(self):
        # 1400kg at 10m/s: 70kJ -> 0.019444kWh -> 0.005892l of petrol
        self.assertAlmostEqual(stop_cost(1400.0, 10.0, VehicleClass.CAR), 0.0058923 * 1.969, places=6)
        self.assertGreater(stop_cost(11000.0, 15.0, VehicleClass.TRUCK), stop_cost(1400.0, 15.0, VehicleClass.CAR))

    def test_stop_cost_zero_when_not_moving(self):
        self.assertEqual(stop_cost(1400.0, 0.0, VehicleClass.CAR), 0.0)
        self.assertEqual(stop_cost(0.0, 10.0, VehicleClass.BUS), 0.0)

    def test_record_estimates(self):
        moving = record(1, speed=15.0, distance=75.0, acceleration=-2.0)
        self.assertEqual(moving.estimated_clear_time(), 5.0)
        self.assertTrue(moving.clears_within(5))
        self.assertFalse(moving.clears_within(4))
        self.assertEqual(moving.estimated_delay_cost(10), 0.0)
        # speed never goes negative
        self.assertEqual(moving.estimated_stopping_cost(10), 0.0)

        stopped = record(2, urgency=3, speed=0.0, delay_time=2.0)
        self.assertFalse(stopped.clears_within(1000))
        self.assertAlmostEqual(stopped.estimated_delay_cost(3), 0.007 * 5.0 * 3)
        self.assertAlmostEqual(stopped.estimated_total_cost(3, 3), 0.007 * 5.0 * 3)

        cruising = record(3, speed=10.0, distance=200.0)
        self.assertAlmostEqual(cruising.estimated_total_cost(2, 2), stop_cost(1400.0, 10.0, VehicleClass.CAR))


if __name__ == '__main__':
    unittest.main()
