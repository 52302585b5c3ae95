import json
import random
import time
from typing import Dict, List, Optional

from signal_control.controllers.adaptive import ScatsDataStrategy
from signal_control.domain import config
from signal_control.domain.loader import default_simulation_config, load_simulation_config
from signal_control.domain.models import ApproachRecord, SignalStatus
from signal_control.domain.vehicles import VehicleClass, sample_urgency, stop_cost
from signal_control.kernel.commands import BroadcastApproachCommand
from signal_control.kernel.control_group import ControlGroup
from signal_control.kernel.simulation_kernel import SimulationKernel
from signal_control.output.recorder import MemoryRecorder

VEHICLE_MASS = {VehicleClass.CAR: 1400.0, VehicleClass.BUS: 11000.0, VehicleClass.TRUCK: 11000.0}
VEHICLE_MIX = ((VehicleClass.CAR, 0.85), (VehicleClass.BUS, 0.05), (VehicleClass.TRUCK, 0.10))
STOP_LINE_GAP = 5.0
BRAKING = 3.0

class SyntheticVehicle:
    def __init__(self, vehicle_id: int, group_id: str, signal: str, vehicle_class: VehicleClass,
                 urgency: int, speed: float, broadcast_ticks: int):
        self.id = vehicle_id
        self.group_id = group_id
        self.signal = signal
        self.vehicle_class = vehicle_class
        self.urgency = urgency
        self.cruise_speed = speed
        self.speed = speed
        self.acceleration = 0.0
        self.distance = config.COMMUNICATION_RANGE
        self.delay_time = 0.0
        self.incurred_stopping_cost = 0.0
        self.ticks_since_broadcast = broadcast_ticks  # broadcast on arrival

class SyntheticDemand:
    """Seeded vehicles arriving at every signal head of the kernel's groups.

    Vehicles brake for a non-green head, queue at the stop line while it stays red and
    broadcast their approach every BROADCAST_INTERVAL seconds until they cross it.
    """

    def __init__(self, kernel: SimulationKernel, seed: int = 42, arrival_rate: float = 0.05):
        self.kernel = kernel
        self.rng = random.Random(seed)
        self.arrival_rate = arrival_rate  # vehicles per second per head
        self.vehicles: List[SyntheticVehicle] = []
        self._next_id = 1
        # whole ticks, summed float steps drift past the staleness threshold
        self.broadcast_ticks = max(1, round(config.BROADCAST_INTERVAL / kernel.dt))

    def _spawn(self, group_id: str, signal: str):
        classes, weights = zip(*VEHICLE_MIX)
        vehicle_class = self.rng.choices(classes, weights=weights, k=1)[0]
        vehicle = SyntheticVehicle(
            vehicle_id=self._next_id,
            group_id=group_id,
            signal=signal,
            vehicle_class=vehicle_class,
            urgency=sample_urgency(vehicle_class, self.rng),
            speed=self.rng.uniform(10.0, 16.0),
            broadcast_ticks=self.broadcast_ticks,
        )
        self._next_id += 1
        self.vehicles.append(vehicle)

    def arrival_rate_for(self, group: ControlGroup, signal: str) -> float:
        """Vehicles per second arriving at `signal`.

        Groups replaying a SCATS feed with an approach mapping follow the measured inflow
        of the current cycle; everything else uses the fixed rate.
        """
        feed = group.config.feed
        strategy = group.strategy
        if (feed is None or not feed.approaches or not isinstance(strategy, ScatsDataStrategy)
                or strategy.current_cycle is None):
            return self.arrival_rate
        return sum(
            rate for approach, rate in strategy.current_cycle.inflow_rates().items()
            if feed.approaches.get(approach) == signal
        )

    def step(self, dt: float):
        for group in self.kernel.groups.values():
            for head in group.signal_heads():
                if self.rng.random() < self.arrival_rate_for(group, head.name) * dt:
                    self._spawn(group.group_id, head.name)

        for vehicle in list(self.vehicles):
            head = self.kernel.groups[vehicle.group_id].heads[vehicle.signal]
            self._move(vehicle, head.status, dt)
            if vehicle.distance <= 0.0:
                # crossed the stop line, goes quiet and is settled by the head
                self.vehicles.remove(vehicle)
                continue
            if vehicle.ticks_since_broadcast >= self.broadcast_ticks:
                self._broadcast(vehicle)
                vehicle.ticks_since_broadcast = 0
            vehicle.ticks_since_broadcast += 1

    def _move(self, vehicle: SyntheticVehicle, status: Optional[SignalStatus], dt: float):
        if status == SignalStatus.GREEN:
            vehicle.acceleration = 0.0
            vehicle.speed = vehicle.cruise_speed
            vehicle.distance -= vehicle.speed * dt
            return

        if vehicle.distance <= STOP_LINE_GAP:
            if vehicle.speed > config.STOPPED_SPEED:
                vehicle.incurred_stopping_cost += stop_cost(
                    VEHICLE_MASS[vehicle.vehicle_class], vehicle.cruise_speed, vehicle.vehicle_class)
            vehicle.speed = 0.0
            vehicle.acceleration = 0.0
            vehicle.delay_time += dt
            return

        vehicle.acceleration = -BRAKING
        vehicle.speed = max(1.0, vehicle.speed - BRAKING * dt)
        vehicle.distance = max(STOP_LINE_GAP, vehicle.distance - vehicle.speed * dt)

    def _broadcast(self, vehicle: SyntheticVehicle):
        mass = VEHICLE_MASS[vehicle.vehicle_class]
        record = ApproachRecord(
            vehicle_id=vehicle.id,
            urgency=vehicle.urgency,
            mass=mass,
            acceleration=vehicle.acceleration,
            speed=vehicle.speed,
            delay_time=vehicle.delay_time,
            stopping_cost=stop_cost(mass, vehicle.speed, vehicle.vehicle_class),
            passengers=1,
            distance=vehicle.distance,
            vehicle_class=vehicle.vehicle_class,
            incurred_stopping_cost=vehicle.incurred_stopping_cost,
        )
        # settled once, later broadcasts carry no new stop
        vehicle.incurred_stopping_cost = 0.0
        self.kernel.queue_command(BroadcastApproachCommand(vehicle.group_id, vehicle.signal, record))


def run_headless_experiment(config_path: Optional[str], output_path: str, duration_ticks: int = 3000,
                            seed: int = 42) -> Dict:
    sim_config = load_simulation_config(config_path) if config_path else default_simulation_config()
    recorders = {group.id: MemoryRecorder() for group in sim_config.groups}

    kernel = SimulationKernel()
    kernel.load(sim_config, recorders)
    demand = SyntheticDemand(kernel, seed=seed)

    results = []
    start_time = time.time()
    for i in range(duration_ticks):
        demand.step(kernel.dt)
        kernel.run_tick()
        if i % config.DATA_RECORD_EVERY == 0:
            results.append({
                "tick": i,
                "time": round(kernel.state.time, 3),
                "groups": {
                    group_id: {
                        "phase": group.current_phase.id,
                        "state": group.phase_state.value,
                        "cumulativeDelayCost": round(group.cumulative_delay_cost, 4),
                        "cumulativeStoppingCost": round(group.cumulative_stopping_cost, 4),
                    }
                    for group_id, group in kernel.groups.items()
                },
            })
    kernel.finish()

    end_time = time.time()
    print(f"Experiment finished in {end_time - start_time:.4f}s")

    output = {
        "seed": seed,
        "ticks": results,
        "groups": {
            group_id: {"phases": recorder.phases, "summary": recorder.summary}
            for group_id, recorder in recorders.items()
        },
    }
    with open(output_path, 'w') as f:
        json.dump(output, f, indent=2)
    return output

if __name__ == "__main__":
    import sys
    if len(sys.argv) > 2:
        config_arg = None if sys.argv[1] == "-" else sys.argv[1]
        ticks = int(sys.argv[3]) if len(sys.argv) > 3 else 3000
        run_headless_experiment(config_arg, sys.argv[2], duration_ticks=ticks)
    else:
        print("Usage: python -m signal_control.experiments.run_experiment <config|-> <output> [ticks]")
