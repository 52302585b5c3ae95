import logging
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from signal_control.domain import config
from signal_control.domain.errors import ConfigurationError
from signal_control.domain.models import ApproachRecord, SignalStatus

logger = logging.getLogger(__name__)


def _urgency_table(initial):
    return {u: initial for u in config.URGENCY_LEVELS}


class SignalHead:
    """A traffic light of a controller group and the vehicles currently approaching it.

    `name` is the signal's name in the group definition and is not unique across the
    network; `group_id` ties the head to its controller group. Live approach records are
    keyed by vehicle id, one per vehicle. A record that is not refreshed within
    `STALENESS_THRESHOLD` seconds is settled into the cost accumulators and dropped.
    """

    def __init__(self, name: str, group_id: str,
                 on_completed_approach: Optional[Callable[[ApproachRecord], None]] = None):
        self.name = name
        self.group_id = group_id
        self.status: Optional[SignalStatus] = None
        self.possible_statuses: Set[SignalStatus] = set()
        self.road: Optional[Tuple[str, str]] = None
        self._position: Optional[float] = None
        self._on_completed_approach = on_completed_approach

        self.approaches: Dict[int, ApproachRecord] = {}
        self.silent_time: Dict[int, float] = {}

        self.cumulative_stopping_cost = 0.0
        self.cumulative_delay_cost = 0.0
        self.cumulative_delay_time_by_urgency: Dict[int, float] = _urgency_table(0.0)
        self.vehicle_count_by_urgency: Dict[int, int] = _urgency_table(0)

        self.stopping_cost_for_phase = 0.0
        self.delay_cost_for_phase = 0.0
        self.phase_delay_time_by_urgency: Dict[int, float] = _urgency_table(0.0)
        self.phase_vehicle_count_by_urgency: Dict[int, int] = _urgency_table(0)

    def __repr__(self):
        return (f"SignalHead(name={self.name!r}, group_id={self.group_id!r}, "
                f"status={self.status}, position={self._position}, road={self.road})")

    # Status

    def add_possible_status(self, status: SignalStatus):
        self.possible_statuses.add(SignalStatus(status))

    def set_status(self, status: SignalStatus):
        status = SignalStatus(status)
        if status not in self.possible_statuses:
            raise ConfigurationError(f"signal {self.name!r} cannot show {status.value}")
        self.status = status

    @property
    def light_count(self) -> int:
        return min(3, len(self.possible_statuses))

    # Position

    @property
    def has_position(self) -> bool:
        return self._position is not None

    @property
    def position(self) -> float:
        if self._position is None:
            raise ConfigurationError(f"signal {self.name!r} in group {self.group_id!r} has no position")
        return self._position

    def set_position(self, position: float, road: Optional[Tuple[str, str]] = None):
        if self._position is not None:
            raise ConfigurationError(f"position already set: {self!r}")
        self._position = float(position)
        self.road = road

    # Approaches

    def add_approach(self, vehicle_id: int, record: ApproachRecord):
        if record.incurred_stopping_cost != 0:
            # vehicle had already stopped before it broadcast
            self.cumulative_stopping_cost += record.incurred_stopping_cost
            self.stopping_cost_for_phase += record.incurred_stopping_cost
        self.approaches[vehicle_id] = record
        self.silent_time[vehicle_id] = 0.0

    def remove_approach(self, vehicle_id: int) -> Optional[ApproachRecord]:
        self.silent_time.pop(vehicle_id, None)
        return self.approaches.pop(vehicle_id, None)

    def vehicle_approaches(self) -> List[ApproachRecord]:
        return list(self.approaches.values())

    def evict_stale(self, dt: float) -> List[ApproachRecord]:
        """Ages every live record and settles the ones that stopped broadcasting."""
        stale = []
        for vehicle_id in list(self.silent_time):
            self.silent_time[vehicle_id] += dt
            if self.silent_time[vehicle_id] > config.STALENESS_THRESHOLD:
                stale.append(vehicle_id)

        evicted = []
        for vehicle_id in stale:
            silent = self.silent_time.pop(vehicle_id)
            record = self._settle(self.approaches.pop(vehicle_id), silent)
            evicted.append(record)
            if self._on_completed_approach is not None:
                self._on_completed_approach(record)
        return evicted

    def _settle(self, record: ApproachRecord, silent: float) -> ApproachRecord:
        """Folds the record into the accumulators, returns it with the delay actually charged."""
        delay_time = record.delay_time
        if record.is_stopped:
            # still waiting while silent
            delay_time += silent
        cost = record.delay_cost(delay_time)
        urgency = record.urgency

        self.cumulative_delay_cost += cost
        self.cumulative_delay_time_by_urgency[urgency] += delay_time
        self.vehicle_count_by_urgency[urgency] += 1

        self.delay_cost_for_phase += cost
        self.phase_delay_time_by_urgency[urgency] += delay_time
        self.phase_vehicle_count_by_urgency[urgency] += 1
        logger.debug("signal %s settled vehicle %d: delay %.2fs cost %.4f",
                     self.name, record.vehicle_id, delay_time, cost)
        return record.model_copy(update={"delay_time": delay_time})

    # Costs

    def approach_cost(self, lookahead: float = 0.0) -> float:
        return sum(r.stopping_cost + r.estimated_delay_cost(lookahead) for r in self.approaches.values())

    def stopping_cost(self) -> float:
        return sum(r.stopping_cost for r in self.approaches.values())

    def delay_cost(self) -> float:
        return sum(r.delay_cost() for r in self.approaches.values())

    def delay_cost_by_urgency(self) -> Dict[int, float]:
        return {
            u: t * config.DELAY_COST_PER_SECOND * u
            for u, t in self.cumulative_delay_time_by_urgency.items()
        }

    def average_delay_time_per_urgency(self) -> Dict[int, float]:
        return {
            u: (self.cumulative_delay_time_by_urgency[u] / n if n else 0.0)
            for u, n in self.vehicle_count_by_urgency.items()
        }

    def reset_phase_costs(self):
        self.stopping_cost_for_phase = 0.0
        self.delay_cost_for_phase = 0.0
        self.phase_delay_time_by_urgency = _urgency_table(0.0)
        self.phase_vehicle_count_by_urgency = _urgency_table(0)

    # Detection

    def detects_vehicle_within(self, detection_range: float) -> bool:
        return any(r.distance < detection_range for r in self.approaches.values())


def aggregate(heads: Iterable[SignalHead], attr: str) -> float:
    return sum(getattr(head, attr) for head in heads)
