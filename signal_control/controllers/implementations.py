import logging
from typing import Dict, List, Optional

from signal_control.controllers.base import ControlStrategy
from signal_control.domain.models import Phase, StrategyConfig, TriggerCondition
from signal_control.systems.signal_head import SignalHead

logger = logging.getLogger(__name__)

class VehicleActuatedStrategy(ControlStrategy):
    """Gap-out / max-out actuation.

    The gap timer restarts whenever a vehicle is detected in front of a green head of
    the current phase. The next phase is the first one after the current (in index
    order, wrapping) whose trigger is satisfied.
    """

    name = "Vehicle Actuated"

    def __init__(self, strategy: StrategyConfig, phases: List[Phase], heads: Dict[str, SignalHead]):
        super().__init__(phases, heads)
        self.condition_gap_time = strategy.gap_time
        self.condition_range = strategy.detection_range
        self.current_gap_duration = 0.0

    def update(self, dt: float):
        self.current_phase_duration += dt
        self.current_gap_duration += dt
        if self.next_phase_index is not None:
            self.current_maximum_duration += dt

        self._update_gap_timer(self.current_phase)
        if self.next_phase_index is None:
            self._set_next_phase_index()

    def _update_gap_timer(self, phase: Phase):
        for head_name in phase.green_heads():
            if self.heads[head_name].detects_vehicle_within(self.condition_range):
                self.current_gap_duration = 0.0
                return

    def trigger_fulfilled(self, phase: Phase) -> bool:
        request_states = [s for s in phase.states if s.condition == TriggerCondition.REQUEST]
        if not request_states:
            # recall phase, always served in turn
            return True
        for state in request_states:
            if self.heads[state.name].detects_vehicle_within(self.condition_range):
                logger.debug("trigger fulfilled for signal %s", state.name)
                return True
        return False

    def _set_next_phase_index(self):
        count = len(self.phases)
        for offset in range(1, count):
            target = (self.current_phase_index + offset) % count
            if self.trigger_fulfilled(self.phases[target]):
                logger.debug("vehicle actuated: phase %d -> %d", self.current_phase_index, target)
                self.next_phase_index = target
                return

    def gap_timeout_fulfilled(self) -> bool:
        return self.current_gap_duration > self.condition_gap_time

    def check_next_phase_request(self) -> bool:
        if self.next_phase_index is None:
            return False
        phase = self.current_phase
        return self.phase_minimum_fulfilled(phase) and (
            self.gap_timeout_fulfilled() or self.phase_maximum_fulfilled(phase))

    def acknowledge_next_phase_set(self, index: int):
        super().acknowledge_next_phase_set(index)
        self.current_gap_duration = 0.0


class PriorityActuatedStrategy(ControlStrategy):
    """Serves the phase whose waiting vehicles cost the most.

    The delay cost of every alternative phase's green heads is weighed against the cost
    of stopping the vehicles approaching the current green; the best alternative wins
    only when it is strictly higher.
    """

    name = "Priority Actuated"

    def __init__(self, strategy: StrategyConfig, phases: List[Phase], heads: Dict[str, SignalHead]):
        super().__init__(phases, heads)
        self.condition_gap_time = strategy.gap_time
        self.condition_range = strategy.detection_range

    def update(self, dt: float):
        self.current_phase_duration += dt
        if self.next_phase_index is not None:
            self.current_maximum_duration += dt

        if self.next_phase_index is None:
            self._set_next_phase_index()

    def phase_delay_cost(self, phase: Phase) -> float:
        return sum(self.heads[name].delay_cost() for name in phase.green_heads())

    def phase_stopping_cost(self, phase: Phase) -> float:
        return sum(self.heads[name].approach_cost(0) for name in phase.green_heads())

    def highest_priority_phase(self) -> int:
        highest_cost = 0.0
        highest_index = self.current_phase_index
        for i, phase in enumerate(self.phases):
            if i == self.current_phase_index:
                continue
            cost = self.phase_delay_cost(phase)
            logger.debug("phase %d delay cost %.4f", i, cost)
            if cost > highest_cost:
                highest_cost = cost
                highest_index = i

        stopping_cost = self.phase_stopping_cost(self.current_phase)
        if highest_index != self.current_phase_index and stopping_cost < highest_cost:
            logger.debug("phase %d delay cost %.4f exceeds stopping cost %.4f",
                         highest_index, highest_cost, stopping_cost)
            return highest_index
        return self.current_phase_index

    def _set_next_phase_index(self):
        target = self.highest_priority_phase()
        if target != self.current_phase_index:
            self.next_phase_index = target

    def check_next_phase_request(self) -> bool:
        if self.next_phase_index is None:
            return False
        return self.phase_minimum_fulfilled(self.current_phase)


class PriorityLookaheadStrategy(PriorityActuatedStrategy):
    """Priority actuation that may hold the green a few more seconds.

    Once a switch would be allowed, every horizon 0..lookahead is priced by the delay
    and stopping cost of the vehicles that would not have cleared the stop line by
    then, and the green is extended by the cheapest horizon (first one on ties).
    """

    name = "Priority Lookahead"

    def __init__(self, strategy: StrategyConfig, phases: List[Phase], heads: Dict[str, SignalHead]):
        super().__init__(strategy, phases, heads)
        self.condition_lookahead = strategy.lookahead
        self.current_extended_green_duration = 0.0
        self.target_extended_green_time = 0.0

    def update(self, dt: float):
        if self.target_extended_green_time != 0 and not self.extended_green_fulfilled():
            self.current_extended_green_duration += dt
        super().update(dt)

    def extended_green_fulfilled(self) -> bool:
        return self.current_extended_green_duration >= self.target_extended_green_time

    def cost_at_horizon(self, horizon: float) -> float:
        cost = 0.0
        for head in self.heads.values():
            for approach in head.vehicle_approaches():
                if not approach.clears_within(horizon):
                    cost += approach.estimated_total_cost(horizon, horizon)
        return cost

    def determine_target_extended_green_time(self):
        min_cost: Optional[float] = None
        min_horizon = 0
        for horizon in range(0, self.condition_lookahead + 1):
            cost = self.cost_at_horizon(horizon)
            if min_cost is None or cost < min_cost:
                min_cost = cost
                min_horizon = horizon
        self.target_extended_green_time = float(min_horizon)
        logger.debug("lookahead extends phase %d by %ds (cost %.4f)",
                     self.current_phase_index, min_horizon, min_cost)

    def check_next_phase_request(self) -> bool:
        if self.next_phase_index is None:
            return False
        minimum = self.phase_minimum_fulfilled(self.current_phase)
        if minimum and self.target_extended_green_time <= 0:
            self.determine_target_extended_green_time()
        return minimum and self.extended_green_fulfilled()

    def acknowledge_next_phase_set(self, index: int):
        super().acknowledge_next_phase_set(index)
        self.current_extended_green_duration = 0.0
        self.target_extended_green_time = 0.0
