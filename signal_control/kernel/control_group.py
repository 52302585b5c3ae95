import logging
from typing import Dict, List, Optional

from signal_control.controllers.base import ControlStrategy
from signal_control.controllers.factory import create_strategy
from signal_control.domain import config
from signal_control.domain.errors import ConfigurationError
from signal_control.domain.models import (
    ApproachRecord, ControllerGroupConfig, Phase, PhaseState, SignalStatus, StrategyType
)
from signal_control.domain.state import ControlGroupState
from signal_control.feeds.scats_reader import ScatsFeedReader
from signal_control.output.recorder import NullRecorder, Recorder
from signal_control.systems.signal_head import SignalHead, aggregate

logger = logging.getLogger(__name__)

class ControlGroup:
    """Phase state machine of one signalised intersection.

    Every tick the strategy is consulted; once it asks for a change the group runs
    STEADY -> INTERGREEN -> ALL_RED -> STEADY(next), holding each clearance step for
    the vacated phase's configured time before committing the new phase.
    """

    def __init__(self, group_config: ControllerGroupConfig, recorder: Optional[Recorder] = None,
                 feed_reader=None, status_interval: float = config.STATUS_INTERVAL):
        self.group_id = group_config.id
        self.config = group_config
        self.phases: List[Phase] = list(group_config.phases)
        self.recorder: Recorder = recorder or NullRecorder()
        self.state = ControlGroupState()
        self.status_interval = status_interval
        self._next_status_time = status_interval

        phase_ids = [phase.id for phase in self.phases]
        if len(phase_ids) != len(set(phase_ids)):
            raise ConfigurationError(f"duplicate phase ids in controller group {self.group_id!r}")

        self.heads: Dict[str, SignalHead] = {}
        self._create_signal_heads()

        strategy_config = group_config.strategy
        self._owns_feed_reader = False
        if feed_reader is None and strategy_config.type == StrategyType.SCATS_DATA and group_config.feed:
            feed = group_config.feed
            feed_reader = ScatsFeedReader(feed.path, feed.intersection_id, feed.layout)
            self._owns_feed_reader = True
        self.feed_reader = feed_reader
        self.strategy: ControlStrategy = create_strategy(strategy_config, self.phases, self.heads, feed_reader)

        self._apply_phase(self.phases[0])
        logger.info("Controller group %s: %d phases, %d signals, strategy %s",
                    self.group_id, len(self.phases), len(self.heads), self.strategy.name)

    def _create_signal_heads(self):
        for phase in self.phases:
            for head_state in phase.states:
                head = self.heads.get(head_state.name)
                if head is None:
                    head = SignalHead(head_state.name, self.group_id, self._record_completed_approach)
                    # every head goes red during all-red
                    head.add_possible_status(SignalStatus.RED)
                    self.heads[head_state.name] = head
                if phase.intergreen > 0:
                    head.add_possible_status(SignalStatus.AMBER)
                head.add_possible_status(head_state.status)

    def _record_completed_approach(self, record: ApproachRecord):
        self.recorder.record_completed_approach(record)

    # Tick

    def tick(self, dt: float, sim_time: float, iteration_count: int):
        state = self.state
        state.phase_duration += dt
        if state.intergreen:
            state.intergreen_duration += dt
        if state.all_red:
            state.all_red_duration += dt

        self.strategy.update(dt)

        if not state.change_pending and self.strategy.check_next_phase_request():
            state.change_pending = True
            state.pending_next_phase_index = self._checked_index(self.strategy.get_next_phase_index())

        if state.change_pending:
            self._drive_clearance(sim_time, iteration_count)

        for head in self.heads.values():
            head.evict_stale(dt)

        self.recorder.record_data(sim_time, iteration_count, self.heads.values())
        while sim_time >= self._next_status_time:
            self.recorder.record_time_interval(sim_time)
            self._next_status_time += self.status_interval

    def _checked_index(self, index: Optional[int]) -> Optional[int]:
        if index is None:
            return None
        if not 0 <= index < len(self.phases):
            logger.warning("group %s: strategy %s asked for phase index %s, running on in order",
                           self.group_id, self.strategy.name, index)
            return None
        return index

    def _drive_clearance(self, sim_time: float, iteration_count: int):
        state = self.state
        phase = self.current_phase

        if not state.intergreen and not state.all_red:
            self._set_intergreen(phase)

        if state.intergreen and state.intergreen_duration >= phase.intergreen:
            self._set_all_red(phase)

        if state.all_red and state.all_red_duration >= phase.all_red:
            self._next_phase(sim_time, iteration_count)

    def _set_intergreen(self, phase: Phase):
        # green lights show amber, red lights stay red
        logger.debug("group %s: phase %s intergreen", self.group_id, phase.id)
        if phase.intergreen > 0:
            for head_state in phase.states:
                if head_state.status == SignalStatus.GREEN:
                    self.heads[head_state.name].set_status(SignalStatus.AMBER)
        self.state.intergreen = True
        self.state.intergreen_duration = 0.0

    def _set_all_red(self, phase: Phase):
        logger.debug("group %s: phase %s all red", self.group_id, phase.id)
        for head_state in phase.states:
            self.heads[head_state.name].set_status(SignalStatus.RED)
        self.state.intergreen = False
        self.state.all_red = True
        self.state.all_red_duration = 0.0

    def _next_phase(self, sim_time: float, iteration_count: int):
        state = self.state
        next_index = state.pending_next_phase_index
        if next_index is None:
            next_index = (state.current_phase_index + 1) % len(self.phases)

        state.clear_transition(next_index)
        self._apply_phase(self.phases[next_index])
        self.strategy.acknowledge_next_phase_set(next_index)
        logger.info("group %s: phase %s (index %d) at %.2fs",
                    self.group_id, self.phases[next_index].id, next_index, sim_time)

        # settle the finished phase before its counters restart
        self.recorder.record_phase_boundary(sim_time, iteration_count, state.phase_count,
                                            self.strategy.name, self.heads.values())
        for head in self.heads.values():
            head.reset_phase_costs()

    def _apply_phase(self, phase: Phase):
        for head_state in phase.states:
            self.heads[head_state.name].set_status(head_state.status)

    def finish(self):
        self.recorder.record_final_summary()
        if self._owns_feed_reader:
            self.feed_reader.close()

    # Queries

    def signal_head(self, name: str) -> SignalHead:
        head = self.heads.get(name)
        if head is None:
            raise ConfigurationError(f"signal {name!r} not defined in controller group {self.group_id!r}")
        return head

    def signal_heads(self) -> List[SignalHead]:
        return list(self.heads.values())

    @property
    def current_phase(self) -> Phase:
        return self.phases[self.state.current_phase_index]

    @property
    def current_phase_index(self) -> int:
        return self.state.current_phase_index

    @property
    def next_phase_index(self) -> Optional[int]:
        if self.state.change_pending:
            return self.state.pending_next_phase_index
        return self.strategy.get_next_phase_index()

    @property
    def phase_time(self) -> float:
        return self.state.phase_duration

    @property
    def phase_state(self) -> PhaseState:
        return self.state.phase_state

    @property
    def phase_count(self) -> int:
        return self.state.phase_count

    @property
    def total_stopping_cost(self) -> float:
        return sum(head.stopping_cost() for head in self.heads.values())

    @property
    def total_delay_cost(self) -> float:
        return sum(head.delay_cost() for head in self.heads.values())

    @property
    def cumulative_stopping_cost(self) -> float:
        return aggregate(self.heads.values(), "cumulative_stopping_cost")

    @property
    def cumulative_delay_cost(self) -> float:
        return aggregate(self.heads.values(), "cumulative_delay_cost")

    def delay_cost_by_urgency(self) -> Dict[int, float]:
        totals = {u: 0.0 for u in config.URGENCY_LEVELS}
        for head in self.heads.values():
            for u, cost in head.delay_cost_by_urgency().items():
                totals[u] += cost
        return totals

    def average_delay_time_per_urgency(self) -> Dict[int, float]:
        result = {}
        for u in config.URGENCY_LEVELS:
            delay = sum(head.cumulative_delay_time_by_urgency[u] for head in self.heads.values())
            count = sum(head.vehicle_count_by_urgency[u] for head in self.heads.values())
            result[u] = delay / count if count else 0.0
        return result
