import logging
from typing import Dict, List, Optional

from signal_control.controllers.base import ControlStrategy
from signal_control.domain.models import CycleTarget, Phase, StrategyConfig
from signal_control.systems.signal_head import SignalHead

logger = logging.getLogger(__name__)

class ScatsDataStrategy(ControlStrategy):
    """Replays green allocations from an adaptive-control feed.

    Each cycle target maps phase ids to green seconds. Phases are served in definition
    order, each for its target (intergreen and all-red included), and consumed from the
    pending map; an exhausted map pulls the next cycle from the feed. A phase with no
    other phase to hand over to runs on into the next cycle.
    """

    name = "SCATS Data Strategy"

    def __init__(self, strategy: StrategyConfig, phases: List[Phase], heads: Dict[str, SignalHead],
                 feed_reader=None):
        super().__init__(phases, heads)
        self.feed_reader = feed_reader
        self.initialized = False
        self.target_phase_duration = 0.0
        self.target_phase_durations: Dict[str, int] = {}
        self.current_cycle: Optional[CycleTarget] = None
        self.current_cycle_duration = 0.0
        self.target_cycle_duration: Optional[int] = None
        self.next_cycle_on_phase_change = True
        if feed_reader is None:
            logger.warning("SCATS data strategy without a feed, phases will not change")

    def pull_cycle(self) -> bool:
        if self.feed_reader is None:
            return False
        cycle = self.feed_reader.next_cycle()
        if cycle is None:
            logger.debug("no new cycle from feed, keeping last targets")
            return False
        self.current_cycle = cycle
        self.target_cycle_duration = cycle.cycle_duration
        known = {phase.id for phase in self.phases}
        unknown = sorted(set(cycle.phase_durations) - known)
        if unknown:
            # never served, would keep the pending map from running out
            logger.warning("feed lists phases %s not defined for this group, ignored", unknown)
        self.target_phase_durations = {
            phase_id: duration for phase_id, duration in cycle.phase_durations.items() if phase_id in known
        }
        logger.info("new cycle targets %s (cycle %ds)", self.target_phase_durations, cycle.cycle_duration)
        return True

    def update(self, dt: float):
        if self.feed_reader is None:
            return

        if not self.initialized:
            self.initialized = True
            self.pull_cycle()
            # zero target hands over at once to the first phase that has one
            self.target_phase_duration = float(self.target_phase_durations.pop(self.current_phase.id, 0))

        self.current_phase_duration += dt
        self.current_cycle_duration += dt

        if self.next_phase_index is None:
            self.determine_next_phase_index()

    def determine_next_phase_index(self):
        phase = self.current_phase
        if self.current_phase_duration + phase.intergreen + phase.all_red < self.target_phase_duration:
            return

        if not self.target_phase_durations:
            self.pull_cycle()
            self.next_cycle_on_phase_change = True

        count = len(self.phases)
        for offset in range(1, count):
            index = (self.current_phase_index + offset) % count
            phase_id = self.phases[index].id
            if phase_id in self.target_phase_durations:
                self.next_phase_index = index
                self.target_phase_duration = float(self.target_phase_durations.pop(phase_id))
                return

        # nothing to hand over to, current phase runs on
        self.current_phase_duration = 0.0
        if self.next_cycle_on_phase_change:
            self.current_cycle_duration = 0.0
            self.next_cycle_on_phase_change = False
        if phase.id in self.target_phase_durations:
            self.target_phase_duration = float(self.target_phase_durations.pop(phase.id))

    def check_next_phase_request(self) -> bool:
        if self.next_phase_index is None:
            return False
        return self.phase_minimum_fulfilled(self.current_phase)

    def acknowledge_next_phase_set(self, index: int):
        super().acknowledge_next_phase_set(index)
        if self.next_cycle_on_phase_change:
            self.current_cycle_duration = 0.0
            self.next_cycle_on_phase_change = False
