from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from signal_control.domain.models import Phase
from signal_control.systems.signal_head import SignalHead

class ControlStrategy(ABC):
    """Decides when a controller group leaves its phase and which phase comes next."""

    name = "Control Strategy"

    def __init__(self, phases: List[Phase], heads: Dict[str, SignalHead]):
        self.phases = phases
        self.heads = heads
        self.current_phase_index = 0
        self.next_phase_index: Optional[int] = None
        self.current_phase_duration = 0.0
        self.current_maximum_duration = 0.0

    @abstractmethod
    def update(self, dt: float):
        """Advance timers by `dt` and arm a next phase if one is wanted."""

    @abstractmethod
    def check_next_phase_request(self) -> bool:
        """True when the group should leave the current phase now."""

    def get_next_phase_index(self) -> Optional[int]:
        return self.next_phase_index

    def acknowledge_next_phase_set(self, index: int):
        self.current_phase_index = index
        self.next_phase_index = None
        self.current_phase_duration = 0.0
        self.current_maximum_duration = 0.0

    @property
    def current_phase(self) -> Phase:
        return self.phases[self.current_phase_index]

    def phase_minimum_fulfilled(self, phase: Phase) -> bool:
        return self.current_phase_duration > phase.min_duration

    def phase_maximum_fulfilled(self, phase: Phase) -> bool:
        return self.current_maximum_duration + phase.intergreen + phase.all_red > phase.max_duration
