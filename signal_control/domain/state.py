from typing import Optional
from pydantic import BaseModel

from signal_control.domain.models import PhaseState

class ControlGroupState(BaseModel):
    """Timers and clearance flags of one controller group.

    At most one of `intergreen` / `all_red` is set; both clear means the group is steady.
    """

    current_phase_index: int = 0
    pending_next_phase_index: Optional[int] = None
    change_pending: bool = False
    phase_count: int = 0

    phase_duration: float = 0.0
    intergreen_duration: float = 0.0
    all_red_duration: float = 0.0

    intergreen: bool = False
    all_red: bool = False

    @property
    def phase_state(self) -> PhaseState:
        if self.intergreen:
            return PhaseState.INTERGREEN
        if self.all_red:
            return PhaseState.ALL_RED
        return PhaseState.STEADY

    def clear_transition(self, next_index: int):
        self.current_phase_index = next_index
        self.pending_next_phase_index = None
        self.change_pending = False
        self.intergreen = False
        self.all_red = False
        self.phase_duration = 0.0
        self.intergreen_duration = 0.0
        self.all_red_duration = 0.0
        self.phase_count += 1

class SimulationState(BaseModel):
    tick_id: int = 0
    time: float = 0.0
