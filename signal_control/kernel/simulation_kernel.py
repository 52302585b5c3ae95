import logging
from collections import deque
from typing import Deque, Dict, List, Optional

from signal_control.domain import config
from signal_control.domain.errors import ConfigurationError
from signal_control.domain.graph import RoadNetwork
from signal_control.domain.loader import SimulationConfig, build_road_network
from signal_control.domain.models import ControllerGroupConfig
from signal_control.domain.state import SimulationState
from signal_control.kernel.commands import Command
from signal_control.kernel.control_group import ControlGroup
from signal_control.output.recorder import Recorder

logger = logging.getLogger(__name__)

class SimulationKernel:
    """Steps every controller group once per tick on the calling thread.

    Groups never share signal heads; vehicle broadcasts arrive as queued commands
    and are applied at the start of the next tick.
    """

    def __init__(self, dt: float = config.KERNEL_DT):
        self.state = SimulationState()
        self.dt = dt
        self.groups: Dict[str, ControlGroup] = {}
        self.road_network: Optional[RoadNetwork] = None
        self.command_queue: Deque[Command] = deque()

    def load(self, sim_config: SimulationConfig, recorders: Optional[Dict[str, Recorder]] = None):
        recorders = recorders or {}
        self.road_network = build_road_network(sim_config)
        for group_config in sim_config.groups:
            group = self.add_group(group_config, recorder=recorders.get(group_config.id))
            for placement in group_config.placements:
                u, v = placement.road
                self.road_network.place_signal(group.signal_head(placement.signal), u, v, placement.position)
        logger.info("Kernel loaded %d groups (dt=%.3fs)", len(self.groups), self.dt)

    def add_group(self, group_config: ControllerGroupConfig, recorder: Optional[Recorder] = None,
                  feed_reader=None) -> ControlGroup:
        if group_config.id in self.groups:
            raise ConfigurationError(f"controller group {group_config.id!r} already exists")
        group = ControlGroup(group_config, recorder=recorder, feed_reader=feed_reader)
        self.groups[group.group_id] = group
        return group

    def get_group(self, group_id: str) -> ControlGroup:
        group = self.groups.get(group_id)
        if group is None:
            raise ConfigurationError(f"unknown controller group {group_id!r}")
        return group

    def queue_command(self, command: Command):
        self.command_queue.append(command)

    def run_tick(self):
        # 1. Consume Commands
        while self.command_queue:
            cmd = self.command_queue.popleft()
            try:
                cmd.execute(self)
            except ConfigurationError as exc:
                logger.warning("Dropped %s: %s", type(cmd).__name__, exc)

        # 2. Step Groups
        for group in self.groups.values():
            group.tick(self.dt, self.state.time, self.state.tick_id)

        # 3. Advance Time
        self.state.time += self.dt
        self.state.tick_id += 1

    def run(self, ticks: int):
        for _ in range(ticks):
            self.run_tick()

    def finish(self):
        for group in self.groups.values():
            group.finish()

    def group_ids(self) -> List[str]:
        return sorted(self.groups)
