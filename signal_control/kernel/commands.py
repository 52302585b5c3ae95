from abc import ABC, abstractmethod
from typing import Any

from signal_control.domain.models import ApproachRecord

class Command(ABC):
    @abstractmethod
    def execute(self, kernel: Any):
        pass

class BroadcastApproachCommand(Command):
    """A vehicle within communication range announcing itself to a signal head."""

    def __init__(self, group_id: str, signal_name: str, record: ApproachRecord):
        self.group_id = group_id
        self.signal_name = signal_name
        self.record = record

    def execute(self, kernel: Any):
        head = kernel.get_group(self.group_id).signal_head(self.signal_name)
        head.add_approach(self.record.vehicle_id, self.record)
        return head

class RemoveApproachCommand(Command):
    def __init__(self, group_id: str, signal_name: str, vehicle_id: int):
        self.group_id = group_id
        self.signal_name = signal_name
        self.vehicle_id = vehicle_id

    def execute(self, kernel: Any):
        head = kernel.get_group(self.group_id).signal_head(self.signal_name)
        return head.remove_approach(self.vehicle_id)
