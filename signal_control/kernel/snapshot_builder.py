from typing import List

from signal_control.domain.models import CostSummary, GroupStatus, GroupSummary, SignalHeadStatus
from signal_control.kernel.control_group import ControlGroup

class SnapshotBuilder:
    def build(self, group: ControlGroup) -> GroupStatus:
        return GroupStatus(
            groupId=group.group_id,
            strategy=group.strategy.name,
            currentPhaseIndex=group.current_phase_index,
            currentPhaseId=group.current_phase.id,
            nextPhaseIndex=group.next_phase_index,
            phaseState=group.phase_state,
            phaseTime=round(group.phase_time, 3),
            phaseCount=group.phase_count,
            signals=[
                SignalHeadStatus(
                    name=head.name,
                    groupId=head.group_id,
                    status=head.status,
                    position=head.position if head.has_position else None,
                    lightCount=head.light_count,
                    approachCount=len(head.approaches),
                    stoppingCost=head.stopping_cost(),
                    delayCost=head.delay_cost(),
                    cumulativeStoppingCost=head.cumulative_stopping_cost,
                    cumulativeDelayCost=head.cumulative_delay_cost,
                )
                for head in group.signal_heads()
            ],
        )

    def costs(self, group: ControlGroup) -> CostSummary:
        return CostSummary(
            groupId=group.group_id,
            totalStoppingCost=group.total_stopping_cost,
            totalDelayCost=group.total_delay_cost,
            cumulativeStoppingCost=group.cumulative_stopping_cost,
            cumulativeDelayCost=group.cumulative_delay_cost,
            delayCostByUrgency=group.delay_cost_by_urgency(),
            averageDelayTimeByUrgency=group.average_delay_time_per_urgency(),
        )

    def summaries(self, groups: List[ControlGroup]) -> List[GroupSummary]:
        return [
            GroupSummary(id=group.group_id, strategy=group.strategy.name, phases=len(group.phases))
            for group in groups
        ]
