from signal_control.domain.models import ApproachRecord, ControllerGroupConfig
from signal_control.feeds.scats_reader import LAYOUTS


def two_phase_config(strategy="VehicleActuated", gap_time=5.0, detection_range=30.0, min_duration=5,
                     max_duration=60, intergreen=3, all_red=2, b_condition="NONE", group_id="G1"):
    """Phase A shows A1 green, phase B shows B1 green."""
    return ControllerGroupConfig.model_validate({
        "id": group_id,
        "strategy": {"type": strategy, "gap_time": gap_time, "detection_range": detection_range},
        "phases": [
            {
                "id": "A", "min_duration": min_duration, "max_duration": max_duration, "duration": 30,
                "intergreen": intergreen, "all_red": all_red,
                "states": [
                    {"name": "A1", "status": "GREEN"},
                    {"name": "B1", "status": "RED"},
                ],
            },
            {
                "id": "B", "min_duration": min_duration, "max_duration": max_duration, "duration": 30,
                "intergreen": intergreen, "all_red": all_red,
                "states": [
                    {"name": "A1", "status": "RED"},
                    {"name": "B1", "status": "GREEN", "condition": b_condition},
                ],
            },
        ],
    })


def record(vehicle_id, urgency=1, speed=0.0, delay_time=0.0, stopping_cost=0.0, distance=50.0, **kwargs):
    return ApproachRecord(vehicle_id=vehicle_id, urgency=urgency, speed=speed, delay_time=delay_time,
                          stopping_cost=stopping_cost, distance=distance, **kwargs)


def approach_line(site, approach, phase, green, count1="-", count2="-", layout="v1"):
    layout = LAYOUTS[layout]
    chars = [" "] * 48

    def put(columns, value):
        start, end = columns
        chars[start:end] = list(str(value).rjust(end - start)[:end - start])

    put(layout.intersection, site)
    put(layout.approach, approach)
    put(layout.phase, phase)
    put(layout.green_time, green)
    put(layout.counts[0], count1)
    put(layout.counts[1], count2)
    return "".join(chars).rstrip()


def cycle_block(lines, allocation="A=<64> B=36"):
    header = "Thursday 20-June-2013 06:00 SS  63   PL 3.1  PVs3.3 CT   33 +0 RL 33  SA 301 DS 14"
    columns = "Int  SA/LK PH PT! DS VO VK! DS VO VK! DS VO VK! DS VO VK! ADS"
    return "\n".join([header, columns] + list(lines) + [allocation]) + "\n"


def scats_config(feed=None):
    raw = {
        "id": "460",
        "strategy": {"type": "SCATSData"},
        "phases": [
            {
                "id": phase_id, "intergreen": 3, "all_red": 2,
                "states": [
                    {"name": name, "status": "GREEN" if name == "P" + phase_id else "RED"}
                    for name in ("PA", "PB", "PC")
                ],
            }
            for phase_id in ("A", "B", "C")
        ],
    }
    if feed:
        raw["feed"] = feed
    return ControllerGroupConfig.model_validate(raw)


FEED = cycle_block([
    approach_line(460, 1, "A", 20, 12, 3),
    approach_line(460, 2, "B", 15, 4, "-"),
]) + cycle_block([
    approach_line(460, 1, "A", 30, 10, 9),
    approach_line(460, 3, "C", 10, 2, 2),
])

