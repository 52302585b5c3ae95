import random
from enum import Enum
from typing import Dict, Optional, Sequence

from signal_control.domain import config


class VehicleClass(str, Enum):
    CAR = "CAR"
    BUS = "BUS"
    TRUCK = "TRUCK"


# Light vehicles run on petrol, heavy vehicles (trucks and buses) on diesel
FUEL_PRICE_PER_LITRE: Dict[VehicleClass, float] = {
    VehicleClass.CAR: config.PETROL_PRICE_PER_LITRE,
    VehicleClass.BUS: config.BUS_FUEL_PRICE_PER_LITRE,
    VehicleClass.TRUCK: config.DIESEL_PRICE_PER_LITRE,
}

# Probabilities for urgency 1..5 per class. Estimates, to be revised with field data.
URGENCY_PROBABILITIES: Dict[VehicleClass, Sequence[float]] = {
    VehicleClass.CAR: (0.2, 0.25, 0.395, 0.15, 0.005),
    VehicleClass.BUS: (0.3, 0.5, 0.2, 0.0, 0.0),
    VehicleClass.TRUCK: (0.1, 0.5, 0.3, 0.1, 0.0),
}


def stop_cost(mass: float, speed: float, vehicle_class: VehicleClass) -> float:
    """Dollar value of the fuel burnt to bring a vehicle back up to `speed` after a stop.

    The kinetic energy at `speed` is converted to litres of fuel through the engine
    efficiency and the fuel energy density, then priced for the vehicle class.
    """
    if speed <= 0.0 or mass <= 0.0:
        return 0.0
    energy_kwh = 0.5 * mass * speed * speed / config.JOULES_PER_KWH
    litres = energy_kwh / config.ENGINE_EFFICIENCY_FACTOR / config.FUEL_ENERGY_DENSITY
    return litres * FUEL_PRICE_PER_LITRE[VehicleClass(vehicle_class)]


def delay_cost(delay_time: float, urgency: int) -> float:
    return config.DELAY_COST_PER_SECOND * delay_time * urgency


def sample_urgency(vehicle_class: VehicleClass, rng: Optional[random.Random] = None) -> int:
    """Draws the urgency a driver would set for a journey in this class of vehicle."""
    rng = rng or random
    weights = URGENCY_PROBABILITIES[VehicleClass(vehicle_class)]
    return rng.choices(config.URGENCY_LEVELS, weights=weights, k=1)[0]
