# Signal Control Configuration

# Kernel Settings
KERNEL_DT = 0.1            # Seconds advanced per tick
STATUS_INTERVAL = 60.0     # Seconds between periodic status records
DATA_RECORD_EVERY = 10     # Iterations between recorded data rows

# Vehicle Broadcasts
BROADCAST_INTERVAL = 2.0       # Seconds between approach broadcasts from one vehicle
STALENESS_THRESHOLD = 2.05     # Roughly two broadcast cycles without refresh
COMMUNICATION_RANGE = 150.0    # Metres from the stop line within which vehicles broadcast
STOPPED_SPEED = 0.005          # m/s, at or below this a vehicle counts as stopped

# Cost Model
DELAY_COST_PER_SECOND = 0.007  # $ per second per urgency unit (~$26/hr)
URGENCY_LEVELS = (1, 2, 3, 4, 5)

# Strategy Defaults
DEFAULT_GAP_TIME = 3.0         # Seconds without detection before gap-out
DEFAULT_DETECTION_RANGE = 30.0 # Metres in front of a green head
LOOKAHEAD_HORIZON = 10         # Seconds searched when extending a green

# Fuel Economics
ENGINE_EFFICIENCY_FACTOR = 0.3
FUEL_ENERGY_DENSITY = 11.0     # kWh per litre
JOULES_PER_KWH = 3.6e6
PETROL_PRICE_PER_LITRE = 1.969
BUS_FUEL_PRICE_PER_LITRE = 1.500
DIESEL_PRICE_PER_LITRE = 1.399
