import asyncio
import logging
import os
import time
from fastapi import FastAPI, HTTPException
from typing import List
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from signal_control.domain.errors import ConfigurationError
from signal_control.domain.loader import default_simulation_config, load_simulation_config
from signal_control.domain.models import ApproachRecord, CostSummary, GroupStatus, GroupSummary
from signal_control.kernel.commands import BroadcastApproachCommand
from signal_control.kernel.simulation_kernel import SimulationKernel
from signal_control.kernel.snapshot_builder import SnapshotBuilder

logger = logging.getLogger(__name__)

# Initialize Kernel
kernel = SimulationKernel()
snapshots = SnapshotBuilder()

def _load_kernel():
    config_path = os.environ.get("SIGNAL_CONTROL_CONFIG")
    if config_path:
        sim_config = load_simulation_config(config_path)
    else:
        logger.info("SIGNAL_CONTROL_CONFIG not set, running the default crossroads")
        sim_config = default_simulation_config()
    kernel.load(sim_config)

# Background task for the tick loop
@asynccontextmanager
async def lifespan(app: FastAPI):
    if not kernel.groups:
        _load_kernel()
    loop_task = asyncio.create_task(run_simulation())
    yield
    loop_task.cancel()
    kernel.finish()

app = FastAPI(lifespan=lifespan)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

async def run_simulation():
    """Steps the kernel in real time, one tick per `kernel.dt` seconds"""
    while True:
        start_time = time.time()
        kernel.run_tick()
        elapsed = time.time() - start_time
        await asyncio.sleep(max(0.0, kernel.dt - elapsed))

def _group_or_404(group_id: str):
    group = kernel.groups.get(group_id)
    if group is None:
        raise HTTPException(status_code=404, detail="Controller group not found")
    return group

@app.get("/api/groups", response_model=List[GroupSummary])
async def get_groups():
    """Lists the controller groups being stepped"""
    return snapshots.summaries([kernel.groups[g] for g in kernel.group_ids()])

@app.get("/api/groups/{group_id}", response_model=GroupStatus)
async def get_group_status(group_id: str):
    """Current phase, clearance state and signal heads of a group"""
    return snapshots.build(_group_or_404(group_id))

@app.get("/api/groups/{group_id}/costs", response_model=CostSummary)
async def get_group_costs(group_id: str):
    """Live and cumulative stopping/delay cost, broken down by urgency"""
    return snapshots.costs(_group_or_404(group_id))

@app.post("/api/groups/{group_id}/signals/{signal_name}/approaches")
async def broadcast_approach(group_id: str, signal_name: str, record: ApproachRecord):
    """Queues a vehicle broadcast; it reaches the signal head on the next tick"""
    group = _group_or_404(group_id)
    try:
        group.signal_head(signal_name)
    except ConfigurationError:
        raise HTTPException(status_code=404, detail="Signal not found")
    kernel.queue_command(BroadcastApproachCommand(group_id, signal_name, record))
    return {"status": "queued", "vehicleId": record.vehicle_id, "tick": kernel.state.tick_id}

@app.get("/")
def read_root():
    return {"status": "Signal Control Core Running", "groups": len(kernel.groups), "time": kernel.state.time}
