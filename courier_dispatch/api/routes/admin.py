"""Admin Routes — virtual clock, system config, database and simulator control.

Invariants:
    - The clock only moves forward (forward amount >= 0, config PUT refuses a
      backwards clock)
    - Reset/initialize while the simulator runs return 423
"""

import logging

from fastapi import APIRouter, Depends, Response, status

from courier_dispatch.api.dependencies import get_dispatch
from courier_dispatch.schemas.admin import (
    ClockResponse, ConfigBody, ConfigResponse, ConfigUpdateResponse,
    ForwardClockRequest, SimulatorStartRequest, SimulatorStatusResponse,
    TickReportResponse,
)
from courier_dispatch.services.dispatch_system import DispatchSystem

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


def _simulator_status(system: DispatchSystem) -> SimulatorStatusResponse:
    config = system.admin.get_config()
    return SimulatorStatusResponse(
        running=system.admin.simulator_running,
        clock=config.clock,
        interval_minutes=config.simulator_interval_minutes,
    )


# ─── Clock & config ─────────────────────────────────────────────

@router.get("/clock", response_model=ClockResponse)
def get_clock(system: DispatchSystem = Depends(get_dispatch)):
    return ClockResponse(clock=system.admin.get_clock())


@router.post("/clock/forward", response_model=ClockResponse)
def forward_clock(
    body: ForwardClockRequest, system: DispatchSystem = Depends(get_dispatch),
):
    return ClockResponse(clock=system.admin.forward_clock(body.amount, body.unit))


@router.get("/config", response_model=ConfigResponse)
def get_config(system: DispatchSystem = Depends(get_dispatch)):
    return ConfigResponse.from_config(system.admin.get_config())


@router.put("/config", response_model=ConfigUpdateResponse)
def update_config(
    body: ConfigBody, system: DispatchSystem = Depends(get_dispatch),
):
    changed = system.admin.set_config(body.to_config(system.admin.get_config()))
    return ConfigUpdateResponse(
        changed=changed, config=ConfigResponse.from_config(system.admin.get_config()),
    )


# ─── Database ───────────────────────────────────────────────────

@router.post("/reset", status_code=status.HTTP_204_NO_CONTENT)
def reset_database(system: DispatchSystem = Depends(get_dispatch)):
    system.admin.reset_db()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/initialize")
def initialize_database(system: DispatchSystem = Depends(get_dispatch)):
    """Reset and load the demo data set."""
    return system.admin.initialize_db()


# ─── Simulator ──────────────────────────────────────────────────

@router.get("/simulator", response_model=SimulatorStatusResponse)
def simulator_status(system: DispatchSystem = Depends(get_dispatch)):
    return _simulator_status(system)


@router.post("/simulator/start", response_model=SimulatorStatusResponse)
def start_simulator(
    body: SimulatorStartRequest | None = None,
    system: DispatchSystem = Depends(get_dispatch),
):
    system.admin.start_simulator(body.interval_minutes if body else None)
    return _simulator_status(system)


@router.post("/simulator/stop", response_model=SimulatorStatusResponse)
def stop_simulator(system: DispatchSystem = Depends(get_dispatch)):
    system.admin.stop_simulator()
    return _simulator_status(system)


@router.post("/simulator/tick", response_model=TickReportResponse)
def run_simulation_tick(system: DispatchSystem = Depends(get_dispatch)):
    """Run one simulation cycle on demand."""
    return TickReportResponse.from_report(system.admin.run_simulation_tick())
