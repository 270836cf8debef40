"""FastAPI application: HTTP surface over the notification bus."""

from __future__ import annotations

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request

from objectbus.config import BusConfig, get_bus_config
from objectbus.domain.bus import ObjectEventBus
from objectbus.domain.events import EventType
from objectbus.domain.models import (
    BusStatistics,
    PublishRequest,
    PublishResponse,
    TickRequest,
    TickResponse,
)
from objectbus.observability.logging import configure_logging
from objectbus.services.scheduling import Scheduler, VirtualScheduler

router = APIRouter()


def get_bus(request: Request) -> ObjectEventBus:
    return request.app.state.bus


# ── Routes ────────────────────────────────────────────────────────────


@router.post("/events", response_model=PublishResponse)
def publish_event(body: PublishRequest, bus: ObjectEventBus = Depends(get_bus)) -> PublishResponse:
    """Publish one notification using the requested delivery mode."""
    accepted = bus.publish(body.event_type, body.subject_id, body.payload, body.options())
    return PublishResponse(accepted=accepted)


@router.get("/stats", response_model=BusStatistics)
def get_stats(bus: ObjectEventBus = Depends(get_bus)) -> BusStatistics:
    return bus.get_statistics()


@router.get("/event-types", response_model=list[str])
def list_event_types() -> list[str]:
    return [event_type.value for event_type in EventType]


@router.post("/tick", response_model=TickResponse)
def tick(body: TickRequest, bus: ObjectEventBus = Depends(get_bus)) -> TickResponse:
    """Advance the simulated clock and fire any due coalescing/batch timers."""
    scheduler = bus.scheduler
    if not isinstance(scheduler, VirtualScheduler):
        raise HTTPException(status_code=409, detail="Bus is not driven by a virtual clock")
    scheduler.advance(body.seconds)
    return TickResponse(time=scheduler.now(), statistics=bus.get_statistics())


@router.post("/reset", status_code=200)
def reset_bus(bus: ObjectEventBus = Depends(get_bus)) -> dict:
    bus.reset()
    return {"status": "reset"}


def create_app(
    bus: ObjectEventBus | None = None,
    scheduler: Scheduler | None = None,
    config: BusConfig | None = None,
) -> FastAPI:
    """Build the app around *bus*.

    Without a bus, one is created on *scheduler* (a fresh virtual clock
    when omitted) with *config* or the environment config.
    """
    if bus is None:
        bus = ObjectEventBus(scheduler or VirtualScheduler(), config=config or get_bus_config())
    configure_logging(bus.config.log_level)

    application = FastAPI(title="Object Notification Bus")
    application.state.bus = bus
    application.include_router(router)
    return application


app = create_app()
