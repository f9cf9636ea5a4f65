from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from trafficwatch.api.schemas import (
    HealthResponse,
    InterfaceIpResponse,
    InterfaceNameResponse,
    TrafficResponse,
)
from trafficwatch.core.config import INTERFACE_INDEX
from trafficwatch.core.exceptions import (
    SampleValidationError,
    SamplerError,
    SamplerTimeoutError,
    UnknownInterfaceError,
)
from trafficwatch.services.monitor import MonitorRegistry, TrafficMonitor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _monitor(request: Request, if_index: int) -> TrafficMonitor:
    registry: MonitorRegistry = request.app.state.monitors
    return registry.get(if_index)


def _status_code(exc: Exception) -> int:
    if isinstance(exc, UnknownInterfaceError):
        return 404
    if isinstance(exc, SamplerTimeoutError):
        return 504
    return 502


def _failure(model: type[BaseModel], exc: Exception, message: str, if_index: int) -> JSONResponse:
    body = model(
        ok=False,
        data=None,
        meta={
            "if_index": if_index,
            "error": str(exc) or exc.__class__.__name__,
            "message": message,
            "ts_utc": datetime.now(timezone.utc).isoformat(),
        },
    )
    return JSONResponse(status_code=_status_code(exc), content=body.model_dump(by_alias=True))


def _unknown(model: type[BaseModel], exc: UnknownInterfaceError) -> JSONResponse:
    return _failure(model, exc, "Interface is not monitored.", exc.if_index)


@router.get("/health")
def health() -> HealthResponse:
    return HealthResponse(ok=True, data={"status": "ok"}, meta={})


@router.get("/traffic")
async def traffic(
    request: Request,
    if_index: int = Query(default=INTERFACE_INDEX, ge=1),
) -> TrafficResponse:
    try:
        monitor = _monitor(request, if_index)
        result = await monitor.poll()
    except UnknownInterfaceError as exc:
        return _unknown(TrafficResponse, exc)
    except SamplerError as exc:
        logger.warning("Traffic poll failed for interface %d: %s", if_index, exc)
        return _failure(TrafficResponse, exc, "Failed to fetch counters from the device.", if_index)
    except SampleValidationError as exc:
        logger.exception("Device returned out-of-range counters for interface %d", if_index)
        return _failure(TrafficResponse, exc, "Device returned invalid counter values.", if_index)

    return TrafficResponse(
        ok=True,
        data=result.to_dict(),
        meta={"if_index": if_index, "ts_utc": datetime.now(timezone.utc).isoformat()},
    )


@router.get("/interface-name")
async def interface_name(
    request: Request,
    if_index: int = Query(default=INTERFACE_INDEX, ge=1),
) -> InterfaceNameResponse:
    try:
        name = await _monitor(request, if_index).interface_name()
    except UnknownInterfaceError as exc:
        return _unknown(InterfaceNameResponse, exc)
    except SamplerError as exc:
        logger.warning("Interface name lookup failed for %d: %s", if_index, exc)
        return _failure(InterfaceNameResponse, exc, "Failed to fetch the interface name.", if_index)
    return InterfaceNameResponse(ok=True, data={"name": name}, meta={"if_index": if_index})


@router.get("/interface-ip")
async def interface_ip(
    request: Request,
    if_index: int = Query(default=INTERFACE_INDEX, ge=1),
) -> InterfaceIpResponse:
    try:
        ip = await _monitor(request, if_index).interface_ip()
    except UnknownInterfaceError as exc:
        return _unknown(InterfaceIpResponse, exc)
    except SamplerError as exc:
        logger.warning("Interface address lookup failed for %d: %s", if_index, exc)
        return _failure(InterfaceIpResponse, exc, "Failed to fetch the interface address.", if_index)
    return InterfaceIpResponse(ok=True, data={"ip": ip}, meta={"if_index": if_index})
