from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from trafficwatch.api.routes import router as api_router
from trafficwatch.core import config
from trafficwatch.core.logging import setup_logging
from trafficwatch.services.monitor import MonitorRegistry, build_sampler_factory

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=config.APP_NAME)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
app.include_router(api_router)
app.state.monitors = MonitorRegistry(build_sampler_factory(), allowed=config.MONITORED_INTERFACES)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "web" / "templates"))


@app.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "app_name": config.APP_NAME,
            "sampler_mode": config.SAMPLER_MODE,
            "device_host": config.DEVICE_HOST,
            "community": config.SNMP_COMMUNITY,
            "snmp_version": config.SNMP_VERSION,
            "interface_index": config.INTERFACE_INDEX,
            "monitored_interfaces": config.MONITORED_INTERFACES,
            "local_interface": config.LOCAL_INTERFACE,
        },
    )


@app.on_event("startup")
async def on_startup() -> None:
    if config.SAMPLER_MODE == "snmp":
        logger.info(
            "%s started: device=%s:%d community=%s version=%s interface=%d",
            config.APP_NAME,
            config.DEVICE_HOST,
            config.SNMP_PORT,
            config.SNMP_COMMUNITY,
            config.SNMP_VERSION,
            config.INTERFACE_INDEX,
        )
        if not config.SNMP_USE_HC_COUNTERS:
            logger.warning(
                "Polling 32-bit ifInOctets/ifOutOctets; fast links can wrap more than once "
                "between polls and will be undercounted"
            )
    else:
        logger.info(
            "%s started: local interface=%s",
            config.APP_NAME,
            config.LOCAL_INTERFACE or f"index {config.INTERFACE_INDEX}",
        )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    registry: MonitorRegistry | None = getattr(app.state, "monitors", None)
    if registry is not None:
        await registry.close_all()
    logger.info("%s stopped", config.APP_NAME)
