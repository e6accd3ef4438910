# crowdsense/main.py
# Main FastAPI application for the CrowdSense query service

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from .config import Settings, get_settings
from .crowd import fold_by_hour_of_day, hour_labels
from .db import Database
from .errors import InvalidArgument, NotFound, StoreUnavailable
from .schemas import (
    ApiResponse,
    BeaconIdsOut,
    BeaconOut,
    CrowdAvgOut,
    CrowdStatOut,
    StatBucket,
)
from .service import BeaconService
from .store import BeaconStore, Store

logger = logging.getLogger("crowdsense.api")


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")
    logging.getLogger("crowdsense").setLevel(level)


def create_app(settings: Optional[Settings] = None, store: Optional[Store] = None) -> FastAPI:
    settings = settings or get_settings()
    _configure_logging(settings.log_level)

    db: Optional[Database] = None
    if store is None:
        db = Database(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.store_timeout_s,
        )
        store = BeaconStore(db)
    service = BeaconService(store, overfetch_factor=settings.overfetch_factor)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if db is not None:
            try:
                await db.connect()
            except Exception:
                logger.exception("database pool connection failed")
                raise
        try:
            yield
        finally:
            if db is not None:
                await db.disconnect()

    app = FastAPI(title="CrowdSense API", version="0.4.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==================== ERRORS ====================

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable(request: Request, exc: StoreUnavailable):
        logger.error("%s: store unavailable: %s", request.url.path, exc)
        body = ApiResponse(code=503, message="store unavailable")
        return JSONResponse(status_code=503, content=body.model_dump())

    @app.exception_handler(InvalidArgument)
    async def invalid_argument(request: Request, exc: InvalidArgument):
        logger.warning("%s: invalid argument: %s", request.url.path, exc)
        body = ApiResponse(code=400, message=str(exc))
        return JSONResponse(status_code=400, content=body.model_dump())

    # ==================== ROUTES ====================

    def clamp_limit(limit: int) -> int:
        return min(limit, settings.max_limit)

    def ids_response(beacons) -> ApiResponse[BeaconIdsOut]:
        ids = [BeaconOut.from_beacon(b) for b in beacons]
        return ApiResponse[BeaconIdsOut](code=200, data=BeaconIdsOut(ids=ids))

    @app.api_route(
        "/beacon_geo", methods=["GET", "POST"], response_model=ApiResponse[BeaconIdsOut]
    )
    async def beacon_geo(
        lat: float,
        lon: float,
        region: str,
        rad: float = Query(10.0, description="Accepted for compatibility, not used in ranking"),
        limit: int = 10,
    ):
        beacons = await service.rank_by_distance(lat, lon, region, clamp_limit(limit))
        return ids_response(beacons)

    @app.api_route(
        "/beacon_name", methods=["GET", "POST"], response_model=ApiResponse[BeaconIdsOut]
    )
    async def beacon_name(name: str, limit: int = 10, strict: bool = False):
        beacons = await service.match_by_name(name, strict, clamp_limit(limit))
        return ids_response(beacons)

    @app.api_route(
        "/beacon_region", methods=["GET", "POST"], response_model=ApiResponse[BeaconIdsOut]
    )
    async def beacon_region(region: str, limit: int = 10):
        beacons = await service.list_by_region(region, clamp_limit(limit))
        return ids_response(beacons)

    @app.api_route(
        "/beacon_id", methods=["GET", "POST"], response_model=ApiResponse[BeaconOut]
    )
    async def beacon_id(id: str):
        try:
            beacon = await service.get_by_id(id)
        except NotFound as exc:
            return ApiResponse[BeaconOut](code=404, message=str(exc))
        return ApiResponse[BeaconOut](code=200, data=BeaconOut.from_beacon(beacon))

    @app.api_route(
        "/crowd_avg", methods=["GET", "POST"], response_model=ApiResponse[CrowdAvgOut]
    )
    async def crowd_avg(id: str, time: int = Query(5, description="Window in minutes")):
        minutes = min(time, settings.max_time_minutes)
        avg = await service.average_count(id, minutes)
        return ApiResponse[CrowdAvgOut](code=200, data=CrowdAvgOut(id=id, avg=avg))

    @app.api_route(
        "/crowd_stat", methods=["GET", "POST"], response_model=ApiResponse[CrowdStatOut]
    )
    async def crowd_stat(
        id: str,
        period: int = Query(1, description="Period in days"),
        bucket: Optional[StatBucket] = None,
        tz: Optional[str] = None,
    ):
        days = min(max(period, 1), settings.max_period_days)
        stat = await service.hourly_stat(id, days)
        if bucket is StatBucket.hour:
            zone = tz or settings.display_tz
            payload = CrowdStatOut(
                list=fold_by_hour_of_day(stat, zone),
                start=stat.start,
                labels=hour_labels(),
                bucket=bucket,
                tz=zone,
            )
        else:
            payload = CrowdStatOut(list=stat.values, start=stat.start)
        return ApiResponse[CrowdStatOut](code=200, data=payload)

    @app.get("/health", response_model=ApiResponse[dict])
    async def health_check():
        state = "external" if db is None else ("connected" if db.connected else "idle")
        return ApiResponse[dict](code=200, data={"status": "ok", "store": state})

    app.state.service = service
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    logger.info("starting CrowdSense API on 0.0.0.0:8000")
    uvicorn.run("crowdsense.main:app", host="0.0.0.0", port=8000, reload=True)
