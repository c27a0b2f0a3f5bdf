"""
ShadowFinder Backend

- Messpunkte -> Objekthöhe / Schattenlänge
- Einzel-Analyse über das globale 0.5°-Gitter
- Zwei-Foto-Session mit Schnittmenge (nur im Speicher, keine Persistenz)
- WebSocket mit Progress-Updates für den Grid-Scan
"""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

# Models
from models import (
    AnalysisRequest, AnalysisResponse, BandName, BandStatisticsModel, BestLocation,
    BestPoint, CoordinateRange, CreateSessionRequest, CreateSessionResponse,
    GridPointModel, IntersectionPointModel, IntersectionResponse, MeasurementRequest,
    MeasurementResponse, PointsResponse, SessionSummary, SunPositionResponse
)

# Solver
from shadowfinder import config
from shadowfinder.analysis import AnalysisRequest as ShadowAnalysisRequest
from shadowfinder.analysis import (
    AnalysisResult, AnalysisSession, SessionStore, analyze_shadow, parse_timestamp
)
from shadowfinder.bands import band_mask, classify_bands
from shadowfinder.errors import (
    IntersectionUnavailable, InvalidMeasurement, InvalidTimestamp, NoMatchFound, ShadowFinderError
)
from shadowfinder.estimation import BestLocationEstimate
from shadowfinder.grid_search import ShadowMeasurement, scan_grid_async, validate_measurement
from shadowfinder.logging_config import setup_logging
from shadowfinder.measurement import ImagePoint, measure_from_percentages, measure_shadow
from shadowfinder.sun_position import (
    SolarPositionProvider, calculate_sun_position, get_solar_position_provider
)

setup_logging()
logger = logging.getLogger("shadowfinder.api")

# FastAPI App
app = FastAPI(
    title="ShadowFinder Backend",
    version="1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Sessions nur im Speicher, älteste werden beim Limit verworfen
SESSIONS = SessionStore(max_sessions=config.MAX_SESSIONS)

_solar_provider: Optional[SolarPositionProvider] = None


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def get_solar_provider() -> SolarPositionProvider:
    global _solar_provider
    if _solar_provider is None:
        _solar_provider = get_solar_position_provider(config.SOLAR_BACKEND)
    return _solar_provider


def to_http_exception(error: ShadowFinderError) -> HTTPException:
    if isinstance(error, (InvalidMeasurement, InvalidTimestamp)):
        status_code = 400
    elif isinstance(error, NoMatchFound):
        status_code = 422
    elif isinstance(error, IntersectionUnavailable):
        status_code = 409
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail=str(error))


def get_session(session_id: str) -> AnalysisSession:
    session = SESSIONS.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session nicht gefunden")
    return session


def check_slot(slot: int) -> int:
    if slot not in AnalysisSession.SLOTS:
        raise HTTPException(status_code=404, detail=f"Foto-Slot {slot} existiert nicht (1 oder 2)")
    return slot


def best_location_model(estimate: BestLocationEstimate) -> BestLocation:
    return BestLocation(
        latitude=estimate.latitude,
        longitude=estimate.longitude,
        accuracyKm=estimate.accuracy_km,
        matchCount=estimate.match_count,
        bestPoint=BestPoint(
            lat=estimate.best_lat,
            lng=estimate.best_lng,
            likelihood=estimate.best_likelihood
        )
    )


def analysis_response(result: AnalysisResult) -> AnalysisResponse:
    stats = result.band_stats
    band_range = result.tight_band_range

    try:
        best = best_location_model(result.best_location())
        message = (f"Standort geschätzt: {best.latitude:.2f}, {best.longitude:.2f} "
                   f"(±{best.accuracyKm:.0f} km)")
    except NoMatchFound as e:
        best = None
        message = str(e)

    return AnalysisResponse(
        knownTime=result.known_time.isoformat(),
        measurements=MeasurementResponse(
            objectHeight=result.measurement.object_height,
            shadowLength=result.measurement.shadow_length
        ),
        statistics=BandStatisticsModel(
            totalPoints=stats.total_points,
            validPoints=stats.valid_points,
            nightPoints=stats.night_points,
            ultraTightBandPoints=stats.ultra_tight_band_points,
            tightBandPoints=stats.tight_band_points,
            visibleBandPoints=stats.visible_band_points,
            mainBandPoints=stats.main_band_points
        ),
        mainBandCoordinates=CoordinateRange(
            latRange=list(band_range.lat_range),
            lngRange=list(band_range.lng_range)
        ),
        bestLocation=best,
        message=message
    )


def summarize_scan(grid, measurement: ShadowMeasurement, known_time) -> AnalysisResponse:
    band_stats, tight_band_range = classify_bands(grid)
    result = AnalysisResult(
        known_time=known_time,
        measurement=measurement,
        grid=grid,
        band_stats=band_stats,
        tight_band_range=tight_band_range
    )
    return analysis_response(result)


def to_shadow_request(request: AnalysisRequest) -> ShadowAnalysisRequest:
    return ShadowAnalysisRequest(
        object_height=request.objectHeight,
        shadow_length=request.shadowLength,
        known_time=request.knownTime
    )


# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    return {"status": "ShadowFinder Backend v1.0 running"}


@app.get("/health")
async def health():
    return {"status": "ok", "version": "1.0", "solarBackend": config.SOLAR_BACKEND}


# ----------------------------------------------------------------------------
# MEASUREMENTS
# ----------------------------------------------------------------------------

@app.post("/api/measurements", response_model=MeasurementResponse)
async def compute_measurements(request: MeasurementRequest):
    base = ImagePoint(request.objectBase.x, request.objectBase.y)
    top = ImagePoint(request.objectTop.x, request.objectTop.y)
    tip = ImagePoint(request.shadowTip.x, request.shadowTip.y)

    if request.unit == "percent":
        measurement = measure_from_percentages(
            base, top, tip, request.imageDisplayWidth, request.imageDisplayHeight
        )
    else:
        measurement = measure_shadow(base, top, tip)

    return MeasurementResponse(
        objectHeight=measurement.object_height,
        shadowLength=measurement.shadow_length
    )


# ----------------------------------------------------------------------------
# SINGLE ANALYSIS
# ----------------------------------------------------------------------------

@app.post("/api/analysis", response_model=AnalysisResponse)
async def run_analysis(
    request: AnalysisRequest,
    provider: SolarPositionProvider = Depends(get_solar_provider)
):
    try:
        result = await run_in_threadpool(analyze_shadow, to_shadow_request(request), provider)
    except ShadowFinderError as e:
        raise to_http_exception(e)

    return analysis_response(result)


# ----------------------------------------------------------------------------
# SESSIONS (Zwei-Foto-Workflow)
# ----------------------------------------------------------------------------

@app.post("/api/sessions", response_model=CreateSessionResponse)
async def create_session(request: CreateSessionRequest):
    session = AnalysisSession(name=request.projectName)
    SESSIONS.add(session)
    logger.info("Session erstellt: %s", session.session_id)

    return CreateSessionResponse(sessionId=session.session_id, projectName=session.name)


@app.get("/api/sessions/{session_id}", response_model=SessionSummary)
async def get_session_summary(session_id: str):
    session = get_session(session_id)

    return SessionSummary(
        sessionId=session.session_id,
        projectName=session.name,
        createdAt=session.created_at.isoformat(),
        photos=[
            analysis_response(result) if result else None
            for result in (session.first, session.second)
        ],
        intersectionAvailable=session.has_both
    )


@app.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str):
    get_session(session_id)
    SESSIONS.remove(session_id)
    return {"status": "deleted", "sessionId": session_id}


@app.put("/api/sessions/{session_id}/photos/{slot}", response_model=AnalysisResponse)
async def analyze_photo(
    session_id: str,
    slot: int,
    request: AnalysisRequest,
    provider: SolarPositionProvider = Depends(get_solar_provider)
):
    session = get_session(session_id)
    check_slot(slot)

    try:
        result = await run_in_threadpool(session.analyze, slot, to_shadow_request(request), provider)
    except ShadowFinderError as e:
        raise to_http_exception(e)

    return analysis_response(result)


@app.delete("/api/sessions/{session_id}/photos/{slot}")
async def clear_photo(session_id: str, slot: int):
    session = get_session(session_id)
    session.clear(check_slot(slot))
    return {"status": "cleared", "sessionId": session_id, "slot": slot}


@app.get("/api/sessions/{session_id}/photos/{slot}/points", response_model=PointsResponse)
async def get_photo_points(session_id: str, slot: int, band: BandName = "visible"):
    session = get_session(session_id)
    result = session.result(check_slot(slot))
    if result is None:
        raise HTTPException(status_code=404, detail=f"Foto {slot} wurde noch nicht analysiert")

    grid = result.grid
    mask = band_mask(grid, band)

    points = [
        GridPointModel(lat=float(lat), lng=float(lng), likelihood=float(likelihood))
        for lat, lng, likelihood in zip(grid.latitudes[mask], grid.longitudes[mask], grid.likelihoods[mask])
    ]

    return PointsResponse(band=band, count=len(points), points=points)


@app.get("/api/sessions/{session_id}/intersection", response_model=IntersectionResponse)
async def get_intersection(session_id: str):
    session = get_session(session_id)

    try:
        result = await run_in_threadpool(session.intersection)
    except ShadowFinderError as e:
        raise to_http_exception(e)

    return IntersectionResponse(
        count=len(result.points),
        firstVisiblePoints=result.first_visible_points,
        secondVisiblePoints=result.second_visible_points,
        bestLocation=best_location_model(result.estimate),
        points=[
            IntersectionPointModel(lat=p.lat, lng=p.lng, combinedLikelihood=p.combined_likelihood)
            for p in result.points
        ]
    )


# ============================================================================
# ANALYSIS (WebSocket)
# ============================================================================

@app.websocket("/ws/analysis")
async def websocket_analysis(
    websocket: WebSocket,
    provider: SolarPositionProvider = Depends(get_solar_provider)
):
    await websocket.accept()

    try:
        raw_data = await websocket.receive_json()

        if not isinstance(raw_data, dict):
            await websocket.send_json({
                "type": "error",
                "message": "Erwartet ein JSON-Objekt mit objectHeight, shadowLength und knownTime"
            })
            return

        try:
            measurement = ShadowMeasurement(
                object_height=float(raw_data.get('objectHeight', 0)),
                shadow_length=float(raw_data.get('shadowLength', 0))
            )
            validate_measurement(measurement)
            known_time = parse_timestamp(raw_data.get('knownTime'))
        except (ShadowFinderError, TypeError, ValueError) as e:
            await websocket.send_json({"type": "error", "message": str(e)})
            return

        async for update in scan_grid_async(measurement, known_time, provider):
            if update['type'] != 'complete':
                await websocket.send_json(update)
                continue

            # Band-Statistik und Schätzung blockieren nicht den Event-Loop
            response = await run_in_threadpool(
                summarize_scan, update['grid'], measurement, known_time
            )
            await websocket.send_json({
                "type": "result",
                "percent": 100,
                "data": response.model_dump()
            })

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.exception("WebSocket-Analyse fehlgeschlagen")
        try:
            await websocket.send_json({
                "type": "error",
                "message": f"Server-Fehler: {str(e)}"
            })
        except RuntimeError:
            pass
    finally:
        try:
            await websocket.close()
        except RuntimeError:
            pass


# ============================================================================
# SUN POSITION
# ============================================================================

@app.get("/api/sun-position", response_model=SunPositionResponse)
async def get_sun_position_api(
    latitude: float,
    longitude: float,
    date: str,
    time_utc: str
):
    try:
        dt = parse_timestamp(f"{date} {time_utc}")
    except InvalidTimestamp as e:
        raise HTTPException(status_code=400, detail=str(e))

    azimuth, elevation = calculate_sun_position(latitude, longitude, dt)

    return SunPositionResponse(
        latitude=latitude,
        longitude=longitude,
        datetime_utc=dt.isoformat(),
        azimuth=round(azimuth, 2),
        elevation=round(elevation, 2)
    )
