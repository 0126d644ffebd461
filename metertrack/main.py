"""
FastAPI Application for Meter Tracking

Main web application that provides:
- Reading history management (add, correct, delete, CSV import/export)
- Meter pricing configuration
- 30-day normalized monthly projections and comparison tables
- Meter photo reading extraction via Gemini
"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import FastAPI, File, Path, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from metertrack.core.config import settings
from metertrack.engine.comparison import compare_month, table_data
from metertrack.engine.csv_loader import export_readings_csv, load_readings_from_upload
from metertrack.engine.ledger import MAX_READING_VALUE, correct_latest, new_reading, recompute_cached
from metertrack.engine.models import MeterConfig, MeterType
from metertrack.engine.pipeline import build_dashboard
from metertrack.engine.projection import project_month
from metertrack.services.gemini_client import extract_meter_reading
from metertrack.storage import (
    ConfigStore,
    MemoryConfigStore,
    MemoryReadingStore,
    ReadingStore,
    create_config_store,
    create_reading_store,
    generate_demo_readings,
)

logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Meter Tracker", version="1.0.0")

# Active stores; demo mode swaps in session-scoped in-memory stores
STATE = {
    "readings": None,   # ReadingStore
    "config": None,     # ConfigStore
    "demo_mode": False,
}


def configure_stores(readings: ReadingStore, config: ConfigStore, demo_mode: bool = False) -> None:
    STATE["readings"] = readings
    STATE["config"] = config
    STATE["demo_mode"] = demo_mode


def _readings_store() -> ReadingStore:
    if STATE["readings"] is None:
        STATE["readings"] = create_reading_store()
    return STATE["readings"]


def _config_store() -> ConfigStore:
    if STATE["config"] is None:
        STATE["config"] = create_config_store()
    return STATE["config"]


def _refresh_cached(store: ReadingStore, config: MeterConfig) -> None:
    """Re-cache consumption/cost of readings whose predecessor changed."""
    for reading in recompute_cached(store.list(), config):
        store.replace(reading)


class ReadingCreate(BaseModel):
    value: float = Field(..., ge=0, le=MAX_READING_VALUE, description="Meter display value")
    confidence: Optional[float] = Field(default=None, ge=0, le=100)
    timestamp: Optional[datetime] = Field(default=None, description="Defaults to now")


class ReadingCorrection(BaseModel):
    value: float = Field(..., ge=0, le=MAX_READING_VALUE)


class ConfigUpdate(BaseModel):
    price_per_kwh: Optional[float] = Field(default=None, ge=0)
    base_monthly_fee: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    expected_annual_consumption: Optional[float] = Field(default=None, ge=0)
    meter_type: Optional[MeterType] = None
    gas_conversion_factor: Optional[float] = Field(default=None, gt=0)
    reading_unit: Optional[str] = None
    country_code: Optional[str] = Field(default=None, min_length=2, max_length=2)
    expected_monthly_consumption: Optional[float] = Field(default=None, ge=0)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"422 ValidationError on {request.method} {request.url.path} errors={exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


# ---------------------------------------------------------------------------
# Readings
# ---------------------------------------------------------------------------
@app.get("/api/readings")
def list_readings():
    """Reading history, newest first."""
    readings = sorted(_readings_store().list(), key=lambda r: r.timestamp, reverse=True)
    return {"readings": [r.to_dict() for r in readings], "count": len(readings)}


@app.post("/api/readings", status_code=201)
def add_reading(payload: ReadingCreate):
    """Append a reading; consumption and cost are cached against the latest one."""
    store = _readings_store()
    config = _config_store().get()

    reading = new_reading(
        store.list(),
        payload.value,
        config,
        confidence=payload.confidence,
        timestamp=payload.timestamp,
    )
    store.add(reading)
    # A backdated reading becomes the predecessor of a later one
    _refresh_cached(store, config)
    return reading.to_dict()


@app.put("/api/readings/latest")
def correct_latest_reading(payload: ReadingCorrection):
    """Replace the latest reading's value with a manual correction."""
    store = _readings_store()
    corrected = correct_latest(store.list(), payload.value, _config_store().get())
    if corrected is None:
        return JSONResponse(status_code=404, content={"error": "No readings to update"})

    store.replace(corrected)
    return corrected.to_dict()


@app.delete("/api/readings/{reading_id}")
def delete_reading(reading_id: str):
    if not _readings_store().delete(reading_id):
        return JSONResponse(status_code=404, content={"error": f"Reading {reading_id} not found"})
    _refresh_cached(_readings_store(), _config_store().get())
    return {"deleted": reading_id}


@app.post("/api/readings/import")
async def import_readings(file: UploadFile = File(...)):
    """Import a reading history CSV (timestamp/date + value/reading columns)."""
    try:
        contents = await file.read()
        try:
            readings = load_readings_from_upload(contents)
        except ValueError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})

        store = _readings_store()
        count = store.add_many(readings)
        _refresh_cached(store, _config_store().get())
        return {
            "imported": count,
            "skipped": len(readings) - count,
            "file_name": file.filename,
        }

    except Exception as e:
        logger.exception("Reading import failed")
        return JSONResponse(
            status_code=500,
            content={"error": f"Error importing file: {str(e)}"}
        )


@app.get("/api/readings/export")
def export_readings():
    csv_text = export_readings_csv(_readings_store().list())
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="readings.csv"'},
    )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
@app.get("/api/config")
def get_config():
    return _config_store().get().to_dict()


@app.put("/api/config")
def update_config(payload: ConfigUpdate):
    """Merge the given fields into the active configuration and save it whole."""
    current = _config_store().get().to_dict()
    changes = payload.model_dump(exclude_none=True)
    if "meter_type" in changes:
        changes["meter_type"] = MeterType(changes["meter_type"]).value

    updated = MeterConfig.from_dict({**current, **changes})
    _config_store().save(updated)
    return updated.to_dict()


# ---------------------------------------------------------------------------
# Projections and comparisons
# ---------------------------------------------------------------------------
@app.get("/api/projection/{year}/{month}")
def get_projection(
    year: int = Path(..., ge=1970, le=9999),
    month: int = Path(..., ge=1, le=12),
):
    projection = project_month(
        _readings_store().list(), _config_store().get(), year, month, today=date.today()
    )
    return {"year": year, "month": month, **projection.to_dict()}


@app.get("/api/comparison/table")
def get_comparison_table(months_back: int = Query(default=settings.MONTHS_BACK, ge=1, le=36)):
    rows = table_data(
        _readings_store().list(),
        _config_store().get(),
        months_back=months_back,
        today=date.today(),
        locale=settings.LOCALE,
    )
    return {"months": [row.to_dict() for row in rows]}


@app.get("/api/comparison/{year}/{month}")
def get_comparison(
    year: int = Path(..., ge=1970, le=9999),
    month: int = Path(..., ge=1, le=12),
):
    comparison = compare_month(
        _readings_store().list(), _config_store().get(), year, month, today=date.today()
    )
    return {"year": year, "month": month, **comparison.to_dict()}


@app.get("/api/dashboard")
def get_dashboard(months_back: int = Query(default=settings.MONTHS_BACK, ge=1, le=36)):
    dashboard = build_dashboard(
        _readings_store().list(),
        _config_store().get(),
        today=date.today(),
        months_back=months_back,
        locale=settings.LOCALE,
    )
    dashboard["demo_mode"] = STATE["demo_mode"]
    return dashboard


# ---------------------------------------------------------------------------
# Demo mode
# ---------------------------------------------------------------------------
@app.post("/api/demo")
def activate_demo_mode():
    """Switch to session-scoped stores seeded with six months of demo readings."""
    config = MeterConfig()
    readings = generate_demo_readings(date.today(), config)
    configure_stores(MemoryReadingStore(readings), MemoryConfigStore(config), demo_mode=True)
    logger.info("Demo mode activated")
    return {"demo_mode": True, "count": len(readings)}


@app.delete("/api/demo")
def deactivate_demo_mode():
    configure_stores(create_reading_store(), create_config_store(), demo_mode=False)
    logger.info("Demo mode deactivated")
    return {"demo_mode": False}


# ---------------------------------------------------------------------------
# AI photo processing
# ---------------------------------------------------------------------------
@app.post("/api/ai/process-photo")
async def process_photo(photo: Optional[UploadFile] = File(None)):
    """
    Extract a meter reading from an uploaded photo.

    The extracted value is returned for confirmation; it is not stored until
    the client posts it to /api/readings.
    """
    try:
        if photo is None:
            return JSONResponse(status_code=400, content={"error": "No photo provided"})

        content_type = photo.content_type or ""
        if not content_type.startswith("image/"):
            return JSONResponse(status_code=400, content={"error": "File must be an image"})

        image_bytes = await photo.read()
        if len(image_bytes) > settings.MAX_PHOTO_BYTES:
            limit_mb = settings.MAX_PHOTO_BYTES // (1024 * 1024)
            return JSONResponse(
                status_code=400,
                content={"error": f"File size must be less than {limit_mb}MB"}
            )

        if not settings.gemini_configured:
            return JSONResponse(status_code=500, content={"error": "Gemini API key not configured"})

        result = extract_meter_reading(image_bytes, content_type)
        if not result.ok:
            return JSONResponse(
                status_code=400,
                content={
                    "success": False,
                    "error": result.error,
                    "extracted_text": result.extracted_text,
                }
            )

        return {
            "success": True,
            "reading": result.reading,
            "confidence": result.confidence,
            "unit": result.unit,
            "extracted_text": result.extracted_text,
            "timestamp": datetime.now().isoformat(),
            "message": "Reading extracted successfully using Gemini AI",
        }

    except Exception:
        logger.exception("Error processing photo")
        return JSONResponse(status_code=500, content={"error": "Failed to process photo"})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
