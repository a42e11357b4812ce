"""
upload.py — CSV Upload API Endpoints

Purpose:
- Accept waste-company spreadsheets (multipart CSV) or pre-parsed JSON rows,
  map them to waste-company records and return a preview.
- Nothing is persisted.

Endpoints:
- POST /upload/csv   → full mapping + structure validation (headers snake_cased)
- POST /upload       → CSV file or {"csvData": [...]} → count + first rows
- GET  /upload       → endpoint description
- GET  /waste-data   → process the configured sample CSV
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse

from wasteintel.core.config import settings
from wasteintel.core.errors import ValidationFailedError
from wasteintel.core.logging import get_logger
from wasteintel.services import csv_import

logger = get_logger(__name__)

router = APIRouter(tags=["upload"])


def _max_size_label() -> str:
    return f"{settings.UPLOAD_MAX_BYTES // (1024 * 1024)}MB"


def _check_size(content: bytes) -> None:
    if len(content) > settings.UPLOAD_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the maximum size of {_max_size_label()}",
        )


def _is_csv(upload: Any) -> bool:
    filename = (getattr(upload, "filename", None) or "").lower()
    content_type = (getattr(upload, "content_type", None) or "").lower()
    return filename.endswith(".csv") or "csv" in content_type


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------

@router.post("/upload/csv")
async def upload_csv(file: Optional[UploadFile] = File(None)):
    """
    POST /upload/csv

    Headers are normalised ("Annual Volume" → "annual_volume") before rows
    are mapped and the structure is checked.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="File must be a CSV")

    content = await file.read()
    _check_size(content)

    try:
        _, rows = csv_import.parse_csv(content, normalise_headers=True)
        companies = csv_import.map_waste_companies(rows)
        validation = csv_import.validate_structure(rows)
    except ValidationFailedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"CSV upload error: {e}")
        raise HTTPException(status_code=500, detail="Failed to process CSV")

    return {
        "success": True,
        "data": {
            "companies": companies,
            "count": len(companies),
            "validation": validation,
        },
    }


@router.post("/upload")
async def upload(request: Request):
    """
    POST /upload

    Accepts either:
    - multipart/form-data with `file` (CSV) and optional `type`
    - application/json with {"csvData": [ {...row...}, ... ]}

    Only the first UPLOAD_PREVIEW_ROWS processed records are returned.
    """
    content_type = request.headers.get("content-type", "")
    preview_rows = settings.UPLOAD_PREVIEW_ROWS

    if "multipart/form-data" in content_type:
        form = await request.form()
        file = form.get("file")
        upload_type = form.get("type")

        if file is None or isinstance(file, str):
            raise HTTPException(status_code=400, detail="No file provided")
        if not _is_csv(file):
            raise HTTPException(status_code=400, detail="Please upload a CSV file")

        content = await file.read()
        _check_size(content)

        try:
            headers, rows = csv_import.parse_csv(content)
            records = csv_import.map_waste_companies(rows)
        except ValidationFailedError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            logger.error(f"Upload error for {file.filename}: {e}")
            raise HTTPException(status_code=500, detail="Failed to process upload")

        logger.info(f"Processed {len(records)} records from {file.filename}")
        return {
            "success": True,
            "message": f"Successfully processed {len(records)} records from {file.filename}",
            "count": len(records),
            "filename": file.filename,
            "type": upload_type or "waste-data",
            "data": records[:preview_rows],
            "headers": headers,
        }

    if "application/json" in content_type:
        _check_size(await request.body())
        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON data format. Expected csvData array.")

        csv_data = payload.get("csvData") if isinstance(payload, dict) else None
        if not isinstance(csv_data, list):
            raise HTTPException(status_code=400, detail="Invalid JSON data format. Expected csvData array.")

        rows: List[Dict[str, Any]] = [row for row in csv_data if isinstance(row, dict)]
        records = csv_import.map_waste_companies(rows)
        return {
            "success": True,
            "message": f"Successfully processed {len(records)} records from JSON data",
            "count": len(records),
            "data": records[:preview_rows],
        }

    raise HTTPException(
        status_code=400,
        detail="Unsupported content type. Please upload CSV file or JSON data.",
    )


@router.get("/upload")
def upload_info():
    return {
        "endpoint": "/api/upload",
        "methods": ["POST"],
        "supportedFormats": ["CSV", "JSON"],
        "maxFileSize": _max_size_label(),
        "description": "Upload CSV files or JSON data for waste management processing",
    }


@router.get("/waste-data")
def waste_data():
    """GET /waste-data — bare JSON array of processed sample rows."""
    try:
        records = csv_import.load_waste_data(settings.WASTE_DATA_CSV_PATH)
    except Exception as e:
        logger.error(f"Error processing waste data from {settings.WASTE_DATA_CSV_PATH}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load waste data")
    return JSONResponse(content=records)
