from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Query, Request, Response, UploadFile
from fastapi.concurrency import run_in_threadpool

from .catalog import SORT_DIRECTIONS, browse, classification_counts
from .codegen import render_outfits
from .config import Settings, get_settings
from .csv_io import parse_csv, serialize_csv
from .extraction import ExtractionError, StatExtractor
from .log_config import configure_logging, get_logger
from .models import (
    Character,
    CharacterList,
    CodegenRequest,
    CodegenResponse,
    ExtractedStats,
    GenerateRequest,
    HealthResponse,
    IdsRequest,
    ImportResponse,
    NewCharacter,
)
from .normalize import decode_csv_bytes
from .store import RecordStore, build_store

log = get_logger(__name__)

router = APIRouter()


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    extractor: Optional[StatExtractor] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    application = FastAPI(
        title="character-catalog",
        description="Character catalog with CSV import/export and engine code generation",
        version="0.1.0",
    )
    application.state.settings = settings
    application.state.store = store or build_store(settings)
    application.state.extractor = extractor or StatExtractor(
        api_key=settings.gemini_api_key, model=settings.gemini_model
    )
    application.include_router(router)
    return application


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_extractor(request: Request) -> StatExtractor:
    return request.app.state.extractor


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/health", response_model=HealthResponse)
def health(
    store: RecordStore = Depends(get_store),
    extractor: StatExtractor = Depends(get_extractor),
):
    return {
        "ok": True,
        "store": store.name,
        "store_available": store.is_available(),
        "extraction_available": extractor.is_available(),
    }


@router.get("/characters", response_model=CharacterList)
def list_characters(
    q: Optional[str] = Query(default=None, description="Search name, type or release"),
    type: Optional[str] = Query(default=None, description="Exact tier filter"),
    sort: Optional[str] = Query(default=None, description="Tier sort direction: asc or desc"),
    store: RecordStore = Depends(get_store),
):
    if sort is not None and sort not in SORT_DIRECTIONS:
        raise HTTPException(status_code=422, detail="sort must be 'asc' or 'desc'")

    records = store.fetch_all()
    items = browse(records, term=q, tier=type, direction=sort)
    return {"items": items, "total": len(items), "counts": classification_counts(records)}


@router.post("/characters", response_model=Character, status_code=201)
def create_character(character: NewCharacter, store: RecordStore = Depends(get_store)):
    stored = store.upsert(character)
    if stored is None:
        raise HTTPException(status_code=502, detail="Record store rejected the character")
    return stored


@router.put("/characters/{character_id}", response_model=Character)
def replace_character(
    character_id: str,
    character: NewCharacter,
    store: RecordStore = Depends(get_store),
):
    stored = store.upsert(Character(id=character_id, **character.model_dump()))
    if stored is None:
        raise HTTPException(status_code=502, detail="Record store rejected the character")
    return stored


@router.delete("/characters/{character_id}", status_code=204)
def delete_character(character_id: str, store: RecordStore = Depends(get_store)):
    if not store.delete(character_id):
        raise HTTPException(status_code=502, detail="Record store failed to delete the character")
    return Response(status_code=204)


@router.delete("/characters", status_code=204)
def delete_characters(body: IdsRequest, store: RecordStore = Depends(get_store)):
    if not store.delete_many(body.ids):
        raise HTTPException(status_code=502, detail="Record store failed to delete the characters")
    return Response(status_code=204)


@router.post("/characters/import", response_model=ImportResponse)
async def import_characters(
    file: UploadFile = File(...),
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=422, detail="Only CSV files are supported")

    raw = await file.read()
    if len(raw) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Upload too large")

    text, encoding = decode_csv_bytes(raw)
    parsed = parse_csv(text)
    if not parsed:
        raise HTTPException(status_code=422, detail="No valid records found")

    # Store clients block (HTTP, retry backoff); keep them off the event loop.
    stored = await run_in_threadpool(store.insert_bulk, parsed)
    if not stored:
        raise HTTPException(status_code=502, detail="Record store rejected the import")

    log.info(
        "Imported %d record(s) from %s (%s)", len(stored), file.filename, encoding["decode_used"],
        extra={"records": len(stored), "parsed": len(parsed), "upload": file.filename},
    )
    return {"imported": len(stored), "items": stored, "encoding": encoding["decode_used"]}


@router.get("/characters/export")
def export_characters(store: RecordStore = Depends(get_store)):
    records = store.fetch_all()
    if not records:
        raise HTTPException(status_code=404, detail="No records to export")

    filename = f"game_db_sync_{date.today().isoformat()}.csv"
    return Response(
        content=serialize_csv(records),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/characters/codegen", response_model=CodegenResponse)
def generate_code(body: Optional[CodegenRequest] = None, store: RecordStore = Depends(get_store)):
    records = store.fetch_all()
    if body is not None and body.ids is not None:
        wanted = set(body.ids)
        records = [r for r in records if r.id in wanted]
    if not records:
        raise HTTPException(status_code=404, detail="No records to generate code for")
    return {"count": len(records), "code": render_outfits(records)}


def _require_extractor(extractor: StatExtractor) -> None:
    if not extractor.is_available():
        raise HTTPException(status_code=503, detail="AI extraction is not configured")


@router.post("/characters/generate", response_model=ExtractedStats)
async def generate_stats(body: GenerateRequest, extractor: StatExtractor = Depends(get_extractor)):
    _require_extractor(extractor)
    if not body.name.strip():
        raise HTTPException(status_code=422, detail="A name is required for AI generation")
    try:
        return await extractor.generate_stats(body.name, body.description)
    except ExtractionError as e:
        raise HTTPException(status_code=502, detail=f"Failed to generate stats: {e}") from e


@router.post("/characters/extract", response_model=ExtractedStats)
async def extract_stats(
    file: UploadFile = File(...),
    extractor: StatExtractor = Depends(get_extractor),
):
    _require_extractor(extractor)
    image = await file.read()
    try:
        return await extractor.extract_from_image(image, file.content_type or "image/png")
    except ExtractionError as e:
        raise HTTPException(status_code=502, detail=f"Failed to extract stats: {e}") from e


@router.post("/characters/extract/batch", response_model=List[ExtractedStats])
async def extract_stats_batch(
    files: List[UploadFile] = File(...),
    extractor: StatExtractor = Depends(get_extractor),
):
    _require_extractor(extractor)
    images = [(await f.read(), f.content_type or "image/png") for f in files]
    try:
        return await extractor.extract_from_images(images)
    except ExtractionError as e:
        raise HTTPException(status_code=502, detail=f"Failed to extract stats: {e}") from e


@router.post("/characters/scan", response_model=ImportResponse)
async def scan_characters(
    files: List[UploadFile] = File(...),
    store: RecordStore = Depends(get_store),
    extractor: StatExtractor = Depends(get_extractor),
):
    """Scan card screenshots in batches and import the resulting records."""
    _require_extractor(extractor)
    images = [(await f.read(), f.content_type or "image/png") for f in files]
    try:
        records = await extractor.scan_records(images)
    except ExtractionError as e:
        raise HTTPException(status_code=502, detail=f"Batch scan failed: {e}") from e
    if not records:
        raise HTTPException(status_code=422, detail="No characters recognized in the screenshots")

    stored = await run_in_threadpool(store.insert_bulk, records)
    if not stored:
        raise HTTPException(status_code=502, detail="Record store rejected the import")

    log.info("Scanned %d record(s) from %d image(s)", len(stored), len(images), extra={"records": len(stored)})
    return {"imported": len(stored), "items": stored}


def serve() -> None:
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)


app = create_app()
