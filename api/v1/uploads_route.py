from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from api.deps import get_app_settings, get_ledger, get_storage
from core.cleanup.ledger import CleanupLedger
from core.response_envelope import document_response
from core.settings import Settings
from core.storage.manager import FileStorageManager
from core.storage.types import UploadPayload
from schemas.upload_schema import CleanupRecordOut, StoredFileOut, UploadAttemptOut, UploadOut
from services.upload_service import list_session_uploads, upload_document

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post("")
@document_response(message="File uploaded", status_code=201)
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    session_id: str = Form(...),
    document_id: str | None = Form(default=None),
    is_anonymous: bool = Form(default=True),
    storage: FileStorageManager = Depends(get_storage),
    ledger: CleanupLedger = Depends(get_ledger),
    settings: Settings = Depends(get_app_settings),
):
    payload = UploadPayload(
        file_name=file.filename or "upload",
        content_type=file.content_type or "application/octet-stream",
        data=await file.read(settings.max_upload_bytes + 1),
    )
    tracked = await run_in_threadpool(
        upload_document,
        storage=storage,
        ledger=ledger,
        settings=settings,
        payload=payload,
        session_id=session_id,
        is_anonymous=is_anonymous,
        document_id=document_id,
    )
    return UploadOut(
        document_id=tracked.document_id,
        file=StoredFileOut.from_stored(tracked.report.stored),
        record=CleanupRecordOut.from_record(tracked.record) if tracked.record else None,
        tracked=tracked.tracked,
        attempts=[UploadAttemptOut.from_attempt(attempt) for attempt in tracked.report.attempts],
    )


@router.get("/session/{session_id}")
@document_response(message="Session uploads fetched")
async def get_session_uploads(
    request: Request,
    session_id: str,
    ledger: CleanupLedger = Depends(get_ledger),
):
    records = await run_in_threadpool(list_session_uploads, ledger=ledger, session_id=session_id)
    return [CleanupRecordOut.from_record(record) for record in records]
