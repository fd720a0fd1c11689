from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from api.deps import get_storage
from core.storage.manager import FileStorageManager
from services.upload_service import fetch_chunked_file

router = APIRouter(prefix="/files", tags=["Files"])


@router.get("/{file_id}")
async def download_file(file_id: str, storage: FileStorageManager = Depends(get_storage)):
    downloaded = await run_in_threadpool(fetch_chunked_file, storage=storage, file_id=file_id)
    return Response(
        content=downloaded.data,
        media_type=downloaded.content_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(downloaded.file_name)}",
            "Cache-Control": "public, max-age=31536000",
        },
    )
