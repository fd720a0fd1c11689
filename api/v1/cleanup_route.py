from fastapi import APIRouter, Depends, Header, Query, Request
from starlette.concurrency import run_in_threadpool

from api.deps import get_app_settings, get_collector, get_ledger
from core.cleanup.collector import GarbageCollector
from core.cleanup.ledger import CleanupLedger
from core.response_envelope import document_response
from core.settings import Settings
from schemas.upload_schema import CleanupStatsOut, SweepResultOut
from services.cleanup_service import cleanup_stats, run_sweep, verify_cron_key

router = APIRouter(prefix="/cleanup", tags=["Cleanup"])


def verify_cron_request(
    x_cron_key: str | None = Header(default=None),
    key: str | None = Query(default=None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    verify_cron_key(expected=settings.cron_secret, provided=x_cron_key or key)


@router.api_route("", methods=["GET", "POST"], dependencies=[Depends(verify_cron_request)])
@document_response(message="Cleanup completed")
async def trigger_cleanup(request: Request, collector: GarbageCollector = Depends(get_collector)):
    result = await run_in_threadpool(run_sweep, collector)
    return SweepResultOut.from_result(result)


@router.get("/stats", dependencies=[Depends(verify_cron_request)])
@document_response(message="Cleanup stats fetched")
async def get_cleanup_stats(request: Request, ledger: CleanupLedger = Depends(get_ledger)):
    stats = await run_in_threadpool(cleanup_stats, ledger)
    return CleanupStatsOut.from_stats(stats)
