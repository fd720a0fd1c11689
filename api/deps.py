from __future__ import annotations

from fastapi import Request

from core.cleanup.collector import GarbageCollector
from core.cleanup.ledger import CleanupLedger
from core.settings import Settings
from core.storage.manager import FileStorageManager


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> FileStorageManager:
    return request.app.state.storage


def get_ledger(request: Request) -> CleanupLedger:
    return request.app.state.ledger


def get_collector(request: Request) -> GarbageCollector:
    return request.app.state.collector
