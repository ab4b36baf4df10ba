"""
Resources router.

Read-only views derived from the store.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from flashcards.api.routers.tools_router import get_service
from flashcards.service import FlashcardService

router = APIRouter()


@router.get("/available-tags", summary="Tags with card and due counts")
def available_tags(service: FlashcardService = Depends(get_service)) -> list[dict[str, Any]]:
    return [info.to_dict() for info in service.get_tags()]


@router.get("/due-date-progress", summary="Progress towards upcoming due dates")
def due_date_progress(service: FlashcardService = Depends(get_service)) -> list[dict[str, Any]]:
    return [info.to_dict() for info in service.due_date_progress_report()]


@router.get("/due-date-progress/{tag}", summary="Mastery progress for one tag")
def tag_progress(tag: str, service: FlashcardService = Depends(get_service)) -> dict[str, Any]:
    return service.get_due_date_progress(tag).to_dict()
