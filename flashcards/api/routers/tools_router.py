"""
Tools router.

One POST endpoint per tool. Each takes a JSON arguments object and returns a
JSON payload; engine errors are translated by the handlers in api.main.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from loguru import logger
from pydantic import BaseModel, Field, StrictFloat, StrictInt

from flashcards.errors import InvalidRequestError
from flashcards.models import DueDate
from flashcards.service import FlashcardService

router = APIRouter()


def get_service(request: Request) -> FlashcardService:
    """Service instance installed on the app at startup."""
    return request.app.state.service


# ========================================
# Request Models
# ========================================


class TagFilterRequest(BaseModel):
    tags: list[str] | None = Field(None, description="Cards must carry ALL of these tags")


class SubmitReviewRequest(BaseModel):
    card_id: str = Field(..., description="The ID of the card being reviewed")
    rating: StrictInt | StrictFloat = Field(..., description="Rating from 1-4: Again=1, Hard=2, Good=3, Easy=4")
    answer: str = Field("", description="The answer provided by the user")


class CreateCardRequest(BaseModel):
    front: str = Field(..., description="The front text of the card")
    back: str = Field(..., description="The back text of the card")
    tags: list[str] = Field(default_factory=list, description="Tags for categorizing the card")


class UpdateCardRequest(BaseModel):
    card_id: str = Field(..., description="The ID of the card to update")
    front: str | None = Field(None, description="The new front text of the card")
    back: str | None = Field(None, description="The new back text of the card")
    tags: list[str] | None = Field(None, description="New tags for the card")


class CardIdRequest(BaseModel):
    card_id: str = Field(..., description="The ID of the card")


class ListCardsRequest(BaseModel):
    tags: list[str] | None = Field(None, description="Cards carrying ANY of these tags")
    include_stats: bool = Field(False, description="Include statistics in the response")


class ManageDueDatesRequest(BaseModel):
    action: str = Field(..., description="One of create, list, update, delete")
    topic: str | None = None
    date: str | None = Field(None, description="YYYY-MM-DD")
    due_date_id: str | None = None
    tag: str | None = None


def _due_date_payload(due_date: DueDate) -> dict[str, Any]:
    return due_date.model_dump(mode="json")


# ========================================
# Card Tools
# ========================================


@router.post("/get_due_card", summary="Get the next flashcard due for review")
def get_due_card(
    request: TagFilterRequest | None = None,
    service: FlashcardService = Depends(get_service),
) -> dict[str, Any]:
    tags = request.tags if request else None
    selection = service.get_due_card(tags)
    return {
        "card": selection.card.model_dump(mode="json"),
        "stats": selection.stats.to_dict(),
    }


@router.post("/submit_review", summary="Submit a review for a flashcard")
def submit_review(
    request: SubmitReviewRequest,
    service: FlashcardService = Depends(get_service),
) -> dict[str, Any]:
    card = service.submit_review(request.card_id, request.rating, request.answer)
    return {
        "success": True,
        "message": "Review submitted successfully",
        "card": card.model_dump(mode="json"),
    }


@router.post("/create_card", summary="Create a new flashcard")
def create_card(
    request: CreateCardRequest,
    service: FlashcardService = Depends(get_service),
) -> dict[str, Any]:
    card = service.create_card(request.front, request.back, request.tags)
    return {"card": card.model_dump(mode="json")}


@router.post("/update_card", summary="Update an existing flashcard")
def update_card(
    request: UpdateCardRequest,
    service: FlashcardService = Depends(get_service),
) -> dict[str, Any]:
    card = service.update_card(request.card_id, request.front, request.back, request.tags)
    return {
        "success": True,
        "message": "Card updated successfully",
        "card": card.model_dump(mode="json"),
    }


@router.post("/delete_card", summary="Delete a flashcard")
def delete_card(
    request: CardIdRequest,
    service: FlashcardService = Depends(get_service),
) -> dict[str, Any]:
    service.delete_card(request.card_id)
    return {"success": True, "message": "Card deleted successfully"}


@router.post("/list_cards", summary="List flashcards, optionally filtered by tags")
def list_cards(
    request: ListCardsRequest | None = None,
    service: FlashcardService = Depends(get_service),
) -> dict[str, Any]:
    request = request or ListCardsRequest()
    cards, stats = service.list_cards(request.tags, include_stats=request.include_stats)
    payload: dict[str, Any] = {"cards": [c.model_dump(mode="json") for c in cards]}
    if stats is not None:
        payload["stats"] = stats.to_dict()
    return payload


@router.post("/get_card_reviews", summary="Review history of one card")
def get_card_reviews(
    request: CardIdRequest,
    service: FlashcardService = Depends(get_service),
) -> dict[str, Any]:
    reviews = service.get_card_reviews(request.card_id)
    return {"reviews": [r.model_dump(mode="json") for r in reviews]}


@router.post("/get_stats", summary="Aggregate review statistics")
def get_stats(service: FlashcardService = Depends(get_service)) -> dict[str, Any]:
    return service.get_stats().to_dict()


@router.post("/help_analyze_learning", summary="Find cards the learner struggles with")
def help_analyze_learning(service: FlashcardService = Depends(get_service)) -> dict[str, Any]:
    return service.analyze_learning().to_dict()


# ========================================
# Due Date Tool
# ========================================


@router.post("/manage_due_dates", summary="Create, list, update or delete due dates")
def manage_due_dates(
    request: ManageDueDatesRequest,
    service: FlashcardService = Depends(get_service),
) -> Any:
    action = request.action
    logger.debug(f"manage_due_dates action={action}")

    if action == "create":
        if not request.topic or not request.date:
            raise InvalidRequestError("Missing required parameters for create: topic, date (YYYY-MM-DD)")
        return _due_date_payload(service.add_due_date(request.topic, request.date, request.tag))

    if action == "list":
        return [_due_date_payload(d) for d in service.list_due_dates()]

    if action == "update":
        if not request.due_date_id:
            raise InvalidRequestError("Missing required parameter for update: due_date_id")
        updated = service.update_due_date(
            request.due_date_id,
            topic=request.topic,
            due_date=request.date,
            tag=request.tag,
        )
        return _due_date_payload(updated)

    if action == "delete":
        if not request.due_date_id:
            raise InvalidRequestError("Missing required parameter for delete: due_date_id")
        service.delete_due_date(request.due_date_id)
        return {"message": f"Due date {request.due_date_id} deleted successfully"}

    raise InvalidRequestError(
        f"Invalid action: {action}. Must be one of 'create', 'update', 'delete', 'list'"
    )
