from datetime import datetime
from typing import Final

from fastapi import APIRouter, Depends, Path, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..application.history_service import (
    create_transcription_async,
    get_history_async,
    get_transcription_async,
)
from ..application.pending_delete import PendingDeleteStore
from ..application.transcription_feed import TranscriptionFeed
from ..domain.constants import MAX_LANGUAGE_LENGTH
from ..domain.entities import Transcription
from ..domain.exceptions import TranscriptionNotFoundError
from ..infrastructure.database.database import get_async_session

api_router: Final = APIRouter(
    prefix="/api/v1",
    tags=["transcriptions"],
    responses={
        400: {"description": "Bad Request - Invalid input data"},
        404: {"description": "Not Found - Transcription does not exist"},
    },
)


def get_store(request: Request) -> PendingDeleteStore:
    return request.app.state.store


def get_feed(request: Request) -> TranscriptionFeed:
    return request.app.state.feed


# Request Models
class TranscriptionCreate(BaseModel):
    """Request model for saving a transcription."""

    text: str = Field(..., description="Transcribed text", examples=["Hello world"])
    language: str = Field(
        ...,
        min_length=1,
        max_length=MAX_LANGUAGE_LENGTH,
        description="Language code of the transcription",
        examples=["en", "de"],
    )
    sample_count: int = Field(
        ..., ge=0, description="Number of 16 kHz audio samples transcribed"
    )


# Response Models
class TranscriptionResponse(BaseModel):
    """Transcription information returned by the API."""

    id: int = Field(description="Unique transcription identifier")
    text: str = Field(description="Transcribed text")
    language: str = Field(description="Language code")
    duration_ms: int = Field(description="Audio duration in milliseconds")
    word_count: int = Field(description="Number of words in the text")
    created_at: datetime = Field(description="When the transcription was saved")

    @classmethod
    def from_domain(cls, transcription: Transcription) -> "TranscriptionResponse":
        return cls(
            id=transcription.id,
            text=transcription.text,
            language=transcription.language,
            duration_ms=transcription.duration_ms,
            word_count=transcription.word_count,
            created_at=transcription.created_at,
        )


class HistoryResponse(BaseModel):
    transcriptions: list[TranscriptionResponse] = Field(
        description="Saved transcriptions, newest first"
    )


class PendingDeleteResponse(BaseModel):
    """State of the undo window."""

    pending: TranscriptionResponse | None = Field(
        description="Transcription that can currently be undone"
    )
    scheduled_at: datetime | None = Field(
        description="When the pending deletion was requested"
    )
    remaining_ms: int = Field(description="Time left in the undo window")
    undo_timeout_ms: int = Field(description="Length of the undo window")


class UndoResponse(BaseModel):
    restored: TranscriptionResponse | None = Field(
        description="Recovered transcription, or null if nothing was pending"
    )


def _pending_response(store: PendingDeleteStore) -> PendingDeleteResponse:
    pending = store.get_pending_delete()
    return PendingDeleteResponse(
        pending=(
            TranscriptionResponse.from_domain(pending.transcription)
            if pending
            else None
        ),
        scheduled_at=pending.scheduled_at if pending else None,
        remaining_ms=store.remaining_ms(),
        undo_timeout_ms=store.undo_timeout_ms,
    )


@api_router.get(
    "/transcriptions",
    response_model=HistoryResponse,
    summary="List transcription history",
    description="Newest transcriptions first. A transcription inside the undo "
    "window is already hidden.",
)
async def api_get_history(
    request: Request,
    session: AsyncSession = Depends(get_async_session),
    store: PendingDeleteStore = Depends(get_store),
) -> HistoryResponse:
    limit = request.app.state.settings.history_limit
    pending = store.pending
    transcriptions = [
        t
        for t in await get_history_async(session, limit)
        if pending is None or t.id != pending.id
    ]
    return HistoryResponse(
        transcriptions=[TranscriptionResponse.from_domain(t) for t in transcriptions]
    )


@api_router.post(
    "/transcriptions",
    response_model=TranscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a transcription",
)
async def api_create_transcription(
    payload: TranscriptionCreate,
    session: AsyncSession = Depends(get_async_session),
    feed: TranscriptionFeed = Depends(get_feed),
) -> TranscriptionResponse:
    transcription = await create_transcription_async(
        session,
        text=payload.text,
        language=payload.language,
        sample_count=payload.sample_count,
        feed=feed,
    )
    return TranscriptionResponse.from_domain(transcription)


@api_router.get(
    "/transcriptions/pending",
    response_model=PendingDeleteResponse,
    summary="Show the deletion that can be undone",
)
async def api_get_pending(
    store: PendingDeleteStore = Depends(get_store),
) -> PendingDeleteResponse:
    return _pending_response(store)


@api_router.post(
    "/transcriptions/undo",
    response_model=UndoResponse,
    summary="Undo the pending deletion",
    description="Returns the recovered transcription. Undo with nothing "
    "pending is not an error and returns null.",
)
async def api_undo_delete(
    store: PendingDeleteStore = Depends(get_store),
) -> UndoResponse:
    restored = store.undo_delete()
    return UndoResponse(
        restored=TranscriptionResponse.from_domain(restored) if restored else None
    )


@api_router.delete(
    "/transcriptions/{transcription_id}",
    response_model=PendingDeleteResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Delete a transcription with undo",
    description="The transcription disappears from the history immediately and "
    "is permanently deleted once the undo window closes. Deleting another "
    "transcription first commits the one already pending.",
)
async def api_delete_transcription(
    transcription_id: int = Path(..., ge=1, description="Transcription id"),
    session: AsyncSession = Depends(get_async_session),
    store: PendingDeleteStore = Depends(get_store),
) -> PendingDeleteResponse:
    transcription = await get_transcription_async(session, transcription_id)
    if not await store.schedule_delete(transcription):
        # Already pending or being committed, so hidden from the history
        raise TranscriptionNotFoundError(transcription_id)
    return _pending_response(store)
