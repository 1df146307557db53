import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from ankitutor.application.card_batch import CardBatchSaver
from ankitutor.application.config import AppConfig, QuizSettings, resolve_config
from ankitutor.application.factory import create_quiz_session, get_anki_bridge, load_settings
from ankitutor.application.note_loader import NoteLoader, ReviewSort, sort_review_notes
from ankitutor.application.quiz.service import QuizService
from ankitutor.application.quiz.session import QuizSession
from ankitutor.consts import VERSION
from ankitutor.domain.errors import (
    AnkiConnectionError,
    AnkiProtocolError,
    AnkiTutorError,
    AuthError,
    LLMParseError,
)
from ankitutor.domain.models import GeneratedCard, VocabItem

logger = logging.getLogger("ankitutor.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"anki-tutor server v{VERSION} starting up...")
    yield
    logger.info("anki-tutor server shutting down...")


app = FastAPI(
    title="anki-tutor server",
    description="HTTP API for quiz, review and card-generation front-ends.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()

# Quiz sessions live for the lifetime of the process
_sessions: dict[str, QuizSession] = {}


def get_config() -> AppConfig:
    return resolve_config()


def get_settings(config: AppConfig = Depends(get_config)) -> QuizSettings:
    try:
        return load_settings(config)
    except AnkiTutorError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


def get_quiz_service() -> QuizService:
    return QuizService()


def _http_error(exc: AnkiTutorError) -> HTTPException:
    """Map core errors to HTTP statuses, keeping the message for the UI."""
    if isinstance(exc, AnkiConnectionError):
        status = 503
    elif isinstance(exc, AuthError):
        status = 401
    elif isinstance(exc, (AnkiProtocolError, LLMParseError)):
        status = 502
    else:
        status = 500
    return HTTPException(status_code=status, detail=str(exc))


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


# ---------- Review ----------


class NoteStatsModel(BaseModel):
    grade: str
    color: str
    summary: str
    details: str


class ReviewNoteModel(BaseModel):
    note_id: int
    front: str
    front_field_name: str
    back: str
    back_field_name: str
    tags: list[str]
    stats: NoteStatsModel


class FieldUpdateRequest(BaseModel):
    fields: dict[str, str] = Field(min_length=1)


@app.get("/review/notes", response_model=list[ReviewNoteModel])
async def review_notes(
    limit: int | None = None,
    deck: str | None = None,
    sort: ReviewSort = ReviewSort.RANDOM,
    settings: QuizSettings = Depends(get_settings),
):
    bridge = get_anki_bridge(settings)
    try:
        notes = await NoteLoader(bridge).load_review_notes(
            limit or settings.max_words,
            settings.deck_filter if deck is None else deck,
        )
    except AnkiTutorError as e:
        raise _http_error(e) from e
    finally:
        await bridge.close()

    notes = sort_review_notes(notes, sort)
    return [
        ReviewNoteModel(
            note_id=n.note_id,
            front=n.front,
            front_field_name=n.front_field_name,
            back=n.back,
            back_field_name=n.back_field_name,
            tags=sorted(n.tags),
            stats=NoteStatsModel(
                grade=n.stats.grade.value,
                color=n.stats.color,
                summary=n.stats.summary,
                details=n.stats.details,
            ),
        )
        for n in notes
    ]


@app.patch("/review/notes/{note_id}")
async def update_note(
    note_id: int,
    req: FieldUpdateRequest,
    settings: QuizSettings = Depends(get_settings),
):
    """Push edited field values straight back to Anki."""
    bridge = get_anki_bridge(settings)
    try:
        await NoteLoader(bridge).save_field(note_id, req.fields)
    except AnkiTutorError as e:
        raise _http_error(e) from e
    finally:
        await bridge.close()
    return {"ok": True}


@app.delete("/review/notes/{note_id}")
async def delete_note(note_id: int, settings: QuizSettings = Depends(get_settings)):
    bridge = get_anki_bridge(settings)
    try:
        await NoteLoader(bridge).delete_note(note_id)
    except AnkiTutorError as e:
        raise _http_error(e) from e
    finally:
        await bridge.close()
    return {"ok": True}


# ---------- Quiz sessions ----------


class AnswerRequest(BaseModel):
    answer: str = ""


def _get_session(session_id: str) -> QuizSession:
    session = _sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown quiz session {session_id}")
    return session


def _session_response(session_id: str, session: QuizSession) -> dict:
    return {"session_id": session_id, **session.to_dict()}


@app.post("/quiz/sessions")
async def create_session(
    config: AppConfig = Depends(get_config),
    service: QuizService = Depends(get_quiz_service),
):
    session_id = uuid.uuid4().hex
    _sessions[session_id] = create_quiz_session(config, quiz_service=service)
    logger.info(f"Created quiz session {session_id}")
    return _session_response(session_id, _sessions[session_id])


@app.get("/quiz/sessions/{session_id}")
async def get_session(session_id: str):
    return _session_response(session_id, _get_session(session_id))


@app.delete("/quiz/sessions/{session_id}")
async def delete_session(session_id: str):
    _get_session(session_id)
    del _sessions[session_id]
    return {"ok": True}


@app.post("/quiz/sessions/{session_id}/question")
async def request_question(session_id: str):
    session = _get_session(session_id)
    await session.request_question()
    return _session_response(session_id, session)


@app.post("/quiz/sessions/{session_id}/answer")
async def submit_answer(session_id: str, req: AnswerRequest):
    session = _get_session(session_id)
    await session.submit_answer(req.answer)
    return _session_response(session_id, session)


@app.post("/quiz/sessions/{session_id}/skip")
async def skip_question(session_id: str):
    session = _get_session(session_id)
    await session.skip()
    return _session_response(session_id, session)


@app.post("/quiz/sessions/{session_id}/advance")
async def advance(session_id: str, req: AnswerRequest):
    """Keyboard-shortcut trigger: first question, next question or submit."""
    session = _get_session(session_id)
    action = await session.advance(req.answer)
    return {**_session_response(session_id, session), "action": action.value if action else None}


@app.post("/quiz/sessions/{session_id}/reload")
async def reload_vocabulary(session_id: str):
    session = _get_session(session_id)
    await session.reload_vocabulary()
    return _session_response(session_id, session)


# ---------- Card generation ----------


class CardModel(BaseModel):
    front: str
    back: str
    note_id: int | None = None
    field_names: list[str] | None = None
    saved: bool = False
    error: str | None = None


class GenerateRequest(BaseModel):
    prompt: str
    share_cards: bool = True
    model: str | None = None


class SaveRequest(BaseModel):
    cards: list[CardModel]
    deck_name: str | None = None


def _card_model(card: GeneratedCard) -> CardModel:
    return CardModel(
        front=card.front,
        back=card.back,
        note_id=card.note_id,
        field_names=card.field_names,
        saved=card.saved,
        error=card.error,
    )


@app.post("/cards/generate", response_model=list[CardModel])
async def generate_cards(
    req: GenerateRequest,
    settings: QuizSettings = Depends(get_settings),
    service: QuizService = Depends(get_quiz_service),
):
    if req.model:
        settings = settings.model_copy(update={"model": req.model})
    bridge = get_anki_bridge(settings)
    try:
        service.check_credentials(settings)
        context: list[VocabItem] = []
        if req.share_cards:
            context = await NoteLoader(bridge).load_vocabulary(
                settings.max_words, settings.deck_filter
            )
        cards = await service.generate_cards(req.prompt, context, settings)
    except AnkiTutorError as e:
        raise _http_error(e) from e
    finally:
        await bridge.close()
    return [_card_model(card) for card in cards]


@app.post("/cards/save", response_model=list[CardModel])
async def save_cards(req: SaveRequest, settings: QuizSettings = Depends(get_settings)):
    """Save every unsaved card in parallel; each card reports its own outcome."""
    cards = [
        GeneratedCard(
            front=c.front,
            back=c.back,
            note_id=c.note_id,
            field_names=c.field_names,
            saved=c.saved,
        )
        for c in req.cards
    ]
    bridge = get_anki_bridge(settings)
    try:
        saver = CardBatchSaver(bridge, deck_name=req.deck_name or settings.deck_filter)
        await saver.save_all(cards)
    finally:
        await bridge.close()
    return [_card_model(card) for card in cards]
