"""
FastAPI backend for the interview rehearsal engine.
Exposes the four generative operations over HTTP and a WebSocket endpoint
that hosts one live session (timer, question, evaluation, voice) per connection.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rehearsal import config
from rehearsal.errors import RehearsalError, SpeechUnsupported, ValidationError
from rehearsal.models import CallOutcome, EvaluateRequest, FeedbackRequest, GenerateRequest, ResumeReviewRequest
from rehearsal.services import InterviewServices
from rehearsal.session import InterviewSession
from rehearsal.speech import WebSocketSpeechChannel

LOG = logging.getLogger("rehearsal")

_services: Optional[InterviewServices] = None


def get_services() -> InterviewServices:
    global _services
    if _services is None:
        _services = InterviewServices()
    return _services


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if config.llm_api_key():
        LOG.info("LLM configured: model=%s url=%s", config.LLM_MODEL, config.LLM_URL)
    else:
        LOG.info("OPENAI_API_KEY not configured; generative calls will use fallback content")
    yield
    LOG.info("Shutting down interview rehearsal backend")


app = FastAPI(title="Interview Rehearsal Engine", version="0.1.0", lifespan=lifespan)

# CORS for local dev; set CORS_ORIGINS for prod.
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/api/generate")
async def generate(payload: GenerateRequest, services: InterviewServices = Depends(get_services)) -> Dict[str, Any]:
    outcome = await services.generate_question(payload.company)
    return {
        "question": outcome.value.question,
        "starterCode": outcome.value.starter_code,
        "source": outcome.source.value,
    }


@app.post("/api/evaluate")
async def evaluate(payload: EvaluateRequest, services: InterviewServices = Depends(get_services)) -> Dict[str, Any]:
    outcome = await services.evaluate(payload.question, payload.code)
    return {"evaluation": outcome.value, "source": outcome.source.value}


@app.post("/api/interview-feedback")
async def interview_feedback(
    payload: FeedbackRequest, services: InterviewServices = Depends(get_services)
) -> Dict[str, Any]:
    outcome = await services.summarize_interview(
        payload.company, payload.question, payload.code, payload.evaluation, payload.time_spent
    )
    return {"feedback": outcome.value, "source": outcome.source.value}


@app.post("/api/review-resume")
async def review_resume(
    payload: ResumeReviewRequest, services: InterviewServices = Depends(get_services)
) -> Dict[str, Any]:
    outcome = await services.review_resume(payload.resume_text)
    return {"review": outcome.value, "source": outcome.source.value}


class SocketSender:
    """Serializes sends from the ticker, background calls and the receive loop."""

    def __init__(self, ws: WebSocket) -> None:
        self.ws = ws
        self._lock = asyncio.Lock()
        self.closed = False

    async def __call__(self, message: Dict[str, Any]) -> None:
        if self.closed:
            return
        async with self._lock:
            try:
                await self.ws.send_json(message)
            except Exception as exc:
                # Best-effort: client may already be gone.
                self.closed = True
                LOG.debug("Dropping socket message %s: %s", message.get("type"), exc)


def _coerce_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


async def handle_message(
    send: SocketSender, session: InterviewSession, channel: WebSocketSpeechChannel, payload: Dict[str, Any]
) -> None:
    msg_type = payload.get("type")
    if not isinstance(msg_type, str):
        await send({"type": "error", "message": "Message type must be a string."})
        return

    if msg_type == "set_company":
        await session.set_company(payload.get("company"))
        return
    if msg_type == "set_duration":
        minutes = _coerce_int(payload.get("minutes"))
        if minutes is None:
            await send({"type": "error", "message": "minutes must be an integer."})
            return
        await session.set_duration(minutes)
        return
    if msg_type == "set_language":
        await session.set_language(payload.get("language"))
        return
    if msg_type == "update_code":
        await session.update_code(payload.get("code"))
        return

    if msg_type == "start_timer":
        await session.start_timer()
        return
    if msg_type == "pause_timer":
        await session.pause_timer()
        return
    if msg_type == "reset_timer":
        await session.reset_timer(_coerce_int(payload.get("minutes")))
        return

    if msg_type == "generate_question":
        if "company" in payload:
            await session.set_company(payload.get("company"))
        session.request_question()
        return
    if msg_type == "evaluate":
        if "code" in payload:
            await session.update_code(payload.get("code"))
        session.request_evaluation()
        return
    if msg_type == "end_interview":
        session.request_feedback()
        return

    if msg_type == "start_call":
        channel.mark_supported(bool(payload.get("supported", True)))
        await session.start_call()
        return
    if msg_type == "end_call":
        await session.end_call()
        return
    if msg_type == "recognition_end":
        await session.recognition_ended()
        return
    if msg_type == "transcript":
        text = payload.get("text")
        if not isinstance(text, str):
            await send({"type": "error", "message": "Transcript text must be a string."})
            return
        decision = await session.hear(text, final=bool(payload.get("final", True)))
        if decision is not None and decision.acted:
            await send(
                {
                    "type": "voice_command",
                    "rule": decision.rule,
                    "command": decision.command.kind.value if decision.command else None,
                    "company": decision.command.company if decision.command else None,
                    "acknowledgment": decision.acknowledgment,
                    "applied": decision.applied,
                }
            )
        return

    await send({"type": "error", "message": f"Unrecognized message type: {msg_type}"})


@app.websocket("/ws/session")
async def session_socket(ws: WebSocket, services: InterviewServices = Depends(get_services)) -> None:
    await ws.accept()
    send = SocketSender(ws)
    channel = WebSocketSpeechChannel(send)

    async def push_state(snapshot: Dict[str, Any]) -> None:
        await send({"type": "state", "state": snapshot})

    async def push_feedback(outcome: CallOutcome[str]) -> None:
        await send({"type": "feedback", "feedback": outcome.value, "source": outcome.source.value})

    session = InterviewSession(services, channel=channel, on_change=push_state, on_feedback=push_feedback)
    await send({"type": "session_ready", "state": session.snapshot()})

    try:
        while True:
            raw = await ws.receive_text()
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                await send({"type": "error", "message": "Payload must be JSON"})
                continue
            if not isinstance(payload, dict):
                await send({"type": "error", "message": "Payload must be a JSON object"})
                continue

            try:
                await handle_message(send, session, channel, payload)
            except SpeechUnsupported as exc:
                await send({"type": "error", "kind": "speech_unsupported", "message": str(exc)})
            except RehearsalError as exc:
                await send({"type": "error", "kind": "validation", "message": str(exc)})
            await asyncio.sleep(0)  # yield control
    except WebSocketDisconnect:
        return
    finally:
        send.closed = True
        await session.close()
