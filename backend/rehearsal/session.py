from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Dict, Optional, Set

from rehearsal import timer
from rehearsal.errors import SpeechUnsupported, ValidationError
from rehearsal.models import CallOutcome, GeneratedQuestion, SessionState
from rehearsal.services import InterviewServices
from rehearsal.speech import SpeechChannel, VoiceLink
from rehearsal.voice import VoiceCommandInterpreter, VoiceDecision

LOG = logging.getLogger("rehearsal.session")

StateListener = Callable[[Dict[str, Any]], Awaitable[None]]
FeedbackListener = Callable[[CallOutcome[str]], Awaitable[None]]


class InterviewSession:
    """Owns one user's SessionState and the handlers UI actions and voice commands share.

    Generation and evaluation run under a per-operation request id: when a
    newer request starts, the older result is dropped on arrival.
    """

    def __init__(
        self,
        services: InterviewServices,
        channel: Optional[SpeechChannel] = None,
        on_change: Optional[StateListener] = None,
        tick_interval: Optional[float] = None,
        duration_minutes: Optional[int] = None,
        on_feedback: Optional[FeedbackListener] = None,
    ) -> None:
        self.services = services
        self.state = SessionState(duration_minutes=duration_minutes)
        self.interpreter = VoiceCommandInterpreter()
        self.ticker = timer.TimerTicker(self._on_tick, interval=tick_interval)
        self.link: Optional[VoiceLink] = None
        if channel is not None:
            self.link = VoiceLink(channel, on_transcript=self.handle_transcript, on_connected=self._set_voice_connected)
        self._on_change = on_change
        self._on_feedback = on_feedback
        self._request_ids: Dict[str, int] = {"generate_question": 0, "evaluate": 0, "end_interview": 0}
        self._tasks: Set[asyncio.Task] = set()

    def snapshot(self) -> Dict[str, Any]:
        state = self.state
        return {
            "company": state.company,
            "durationMinutes": state.duration_minutes,
            "pendingDurationMinutes": state.pending_duration_minutes,
            "remainingSeconds": state.remaining_seconds,
            "clock": timer.format_clock(state.remaining_seconds),
            "percentRemaining": timer.percent_remaining(state),
            "lowTime": timer.is_low_time(state),
            "phase": timer.timer_phase(state).value,
            "running": state.running,
            "question": state.question,
            "starterCode": state.starter_code,
            "code": state.code,
            "evaluation": state.evaluation,
            "feedback": state.feedback,
            "language": state.language,
            "voiceConnected": state.voice_connected,
            "sources": dict(state.last_source),
        }

    async def _notify(self) -> None:
        if self._on_change is not None:
            await self._on_change(self.snapshot())

    # Plain field edits

    async def set_company(self, name: Optional[str]) -> bool:
        name = (name or "").strip() or None
        if name == self.state.company:
            return False
        self.state.company = name
        await self._notify()
        return True

    async def set_duration(self, minutes: Optional[int]) -> None:
        timer.set_duration(self.state, minutes)
        await self._notify()

    async def set_language(self, language: Optional[str]) -> None:
        self.state.language = (language or "").strip() or self.state.language
        await self._notify()

    async def update_code(self, code: Optional[str]) -> None:
        self.state.code = code or ""

    # Timer

    async def start_timer(self) -> bool:
        if not timer.start_timer(self.state):
            return False
        self.ticker.start()
        await self._notify()
        return True

    async def pause_timer(self) -> bool:
        changed = timer.pause_timer(self.state)
        await self.ticker.stop()
        if changed:
            await self._notify()
        return changed

    async def reset_timer(self, minutes: Optional[int] = None) -> bool:
        timer.reset_timer(self.state, minutes)
        await self.ticker.stop()
        await self._notify()
        return True

    async def _on_tick(self) -> bool:
        phase = timer.tick(self.state)
        await self._notify()
        return phase == timer.TimerPhase.RUNNING

    # Generative calls

    def _next_request(self, op: str) -> int:
        self._request_ids[op] += 1
        return self._request_ids[op]

    def _is_latest(self, op: str, request_id: int) -> bool:
        if self._request_ids[op] != request_id:
            LOG.debug("Discarding stale %s result (request=%s latest=%s)", op, request_id, self._request_ids[op])
            return False
        return True

    async def generate_question(self) -> Optional[CallOutcome[GeneratedQuestion]]:
        company = (self.state.company or "").strip()
        if not company:
            raise ValidationError("company required")
        request_id = self._next_request("generate_question")
        # A pending evaluation belongs to the old question.
        self._next_request("evaluate")
        self.state.question = ""
        self.state.evaluation = ""
        await self._notify()

        outcome = await self.services.generate_question(company)
        if not self._is_latest("generate_question", request_id):
            return None
        generated = outcome.value
        self.state.question = generated.question
        self.state.starter_code = generated.starter_code
        if generated.starter_code:
            self.state.code = generated.starter_code
        self.state.last_source["question"] = outcome.source.value
        timer.reset_timer(self.state)
        await self.ticker.stop()
        await self.start_timer()
        await self._notify()
        await self.say(generated.question)
        return outcome

    async def evaluate(self) -> Optional[CallOutcome[str]]:
        question, code = self.state.question, self.state.code
        if not question.strip() or not code.strip():
            raise ValidationError("question and code required")
        request_id = self._next_request("evaluate")
        self.state.evaluation = ""
        await self._notify()

        outcome = await self.services.evaluate(question, code)
        if not self._is_latest("evaluate", request_id):
            return None
        self.state.evaluation = outcome.value
        self.state.last_source["evaluation"] = outcome.source.value
        await self._notify()
        await self.say(outcome.value)
        return outcome

    async def end_interview(self) -> Optional[CallOutcome[str]]:
        state = self.state
        if not state.question.strip() or not state.code.strip():
            raise ValidationError("question and code required for feedback")
        request_id = self._next_request("end_interview")
        await self.pause_timer()
        time_spent = max(0, state.duration_minutes * 60 - state.remaining_seconds)
        outcome = await self.services.summarize_interview(
            state.company, state.question, state.code, state.evaluation, time_spent
        )
        if not self._is_latest("end_interview", request_id):
            return None
        state.feedback = outcome.value
        state.last_source["feedback"] = outcome.source.value
        await self._notify()
        if self._on_feedback is not None:
            await self._on_feedback(outcome)
        return outcome

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)

        def _done(finished: asyncio.Task) -> None:
            self._tasks.discard(finished)
            if finished.cancelled():
                return
            exc = finished.exception()
            if exc is not None:
                LOG.warning("Background %s failed: %s", name, exc)

        task.add_done_callback(_done)
        return task

    def request_question(self) -> bool:
        """Validate now, then run generation in the background."""
        if not (self.state.company or "").strip():
            raise ValidationError("company required")
        self.spawn(self.generate_question(), "generate_question")
        return True

    def request_evaluation(self) -> bool:
        if not self.state.question.strip() or not self.state.code.strip():
            raise ValidationError("question and code required")
        self.spawn(self.evaluate(), "evaluate")
        return True

    def request_feedback(self) -> bool:
        if not self.state.question.strip() or not self.state.code.strip():
            raise ValidationError("question and code required for feedback")
        self.spawn(self.end_interview(), "end_interview")
        return True

    # Voice

    def _set_voice_connected(self, connected: bool) -> None:
        self.state.voice_connected = connected

    async def say(self, text: str) -> None:
        if self.link is not None and self.state.voice_connected and text:
            await self.link.say(text)

    async def start_call(self) -> None:
        if self.link is None:
            raise SpeechUnsupported()
        await self.link.start_call()
        self.interpreter.forget()
        await self._notify()

    async def end_call(self) -> None:
        if self.link is None:
            return
        await self.link.end_call()
        await self._notify()

    async def recognition_ended(self) -> None:
        if self.link is not None:
            await self.link.recognition_ended()

    async def handle_transcript(self, text: str, final: bool = True) -> VoiceDecision:
        return await self.interpreter.handle(text, self, final=final)

    async def hear(self, text: str, final: bool = True) -> Optional[VoiceDecision]:
        """Transcript entry point for a live call; ignored unless the link is listening."""
        if self.link is None:
            return None
        return await self.link.deliver_transcript(text, final)

    async def close(self) -> None:
        await self.ticker.stop()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self.state.running = False
        self.state.voice_connected = False
