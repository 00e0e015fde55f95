"""
Voice command interpreter.

Turns a continuous, possibly partial transcript into at most one session
command. Rules are plain data (``DEFAULT_RULES``), evaluated first-match-wins
in list order over case-insensitive substring tests.

Recognizers resend the whole utterance on every update, so once a rule has
acted, the interpreter remembers the transcript up to the end of the matched
phrase (or extracted company name) as consumed and only looks at text after
it. A trailing word the recognizer has not finished stays open for the next
update. A transcript that does not extend the consumed one
means the recognizer restarted, and matching starts over.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from rehearsal.models import Command, CommandKind

if TYPE_CHECKING:
    from rehearsal.models import SessionState

LOG = logging.getLogger("rehearsal.voice")

COMPANIES = ["Google", "Meta", "Amazon", "Apple", "Microsoft", "Netflix", "Tesla", "Uber", "Airbnb", "Stripe"]

ASK_FOR_SOLUTION = "I need a question and your code before I can evaluate. Generate a question and write your solution first."
ASK_FOR_COMPANY = "Which company are you interviewing for? You can say, for example, interview for Google."

COMPANY_PHRASES = ("interview for", "company is")


class SessionControls(Protocol):
    """The handlers a UI button would call; InterviewSession implements them."""

    state: "SessionState"

    async def start_timer(self) -> bool: ...

    async def pause_timer(self) -> bool: ...

    async def reset_timer(self, minutes: Optional[int] = None) -> bool: ...

    async def set_company(self, name: Optional[str]) -> bool: ...

    def request_question(self) -> bool: ...

    def request_evaluation(self) -> bool: ...

    async def say(self, text: str) -> None: ...


@dataclass(frozen=True)
class VoiceDecision:
    command: Optional[Command] = None
    acknowledgment: Optional[str] = None
    rule: Optional[str] = None
    applied: bool = False
    # Offset in the decoded text up to which the transcript counts as handled.
    end: Optional[int] = None

    @property
    def acted(self) -> bool:
        """True when the rule fired a command or asked the user for something."""
        if self.acknowledgment:
            return True
        return self.command is not None and self.command.kind != CommandKind.UNRECOGNIZED


Decide = Callable[[str, "SessionState", bool], VoiceDecision]


@dataclass(frozen=True)
class VoiceRule:
    name: str
    phrases: Tuple[str, ...]
    decide: Decide

    def matches(self, lowered: str) -> bool:
        return any(phrase in lowered for phrase in self.phrases)

    def match_end(self, lowered: str) -> Optional[int]:
        ends = [lowered.rfind(phrase) + len(phrase) for phrase in self.phrases if phrase in lowered]
        return max(ends) if ends else None


def _fire(kind: CommandKind, rule: str) -> Decide:
    def decide(text: str, state: "SessionState", final: bool) -> VoiceDecision:
        return VoiceDecision(command=Command(kind=kind), rule=rule)

    return decide


def _decide_evaluate(text: str, state: "SessionState", final: bool) -> VoiceDecision:
    if state.question.strip() and state.code.strip():
        return VoiceDecision(command=Command(kind=CommandKind.EVALUATE_SOLUTION), rule="evaluate_solution")
    return VoiceDecision(acknowledgment=ASK_FOR_SOLUTION, rule="evaluate_solution")


def _canonical_company(token: str) -> str:
    for name in COMPANIES:
        if name.lower() == token.lower():
            return name
    return token


def _company_match(text: str, phrases: Sequence[str], final: bool) -> Optional["re.Match[str]"]:
    alternatives = "|".join(re.escape(phrase) for phrase in phrases)
    # A partial transcript may stop mid-word, so the token must be terminated.
    terminator = "" if final else r"(?=[^A-Za-z])"
    return re.search(rf"(?:{alternatives})\s+([A-Za-z]+){terminator}", text, flags=re.IGNORECASE)


def extract_company(text: str, phrases: Sequence[str] = COMPANY_PHRASES, final: bool = True) -> Optional[str]:
    match = _company_match(text, phrases, final)
    if not match:
        return None
    return _canonical_company(match.group(1))


def _decide_company(text: str, state: "SessionState", final: bool) -> VoiceDecision:
    match = _company_match(text, COMPANY_PHRASES, final)
    if not match:
        return VoiceDecision(rule="set_company")
    name = _canonical_company(match.group(1))
    return VoiceDecision(command=Command.set_company(name), rule="set_company", end=match.end(1))


def _decide_generate(text: str, state: "SessionState", final: bool) -> VoiceDecision:
    if (state.company or "").strip():
        return VoiceDecision(command=Command(kind=CommandKind.GENERATE_QUESTION), rule="generate_question")
    return VoiceDecision(acknowledgment=ASK_FOR_COMPANY, rule="generate_question")


DEFAULT_RULES: List[VoiceRule] = [
    VoiceRule("start_timer", ("start timer", "begin timer"), _fire(CommandKind.START_TIMER, "start_timer")),
    VoiceRule("pause_timer", ("pause timer", "stop timer"), _fire(CommandKind.PAUSE_TIMER, "pause_timer")),
    VoiceRule("reset_timer", ("reset timer",), _fire(CommandKind.RESET_TIMER, "reset_timer")),
    VoiceRule("evaluate_solution", ("evaluate solution", "evaluate my solution"), _decide_evaluate),
    VoiceRule("set_company", COMPANY_PHRASES, _decide_company),
    VoiceRule("generate_question", ("generate question", "new question"), _decide_generate),
]


async def _set_company(session: SessionControls, command: Command) -> bool:
    return await session.set_company(command.company)


async def _request_question(session: SessionControls, command: Command) -> bool:
    return session.request_question()


async def _request_evaluation(session: SessionControls, command: Command) -> bool:
    return session.request_evaluation()


HANDLERS: Dict[CommandKind, Callable[[SessionControls, Command], Awaitable[bool]]] = {
    CommandKind.START_TIMER: lambda session, _: session.start_timer(),
    CommandKind.PAUSE_TIMER: lambda session, _: session.pause_timer(),
    CommandKind.RESET_TIMER: lambda session, _: session.reset_timer(),
    CommandKind.SET_COMPANY: _set_company,
    CommandKind.GENERATE_QUESTION: _request_question,
    CommandKind.EVALUATE_SOLUTION: _request_evaluation,
}

CONFIRMATIONS: Dict[CommandKind, Callable[[Command, "SessionState"], str]] = {
    CommandKind.START_TIMER: lambda _, state: "Timer started.",
    CommandKind.PAUSE_TIMER: lambda _, state: "Timer paused.",
    CommandKind.RESET_TIMER: lambda _, state: f"Timer reset to {state.duration_minutes} minutes.",
    CommandKind.SET_COMPANY: lambda command, _: f"Got it. Interviewing for {command.company}.",
    CommandKind.GENERATE_QUESTION: lambda _, state: f"Generating a question for {state.company}.",
    CommandKind.EVALUATE_SOLUTION: lambda _, state: "Evaluating your solution.",
}


class VoiceCommandInterpreter:
    def __init__(self, rules: Optional[Sequence[VoiceRule]] = None) -> None:
        self.rules: List[VoiceRule] = list(rules if rules is not None else DEFAULT_RULES)
        self._consumed = ""

    @property
    def consumed(self) -> str:
        return self._consumed

    def forget(self) -> None:
        self._consumed = ""

    def decode(self, text: str, state: "SessionState", final: bool = True) -> VoiceDecision:
        """First matching rule decides. Its ``end`` covers every rule that would act on
        this text, so a lower-priority phrase in the same utterance is not picked up
        again when the recognizer resends it.
        """
        text = text or ""
        lowered = text.lower()
        chosen: Optional[VoiceDecision] = None
        end = 0
        for rule in self.rules:
            if not rule.matches(lowered):
                continue
            decision = rule.decide(text, state, final)
            if decision.acted:
                end = max(end, decision.end if decision.end is not None else rule.match_end(lowered))
            if chosen is None:
                chosen = decision
        if chosen is None:
            return VoiceDecision(command=Command(kind=CommandKind.UNRECOGNIZED))
        return replace(chosen, end=end) if chosen.acted else chosen

    def pending_text(self, transcript: str) -> str:
        if self._consumed and transcript.lower().startswith(self._consumed.lower()):
            return transcript[len(self._consumed):]
        self._consumed = ""
        return transcript

    async def handle(self, transcript: str, session: SessionControls, final: bool = True) -> VoiceDecision:
        transcript = transcript or ""
        pending = self.pending_text(transcript)
        decision = self.decode(pending, session.state, final)
        if not decision.acted:
            return decision
        # Text after the matched phrase may be a word the recognizer has not finished.
        self._consumed += pending[: decision.end]

        acknowledgment = decision.acknowledgment
        applied = False
        if decision.command is not None:
            applied = await HANDLERS[decision.command.kind](session, decision.command)
            acknowledgment = CONFIRMATIONS[decision.command.kind](decision.command, session.state) if applied else None
            LOG.info(
                "Voice command %s (rule=%s applied=%s)", decision.command.kind.value, decision.rule, applied
            )
        else:
            LOG.info("Voice rule %s needs more input", decision.rule)

        if acknowledgment and session.state.voice_connected:
            await session.say(acknowledgment)
        return replace(decision, acknowledgment=acknowledgment, applied=applied)
