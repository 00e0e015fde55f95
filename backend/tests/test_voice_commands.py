from __future__ import annotations

from typing import List, Optional

import pytest

from rehearsal.models import Command, CommandKind, SessionState
from rehearsal.voice import (
    ASK_FOR_COMPANY,
    ASK_FOR_SOLUTION,
    DEFAULT_RULES,
    VoiceCommandInterpreter,
    extract_company,
)


class FakeControls:
    """Records handler calls the way a UI would trigger them."""

    def __init__(self, state: Optional[SessionState] = None, connected: bool = True) -> None:
        self.state = state or SessionState()
        self.state.voice_connected = connected
        self.calls: List[tuple] = []
        self.spoken: List[str] = []

    async def start_timer(self) -> bool:
        self.calls.append(("start_timer",))
        self.state.running = True
        return True

    async def pause_timer(self) -> bool:
        self.calls.append(("pause_timer",))
        was_running = self.state.running
        self.state.running = False
        return was_running

    async def reset_timer(self, minutes: Optional[int] = None) -> bool:
        self.calls.append(("reset_timer", minutes))
        return True

    async def set_company(self, name: Optional[str]) -> bool:
        self.calls.append(("set_company", name))
        if name == self.state.company:
            return False
        self.state.company = name
        return True

    def request_question(self) -> bool:
        self.calls.append(("request_question",))
        return True

    def request_evaluation(self) -> bool:
        self.calls.append(("request_evaluation",))
        return True

    async def say(self, text: str) -> None:
        self.spoken.append(text)


@pytest.fixture
def interpreter():
    return VoiceCommandInterpreter()


class TestDecode:
    def test_start_timer_inside_sentence(self, interpreter):
        decision = interpreter.decode("please start timer now", SessionState())
        assert decision.command == Command(kind=CommandKind.START_TIMER)

    def test_set_company_from_phrase(self, interpreter):
        decision = interpreter.decode("my interview for Google begins", SessionState())
        assert decision.command == Command.set_company("Google")

    def test_company_name_is_canonicalized(self, interpreter):
        decision = interpreter.decode("the company is netflix", SessionState())
        assert decision.command.company == "Netflix"

    def test_unknown_company_kept_as_spoken(self):
        assert extract_company("interview for Databricks") == "Databricks"

    def test_evaluate_without_code_asks_for_solution(self, interpreter):
        state = SessionState()
        state.question = "Two Sum"
        decision = interpreter.decode("evaluate my solution please", state)
        assert decision.command is None
        assert decision.acknowledgment == ASK_FOR_SOLUTION

    def test_evaluate_with_question_and_code(self, interpreter):
        state = SessionState()
        state.question = "Two Sum"
        state.code = "def f(): pass"
        decision = interpreter.decode("Evaluate Solution", state)
        assert decision.command.kind == CommandKind.EVALUATE_SOLUTION

    def test_generate_without_company_asks_for_one(self, interpreter):
        decision = interpreter.decode("give me a new question", SessionState())
        assert decision.acknowledgment == ASK_FOR_COMPANY

    def test_earlier_rule_wins(self, interpreter):
        decision = interpreter.decode("stop timer and start timer", SessionState())
        assert decision.command.kind == CommandKind.START_TIMER
        assert decision.rule == "start_timer"

    def test_timer_rule_beats_company_rule(self, interpreter):
        decision = interpreter.decode("reset timer for my interview for Uber", SessionState())
        assert decision.command.kind == CommandKind.RESET_TIMER

    def test_unrecognized_text(self, interpreter):
        decision = interpreter.decode("what a lovely day", SessionState())
        assert decision.command.kind == CommandKind.UNRECOGNIZED
        assert not decision.acted

    def test_rule_table_order(self):
        assert [rule.name for rule in DEFAULT_RULES] == [
            "start_timer",
            "pause_timer",
            "reset_timer",
            "evaluate_solution",
            "set_company",
            "generate_question",
        ]

    @pytest.mark.parametrize(
        "phrase,kind",
        [
            ("begin timer", CommandKind.START_TIMER),
            ("pause timer", CommandKind.PAUSE_TIMER),
            ("stop timer", CommandKind.PAUSE_TIMER),
            ("reset timer", CommandKind.RESET_TIMER),
        ],
    )
    def test_timer_phrases(self, interpreter, phrase, kind):
        assert interpreter.decode(phrase.upper(), SessionState()).command.kind == kind


class TestPartialTranscripts:
    def test_unterminated_company_waits(self):
        assert extract_company("interview for Goo", final=False) is None

    def test_terminated_company_on_partial(self):
        assert extract_company("interview for Google and", final=False) == "Google"

    def test_final_transcript_takes_trailing_token(self):
        assert extract_company("interview for Google", final=True) == "Google"

    def test_phrase_without_name_is_not_a_command(self, interpreter):
        decision = interpreter.decode("interview for", SessionState(), final=True)
        assert not decision.acted


class TestHandle:
    @pytest.mark.asyncio
    async def test_start_timer_runs_handler_and_confirms(self, interpreter):
        controls = FakeControls()
        decision = await interpreter.handle("please start timer now", controls)
        assert controls.calls == [("start_timer",)]
        assert decision.applied
        assert controls.spoken == ["Timer started."]

    @pytest.mark.asyncio
    async def test_evaluate_blank_code_speaks_request(self, interpreter):
        controls = FakeControls()
        controls.state.question = "Two Sum"
        decision = await interpreter.handle("evaluate my solution please", controls)
        assert controls.calls == []
        assert decision.acknowledgment == ASK_FOR_SOLUTION
        assert controls.spoken == [ASK_FOR_SOLUTION]

    @pytest.mark.asyncio
    async def test_repeated_transcript_fires_once(self, interpreter):
        controls = FakeControls()
        await interpreter.handle("start timer", controls)
        await interpreter.handle("start timer", controls)
        await interpreter.handle("start timer", controls)
        assert controls.calls == [("start_timer",)]

    @pytest.mark.asyncio
    async def test_growing_transcript_sees_new_command(self, interpreter):
        controls = FakeControls()
        await interpreter.handle("start timer", controls, final=False)
        await interpreter.handle("start timer and then pause timer", controls, final=False)
        assert controls.calls == [("start_timer",), ("pause_timer",)]

    @pytest.mark.asyncio
    async def test_restarted_recognizer_matches_again(self, interpreter):
        controls = FakeControls()
        await interpreter.handle("start timer", controls)
        await interpreter.handle("pause timer", controls)
        await interpreter.handle("start timer", controls)
        assert [call[0] for call in controls.calls] == ["start_timer", "pause_timer", "start_timer"]

    @pytest.mark.asyncio
    async def test_partial_company_is_not_consumed_early(self, interpreter):
        controls = FakeControls()
        await interpreter.handle("interview for Goo", controls, final=False)
        assert controls.calls == []
        await interpreter.handle("interview for Google", controls, final=True)
        assert controls.calls == [("set_company", "Google")]
        assert controls.state.company == "Google"

    @pytest.mark.asyncio
    async def test_no_confirmation_when_handler_is_noop(self, interpreter):
        controls = FakeControls()
        decision = await interpreter.handle("pause timer", controls)
        assert controls.calls == [("pause_timer",)]
        assert decision.applied is False
        assert controls.spoken == []

    @pytest.mark.asyncio
    async def test_silent_when_voice_disconnected(self, interpreter):
        controls = FakeControls(connected=False)
        await interpreter.handle("start timer", controls)
        assert controls.calls == [("start_timer",)]
        assert controls.spoken == []

    @pytest.mark.asyncio
    async def test_generate_with_company_requests_question(self, interpreter):
        controls = FakeControls()
        controls.state.company = "Apple"
        decision = await interpreter.handle("new question please", controls)
        assert controls.calls == [("request_question",)]
        assert decision.acknowledgment == "Generating a question for Apple."

    @pytest.mark.asyncio
    async def test_forget_clears_consumed_prefix(self, interpreter):
        controls = FakeControls()
        await interpreter.handle("start timer", controls)
        assert interpreter.consumed == "start timer"
        interpreter.forget()
        await interpreter.handle("start timer", controls)
        assert len(controls.calls) == 2

    @pytest.mark.asyncio
    async def test_cut_off_word_after_command_stays_open(self, interpreter):
        controls = FakeControls()
        first = await interpreter.handle("start timer res", controls, final=False)
        assert first.command.kind == CommandKind.START_TIMER
        assert interpreter.consumed == "start timer"

        second = await interpreter.handle("start timer reset timer", controls, final=True)
        assert second.command.kind == CommandKind.RESET_TIMER
        assert controls.calls == [("start_timer",), ("reset_timer", None)]

        await interpreter.handle("start timer reset timer", controls, final=True)
        assert len(controls.calls) == 2

    @pytest.mark.asyncio
    async def test_company_consumed_up_to_name(self, interpreter):
        controls = FakeControls()
        await interpreter.handle("interview for Google and ne", controls, final=False)
        assert interpreter.consumed == "interview for Google"
        controls.state.company = "Google"

        decision = await interpreter.handle("interview for Google and new question", controls, final=True)
        assert decision.command.kind == CommandKind.GENERATE_QUESTION

    @pytest.mark.asyncio
    async def test_second_phrase_in_same_utterance_not_fired_on_resend(self, interpreter):
        controls = FakeControls()
        await interpreter.handle("stop timer and start timer", controls)
        await interpreter.handle("stop timer and start timer", controls)
        assert controls.calls == [("start_timer",)]
