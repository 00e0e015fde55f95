from __future__ import annotations

import random
from typing import Optional

from rehearsal import fallbacks
from rehearsal.errors import RemoteFailure, ValidationError
from rehearsal.llm import ChatClient, extract_json_block
from rehearsal.models import CallOutcome, GeneratedQuestion
from rehearsal.resilient import ResilientCaller

EVALUATOR_PROMPT = (
    "You are a strict but helpful interview evaluator.\n"
    "Evaluate the candidate's solution for correctness, complexity, edge cases, and code quality.\n"
    "If it's a design question, evaluate architecture, tradeoffs, and scalability.\n"
    "Give actionable feedback and a brief summary score (0-10) at the end."
)

FEEDBACK_PROMPT = (
    "You are an experienced technical interviewer providing end-of-interview feedback.\n"
    "Review the candidate's entire interview performance and provide comprehensive feedback on:\n\n"
    "1. **Overall Performance** - Summary of how they did (0-10 score)\n"
    "2. **Problem Solving Approach** - How they approached the problem\n"
    "3. **Code Quality** - Quality of their implementation\n"
    "4. **Communication** - How well they explained their thinking\n"
    "5. **Technical Skills** - Depth of technical knowledge demonstrated\n"
    "6. **Time Management** - How they used their time\n"
    "7. **Strengths** - What they did well\n"
    "8. **Areas for Improvement** - Specific areas to work on\n"
    "9. **Interview Skills** - Tips for better interview performance\n"
    "10. **Next Steps** - Actionable recommendations for improvement\n\n"
    "Be constructive, encouraging, and specific. Provide actionable advice.\n"
    "Format your response with clear sections using markdown."
)

RESUME_PROMPT = (
    "You are an expert resume reviewer and career coach with experience in tech recruiting.\n"
    "Review the provided resume and give constructive feedback on:\n\n"
    "1. **Content Quality** - Are achievements quantified? Are action verbs used effectively?\n"
    "2. **Structure & Format** - Is it well-organized and easy to scan?\n"
    "3. **Technical Skills** - Are relevant skills highlighted appropriately?\n"
    "4. **Impact & Results** - Does it show measurable impact?\n"
    "5. **ATS Compatibility** - Will it pass applicant tracking systems?\n"
    "6. **Areas for Improvement** - What specific changes would make this stronger?\n\n"
    "Provide actionable suggestions and a summary score (0-10) at the end.\n"
    "Be constructive but honest. Format your response with clear sections."
)


def _question_prompt(company: str) -> str:
    return (
        "You are an AI interviewing assistant.\n"
        f"Generate a single interview question for {company}.\n"
        "Randomly choose either:\n"
        "(1) a LeetCode-style algorithms/data structures problem, or\n"
        "(2) a systems/design question (high-level design).\n"
        "Keep it concise: a title and 2-6 lines of details. Do not include the answer.\n"
        'Respond with JSON only: {"question":"string","starterCode":"string"}. '
        "starterCode is a Python function or class skeleton, or an empty string for design questions."
    )


def parse_question_response(text: str) -> Optional[GeneratedQuestion]:
    data = extract_json_block(text)
    question = None
    starter = ""
    if data:
        question = data.get("question") or data.get("prompt") or data.get("text")
        starter = data.get("starterCode") or data.get("starter_code") or ""
    if isinstance(question, list):
        question = "\n".join(str(part) for part in question)
    if not isinstance(question, str) or not question.strip():
        # Model ignored the JSON instruction; take the reply verbatim.
        question = None if data else (text or "").strip()
    if not question:
        return None
    return GeneratedQuestion(question=question.strip(), starter_code=str(starter).strip("\n"))


def _require(value: Optional[str], message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)
    return value


class InterviewServices:
    """The four generative collaborators, each a remote/fallback pair."""

    def __init__(
        self,
        client: Optional[ChatClient] = None,
        caller: Optional[ResilientCaller] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.client = client or ChatClient()
        self.caller = caller or ResilientCaller(lambda: self.client.configured)
        self.rng = rng or random.Random()

    async def generate_question(self, company: Optional[str]) -> CallOutcome[GeneratedQuestion]:
        company = _require(company, "company required").strip()

        async def remote(name: str) -> GeneratedQuestion:
            content = await self.client.complete(
                _question_prompt(name),
                "Generate one question now.",
                op="generate_question",
                max_tokens=600,
                temperature=0.9,
            )
            parsed = parse_question_response(content)
            if parsed is None:
                raise RemoteFailure("generate_question reply had no question")
            return parsed

        return await self.caller.invoke(
            "generate_question", company, remote, lambda _: fallbacks.fallback_question(self.rng)
        )

    async def evaluate(self, question: Optional[str], code: Optional[str]) -> CallOutcome[str]:
        question = _require(question, "question and code required")
        code = _require(code, "question and code required")

        async def remote(payload):
            q, c = payload
            return await self.client.complete(
                EVALUATOR_PROMPT,
                f"Question:\n{q}\n\nCandidate code/answer:\n{c}",
                op="evaluate",
                max_tokens=1200,
                temperature=0.3,
            )

        return await self.caller.invoke(
            "evaluate", (question, code), remote, lambda payload: fallbacks.fallback_evaluation(*payload)
        )

    async def summarize_interview(
        self,
        company: Optional[str],
        question: Optional[str],
        code: Optional[str],
        evaluation: Optional[str],
        time_spent_seconds: int,
    ) -> CallOutcome[str]:
        question = _require(question, "question and code required for feedback")
        code = _require(code, "question and code required for feedback")
        company = (company or "").strip() or None
        evaluation = (evaluation or "").strip() or None
        time_spent_seconds = max(0, int(time_spent_seconds or 0))

        async def remote(_):
            minutes, seconds = divmod(time_spent_seconds, 60)
            user_prompt = (
                "Please provide comprehensive end-of-interview feedback for this coding interview:\n\n"
                f"**Company Target:** {company or 'Not specified'}\n"
                f"**Time Spent:** {minutes} minutes and {seconds} seconds\n\n"
                f"**Interview Question:**\n{question}\n\n"
                f"**Candidate's Code:**\n{code}\n\n"
                + (f"**Previous Evaluation:**\n{evaluation}\n\n" if evaluation else "")
                + "Please provide detailed feedback on their overall interview performance, "
                "highlighting both strengths and areas for improvement."
            )
            return await self.client.complete(
                FEEDBACK_PROMPT, user_prompt, op="interview_feedback", max_tokens=2000, temperature=0.6
            )

        return await self.caller.invoke(
            "interview_feedback",
            None,
            remote,
            lambda _: fallbacks.fallback_feedback(company, question, code, evaluation, time_spent_seconds),
        )

    async def review_resume(self, resume_text: Optional[str]) -> CallOutcome[str]:
        resume_text = _require(resume_text, "resumeText required")

        async def remote(text: str) -> str:
            return await self.client.complete(
                RESUME_PROMPT,
                f"Please review this resume:\n\n{text}",
                op="review_resume",
                max_tokens=1500,
                temperature=0.5,
            )

        return await self.caller.invoke(
            "review_resume", resume_text, remote, lambda text: fallbacks.fallback_resume_review(text, self.rng)
        )
