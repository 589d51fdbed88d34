"""Answer follow-up questions about an issued recommendation."""

from __future__ import annotations

from textwrap import dedent

from app.clients import GeminiClient
from app.schemas import FollowUpRequest, FollowUpResponse


class FollowUpService:
    """Ground follow-up answers in the initial recommendation and chat so far."""

    def __init__(self, gemini_client: GeminiClient) -> None:
        self._gemini = gemini_client

    async def answer(self, request: FollowUpRequest) -> FollowUpResponse:
        response = await self._gemini.generate_text(self._build_prompt(request))
        return FollowUpResponse(answer=response.strip())

    @staticmethod
    def _build_prompt(request: FollowUpRequest) -> str:
        sections = [
            dedent(
                """
                You are an AI assistant providing financial advice. A user has asked a
                follow-up question about an initial stock recommendation. Use the initial
                recommendation and any available information to provide a helpful and
                informative answer.
                """
            ).strip(),
            f"Initial Recommendation: {request.initial_recommendation}",
            f"User Follow-up Question: {request.question}",
        ]
        if request.chat_history:
            history = "\n".join(
                f"{message.role}: {message.content}" for message in request.chat_history
            )
            sections.append(f"Chat History:\n{history}")
        for index, ticker in enumerate(request.tickers, start=1):
            sections.append(f"Ticker {index}: {ticker}")
        sections.append("Answer:")
        return "\n\n".join(sections)


__all__ = ["FollowUpService"]
