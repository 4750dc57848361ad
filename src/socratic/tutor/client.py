"""HTTP client for the multi-agent tutor endpoint."""

from __future__ import annotations

from collections.abc import Sequence

import httpx
import structlog
from pydantic import ValidationError

from socratic.exceptions import TutorUnavailableError
from socratic.tutor.schemas import Message, TutorRequest, TutorResponse, TutorState

logger = structlog.get_logger()


class TutorClient:
    """Sends the conversation to the tutor endpoint and validates its reply."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        default_model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.default_model = default_model
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.AsyncClient(headers=headers, timeout=timeout, transport=transport)

    async def send(
        self,
        messages: Sequence[Message],
        topic: str,
        state: TutorState,
        model: str | None = None,
    ) -> TutorResponse:
        """POST the conversation; raise TutorUnavailableError on any failure."""
        payload = TutorRequest(
            messages=[{"role": m.role, "content": m.content} for m in messages],
            topic=topic,
            state=state,
            model=model or self.default_model,
        )
        try:
            response = await self._client.post(self.url, json=payload.model_dump(mode="json"))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "tutor_request_failed",
                status=exc.response.status_code,
                body=exc.response.text[:500],
            )
            msg = f"Tutor returned HTTP {exc.response.status_code}"
            raise TutorUnavailableError(msg) from exc
        except httpx.HTTPError as exc:
            logger.warning("tutor_request_failed", error=str(exc))
            msg = f"Failed to communicate with the tutor: {exc}"
            raise TutorUnavailableError(msg) from exc

        try:
            reply = TutorResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("tutor_reply_malformed", error=str(exc))
            msg = "Tutor returned a malformed reply"
            raise TutorUnavailableError(msg) from exc

        logger.info("tutor_reply", agent=reply.active_agent, topic=topic)
        return reply

    async def close(self) -> None:
        await self._client.aclose()
