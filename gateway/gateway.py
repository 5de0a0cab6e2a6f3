from __future__ import annotations  # HTTP gateway to the session backend and speech services

import base64
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ValidationError

from api.schemas import SessionView
from config.settings import settings
from sequencer.models import SequenceResult

logger = logging.getLogger(__name__)  # Module logger setup


class GatewayError(RuntimeError):  # Base gateway error
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnknownSessionError(GatewayError):  # Session id missing or not found upstream
    pass


class FeedbackResult(BaseModel):  # Outcome of final feedback generation
    ok: bool
    final_text: Optional[str] = None
    audio_reference: Optional[str] = None
    error: Optional[str] = None


class EngineGateway:
    """Async client for every backend call the session engine makes.

    Transport failures, non-2xx statuses and malformed JSON all surface as
    :class:`GatewayError`; 400 and 404 answers become :class:`UnknownSessionError`.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: Optional[float] = None,
    ) -> None:
        self.base_url = (base_url or settings.ENGINE_BASE_URL).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_S if timeout_s is None else timeout_s
        )

    async def __aenter__(self) -> "EngineGateway":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_session(self, session_id: str) -> SessionView:
        data = await self._request("GET", f"/api/sessions/{session_id}")
        return self._parse(SessionView, data, "session")

    async def orchestrate(self, session_id: str) -> SequenceResult:
        data = await self._request("POST", "/api/engine/orchestrate", {"session_id": session_id})
        return self._parse(SequenceResult, data, "orchestrate")

    async def start_session(self, session_id: str) -> None:
        await self._request("POST", "/api/session/start", {"session_id": session_id})

    async def end_session(self, session_id: str) -> None:
        await self._request("POST", "/api/session/end", {"session_id": session_id})

    async def write_answer(self, payload: Dict[str, Any]) -> bool:
        """Persist one answer; returns False when the row already existed."""

        data = await self._request("POST", "/api/memory", payload)
        return bool(data.get("created", True)) if isinstance(data, dict) else True

    async def generate_feedback(self, session_id: str) -> FeedbackResult:
        data = await self._request("POST", "/api/session/feedback", {"session_id": session_id})
        if not isinstance(data, dict):
            raise GatewayError("Feedback payload was not an object")
        if "audio_reference" not in data and data.get("audio_base64"):
            data = {**data, "audio_reference": data["audio_base64"]}
        return self._parse(FeedbackResult, data, "feedback")

    async def synthesize(self, text: str, lang: str) -> bytes:  # Text-to-speech, returns audio bytes
        response = await self._send("POST", "/api/speech", {"text": text, "lang": lang})
        content_type = response.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            data = self._json(response)
            audio = data.get("audio_base64") if isinstance(data, dict) else None
            if not audio:
                raise GatewayError("Speech payload missing audio")
            return base64.b64decode(audio)
        return response.content

    async def contextual_followup(self, question: str, lang: str) -> Optional[str]:
        data = await self._request("POST", "/api/followup", {"question": question, "lang": lang})
        text = data.get("text") if isinstance(data, dict) else None
        return text.strip() if isinstance(text, str) and text.strip() else None

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._send(method, path, payload)
        return self._json(response)

    async def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        logger.debug("Gateway request %s %s", method, path)
        try:
            response = await self._client.request(method, url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Gateway transport failure %s %s: %s", method, path, exc)
            raise GatewayError(f"Transport failed for {path}") from exc
        if response.status_code in (400, 404):
            raise UnknownSessionError(
                f"{path} rejected the session ({response.status_code})",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            logger.error("Gateway error status %s for %s", response.status_code, path)
            raise GatewayError(f"{path} returned status {response.status_code}", status_code=response.status_code)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError("Gateway payload was not JSON") from exc

    @staticmethod
    def _parse(schema: type, data: Any, label: str) -> Any:
        try:
            return schema.model_validate(data)
        except ValidationError as exc:
            raise GatewayError(f"Invalid {label} payload") from exc


__all__ = ["EngineGateway", "FeedbackResult", "GatewayError", "UnknownSessionError"]
