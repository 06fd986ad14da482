"""HTTP client for the TrendSeer chat API.

Talks to the streaming endpoint first and falls back, for the rest of the
session, to the non-streaming endpoint as soon as the stream cannot be
parsed.
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx


logger = logging.getLogger(__name__)

STREAM_MODE = "stream"
SIMPLE_MODE = "simple"
DEFAULT_USER_ID_PATH = Path.home() / ".trendseer" / "user_id"


class ChatClientError(RuntimeError):
    """The server rejected the request or failed to answer it."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StreamProtocolError(ValueError):
    """The streaming response did not follow the expected event format."""


def load_or_create_user_id(path: Path = DEFAULT_USER_ID_PATH) -> str:
    try:
        if path.exists():
            stored = path.read_text(encoding="utf-8").strip()
            if stored:
                logger.debug("Using existing user ID: %s", stored)
                return stored
        new_id = str(uuid.uuid4())
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(new_id, encoding="utf-8")
        logger.debug("Created new user ID: %s", new_id)
        return new_id
    except OSError as exc:
        fallback = str(uuid.uuid4())
        logger.warning("Could not persist user ID (%s); using %s for this session", exc, fallback)
        return fallback


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"Error: {response.status_code}"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"Error: {response.status_code}"


def parse_event_stream(lines, on_token: Optional[Callable[[str], None]] = None) -> str:
    """Assemble the reply from ``data:`` events; raise on anything unexpected."""
    parts: List[str] = []
    finished = False
    for line in lines:
        if not line.strip():
            continue
        if not line.startswith("data:"):
            raise StreamProtocolError(f"Unexpected stream line: {line[:80]!r}")
        try:
            event = json.loads(line[len("data:"):].strip())
        except json.JSONDecodeError as exc:
            raise StreamProtocolError(f"Invalid stream event: {exc}") from exc
        if not isinstance(event, dict):
            raise StreamProtocolError("Stream event is not an object")
        if event.get("error"):
            raise ChatClientError(str(event["error"]))
        if event.get("done"):
            finished = True
            break
        token = event.get("token")
        if not isinstance(token, str):
            raise StreamProtocolError("Stream event carries no token")
        parts.append(token)
        if on_token:
            on_token(token)
    if not finished:
        raise StreamProtocolError("Stream ended before completion")
    return "".join(parts)


class TrendChatClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        user_id: Optional[str] = None,
        access_token: Optional[str] = None,
        mode: str = STREAM_MODE,
        timeout: float = 300.0,
        transport: Optional[httpx.BaseTransport] = None,
        user_id_path: Path = DEFAULT_USER_ID_PATH,
    ) -> None:
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        self.http = httpx.Client(
            base_url=base_url, headers=headers, timeout=timeout, transport=transport
        )
        # With a session the server takes the user id from the token.
        if user_id or access_token:
            self.user_id = user_id
        else:
            self.user_id = load_or_create_user_id(user_id_path)
        self.mode = mode
        self.messages: List[Dict[str, str]] = []
        self.error: Optional[Exception] = None

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "TrendChatClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "messages": [{"role": m["role"], "content": m["content"]} for m in self.messages],
        }
        if self.user_id:
            payload["userId"] = self.user_id
        return payload

    def _stream_turn(self, on_token: Optional[Callable[[str], None]]) -> str:
        with self.http.stream("POST", "/api/chat", json=self._payload()) as response:
            if response.is_error:
                response.read()
                raise ChatClientError(_error_message(response), response.status_code)
            return parse_event_stream(response.iter_lines(), on_token)

    def _simple_turn(self) -> str:
        response = self.http.post("/api/chat/simple", json=self._payload())
        if response.is_error:
            raise ChatClientError(_error_message(response), response.status_code)
        try:
            return response.json()["content"]
        except (ValueError, KeyError, TypeError) as exc:
            raise ChatClientError(f"Malformed response: {exc}", response.status_code) from exc

    def send(
        self, text: str, on_token: Optional[Callable[[str], None]] = None
    ) -> Optional[Dict[str, str]]:
        if not text or not text.strip():
            return None

        self.messages.append({"id": str(uuid.uuid4()), "role": "user", "content": text})
        self.error = None
        try:
            if self.mode == STREAM_MODE:
                try:
                    reply = self._stream_turn(on_token)
                except StreamProtocolError as exc:
                    logger.warning("Streaming failed (%s); switching to simple mode", exc)
                    self.mode = SIMPLE_MODE
                    reply = self._simple_turn()
            else:
                reply = self._simple_turn()
        except httpx.HTTPError as exc:
            self.messages.pop()
            self.error = ChatClientError(f"Failed to communicate with TrendSeer AI: {exc}")
            raise self.error from exc
        except ChatClientError as exc:
            self.messages.pop()
            self.error = exc
            raise

        message = {"id": str(uuid.uuid4()), "role": "assistant", "content": reply}
        self.messages.append(message)
        return message

    def clear(self) -> None:
        """Drop the local conversation; server-side memory is untouched."""
        self.messages = []

    def stop(self) -> None:
        if self.mode == SIMPLE_MODE:
            logger.debug("Stop requested, but not applicable in simple chat")

    def _get(self, path: str, **params: Any) -> Dict[str, Any]:
        response = self.http.get(path, params={k: v for k, v in params.items() if v is not None})
        if response.is_error:
            raise ChatClientError(_error_message(response), response.status_code)
        return response.json()

    def history(self, limit: Optional[int] = 20) -> List[Dict[str, Any]]:
        return self._get("/api/chat/history", userId=self.user_id, limit=limit).get("chatHistory", [])

    def profile(self) -> Dict[str, Any]:
        return self._get("/api/user/profile", userId=self.user_id)
