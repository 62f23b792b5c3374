"""HTTP transport to the Ollama inference host."""

from __future__ import annotations

from collections.abc import Iterator

import requests
from loguru import logger

from ai_coder.core.types import PromptRequest
from ai_coder.errors import ApiError, HostConnectionError, ModelNotFoundError

GENERATE_PATH = "/api/generate"
TAGS_PATH = "/api/tags"
DEFAULT_TIMEOUT_SECONDS = 300.0
CONNECT_TIMEOUT_SECONDS = 10.0


class OllamaClient:
    """Sends prompts to one Ollama host and hands back raw response fragments."""

    def __init__(
        self,
        host: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.host = host.rstrip("/")
        self._timeout = (min(CONNECT_TIMEOUT_SECONDS, timeout_seconds), timeout_seconds)
        self._session = session or requests.Session()

    def send(self, request: PromptRequest) -> Iterator[bytes]:
        """Start one streaming generate call.

        The request is issued eagerly so that connection and status failures
        surface here; the body is read lazily by iterating the result.

        Raises:
            InvalidRequestError: If the model or prompt is empty.
            HostConnectionError: If the host cannot be reached.
            ApiError: If the host answers with a non-success status.
        """
        request.validate()
        url = f"{self.host}{GENERATE_PATH}"
        logger.debug("transport.send url={} model={}", url, request.model)
        try:
            response = self._session.post(
                url,
                json=request.to_payload(),
                stream=True,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise HostConnectionError(self.host, _describe(exc)) from exc

        if not response.ok:
            body = _error_body(response)
            response.close()
            raise ApiError(response.status_code, body)
        return self._iter_fragments(response)

    def list_models(self) -> list[str]:
        """Return the names of the models installed on the host."""
        url = f"{self.host}{TAGS_PATH}"
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise HostConnectionError(self.host, _describe(exc)) from exc
        if not response.ok:
            raise ApiError(response.status_code, _error_body(response))
        try:
            payload = response.json()
        except ValueError as exc:
            raise ApiError(response.status_code, response.text) from exc
        if not isinstance(payload, dict):
            raise ApiError(response.status_code, response.text)
        models = payload.get("models") or []
        if not isinstance(models, list):
            raise ApiError(response.status_code, response.text)
        return [str(item.get("name", "")) for item in models if isinstance(item, dict) and item.get("name")]

    def has_model(self, name: str) -> bool:
        """Whether ``name`` is installed; an untagged name also matches ``name:latest``."""
        installed = set(self.list_models())
        return name in installed or (":" not in name and f"{name}:latest" in installed)

    def require_model(self, name: str) -> None:
        if not self.has_model(name):
            raise ModelNotFoundError(name, self.host)

    def _iter_fragments(self, response: requests.Response) -> Iterator[bytes]:
        with response:
            try:
                for chunk in response.iter_content(chunk_size=None):
                    if chunk:
                        yield chunk
            except requests.RequestException as exc:
                raise HostConnectionError(self.host, _describe(exc)) from exc
        logger.debug("transport.closed host={}", self.host)


def _error_body(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"]
    return response.text


def _describe(exc: requests.RequestException) -> str:
    if isinstance(exc, requests.Timeout):
        return "timed out"
    if isinstance(exc, requests.ConnectionError):
        return "connection refused or host unreachable"
    return str(exc) or type(exc).__name__
