"""Client HTTP du service de génération de texte (proxy chat/completions, réponse {success, data})."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "episodegen/0.3"
DEFAULT_MAX_TOKENS = 800
_RETRYABLE_STATUS_CODES = {
    408,
    425,
    429,
    500,
    502,
    503,
    504,
}

_INSUFFICIENT_BALANCE_MARKERS = ("30001", "account balance is insufficient", "insufficient_balance", "余额不足", "余额已用完")
_QUOTA_EXCEEDED_MARKERS = ("exceeded today's quota", "quota exceeded", "daily quota", "配额已用完", "今日配额已用尽")


class GenerationClientError(Exception):
    """Erreur d'appel au service de génération (auth, quota, réseau, réponse invalide)."""

    code: str | None = None

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InsufficientBalanceError(GenerationClientError):
    code = "INSUFFICIENT_BALANCE"


class QuotaExceededError(GenerationClientError):
    code = "QUOTA_EXCEEDED"


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class GenerationRequest:
    model: str
    messages: list[ChatMessage] = field(default_factory=list)
    temperature: float = 0.7
    max_tokens: int = DEFAULT_MAX_TOKENS

    @classmethod
    def from_prompts(
        cls,
        model: str,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> GenerationRequest:
        return cls(
            model=model,
            messages=[ChatMessage("system", system_prompt), ChatMessage("user", user_prompt)],
            temperature=temperature,
            max_tokens=max_tokens,
        )


class TextGenerator(Protocol):
    """Contrat minimal attendu par l'orchestrateur et le moteur d'amélioration."""

    def complete(self, request: GenerationRequest) -> str:
        """Retourne le texte généré ; lève GenerationClientError en cas d'échec."""
        ...


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(marker.lower() in lowered for marker in markers)


def _error_detail(body: str) -> str:
    """Message d'erreur lisible extrait d'un corps de réponse d'erreur."""
    try:
        data = json.loads(body)
    except ValueError:
        return body[:100]
    if not isinstance(data, dict):
        return body[:100]
    detail = data.get("error") or ""
    details = data.get("details")
    if isinstance(details, str) and details:
        try:
            nested = json.loads(details)
            detail = (nested.get("errors") or {}).get("message") or detail
        except (ValueError, AttributeError):
            detail = details
    return str(detail)


class GenerationClient:
    """
    Client du proxy de génération.
    Requête : {model, messages, temperature, max_tokens, apiKey}.
    Réponse : {success: true, data: {content}} ou {success: false, error}.
    Par défaut aucune nouvelle tentative (retries=1) : la relance est à l'initiative de l'utilisateur.
    L'espacement entre requêtes relève du Pacer de l'appelant (pause interruptible).
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        *,
        user_agent: str = USER_AGENT,
        timeout_s: float = 60.0,
        retries: int = 1,
        backoff_s: float = 2.0,
    ):
        self.endpoint = endpoint.strip()
        self.api_key = (api_key or "").strip()
        self.user_agent = user_agent
        self.timeout_s = timeout_s
        self.retries = max(1, int(retries))
        self.backoff_s = max(0.0, float(backoff_s))

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _parse_retry_after_seconds(response: httpx.Response | None) -> float | None:
        if response is None:
            return None
        raw = (response.headers.get("Retry-After") or "").strip()
        if not raw:
            return None
        try:
            value = float(raw)
        except ValueError:
            return None
        if value < 0:
            return None
        return value

    def _post(self, body: dict[str, Any]) -> httpx.Response:
        last_exc: Exception | None = None
        with httpx.Client(timeout=self.timeout_s) as client:
            for attempt in range(self.retries):
                try:
                    response = client.request(
                        "POST",
                        self.endpoint,
                        json=body,
                        headers=self._headers(),
                    )
                    response.raise_for_status()
                    return response
                except httpx.HTTPStatusError as e:
                    last_exc = e
                    status_code = e.response.status_code if e.response is not None else None
                    if status_code not in _RETRYABLE_STATUS_CODES or attempt >= self.retries - 1:
                        raise
                    retry_after = self._parse_retry_after_seconds(e.response)
                    delay = (
                        retry_after
                        if retry_after is not None
                        else self.backoff_s * (2**attempt)
                    )
                    if delay > 0:
                        time.sleep(delay)
                except httpx.TransportError as e:
                    last_exc = e
                    if attempt >= self.retries - 1:
                        break
                    delay = self.backoff_s * (2**attempt)
                    if delay > 0:
                        time.sleep(delay)
        if last_exc is not None:
            raise last_exc
        raise RuntimeError("Generation request failed without explicit exception")

    @staticmethod
    def _status_error(exc: httpx.HTTPStatusError) -> GenerationClientError:
        status = exc.response.status_code
        body = exc.response.text or ""
        if body.lstrip().lower().startswith(("<!doctype", "<html")):
            return GenerationClientError(
                f"Generation API returned an HTML error page ({status}): check endpoint and API key",
                status_code=status,
            )
        if status == 401:
            return GenerationClientError("Generation API error: invalid API key", status_code=status)
        if status == 403:
            if _contains_any(body, _INSUFFICIENT_BALANCE_MARKERS):
                return InsufficientBalanceError("Generation API error: insufficient balance", status_code=status)
            return GenerationClientError("Generation API error: access denied, check API key", status_code=status)
        if status == 429:
            if _contains_any(body, _QUOTA_EXCEEDED_MARKERS):
                return QuotaExceededError("Generation API error: daily quota exceeded", status_code=status)
            return GenerationClientError("Generation API error: rate limited, retry later", status_code=status)
        if status >= 500:
            return GenerationClientError("Generation API error: server error, retry later", status_code=status)
        detail = _error_detail(body)
        return GenerationClientError(f"Generation API error ({status}): {detail}", status_code=status)

    def complete(self, request: GenerationRequest) -> str:
        """Envoie la requête et retourne le contenu généré (non vide)."""
        if not self.api_key:
            raise GenerationClientError("Generation API key is missing")
        body = {
            "model": request.model,
            "messages": [m.to_dict() for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "apiKey": self.api_key,
        }
        try:
            r = self._post(body)
        except httpx.HTTPStatusError as e:
            logger.error("Generation API HTTP %s: %s", e.response.status_code, (e.response.text or "")[:500])
            raise self._status_error(e) from e
        except (httpx.HTTPError, httpx.TimeoutException) as e:
            raise GenerationClientError(f"Generation API network error: {e!s}") from e

        try:
            data = r.json()
        except ValueError as e:
            raise GenerationClientError(f"Generation API returned non-JSON response: {r.text[:100]}") from e
        if not isinstance(data, dict) or not data.get("success"):
            message = (data.get("error") if isinstance(data, dict) else None) or "Generation API call failed"
            if _contains_any(str(message), _INSUFFICIENT_BALANCE_MARKERS):
                raise InsufficientBalanceError(str(message))
            raise GenerationClientError(str(message))
        content = ((data.get("data") or {}).get("content") or "").strip()
        if not content:
            raise GenerationClientError("Generation API returned empty content")
        return content
