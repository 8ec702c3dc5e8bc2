"""Shared HTTP plumbing for hosted completion providers.

Each provider adapter builds its own request body and parses its own reply;
this base class owns the session, timeouts, transient-failure retries and
the mapping of transport problems onto ExternalModelError.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from calassist.errors import ExternalModelError, model_malformed_output, model_timeout
from calassist.retry import call_with_retry
from contracts.llm import ChatMessage, CompletionConfig, Provider
from models.registry import resolve_model_id

logger = logging.getLogger(__name__)

USER_AGENT = "CalendarAssistant/1.0"

# Connection setup gets a short fuse; the read timeout comes from the config
CONNECT_TIMEOUT = 5.0


class HostedModelBackend:
    """Base class for provider adapters.

    Subclasses set ``provider`` and ``default_history_limit`` and implement
    ``_endpoint``, ``_headers``, ``_payload`` and ``_parse``.
    """

    provider: Provider
    default_history_limit: int = 10

    def __init__(
        self,
        api_key: str,
        *,
        session: requests.Session | None = None,
        history_limit: int | None = None,
        max_retries: int = 2,
        base_delay: float = 0.5,
    ) -> None:
        """Initialize the backend.

        Args:
            api_key: Provider API key, sent as a bearer token.
            session: Optional requests session to use.
            history_limit: Most recent transcript turns sent with each request.
            max_retries: Extra attempts after a connection failure.
            base_delay: First backoff delay in seconds.
        """
        if not api_key:
            msg = f"{type(self).__name__} requires an API key"
            raise ValueError(msg)
        self._api_key = api_key
        self._session = session or self._create_session()
        self.history_limit = (
            self.default_history_limit if history_limit is None else max(0, history_limit)
        )
        self.max_retries = max_retries
        self.base_delay = base_delay

    def _create_session(self) -> requests.Session:
        """Create configured requests session."""
        session = requests.Session()

        # Retries are handled by call_with_retry
        adapter = HTTPAdapter(max_retries=Retry(total=0))
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update(
            {
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
            }
        )
        return session

    def _recent(self, history: tuple[ChatMessage, ...]) -> tuple[ChatMessage, ...]:
        if self.history_limit == 0:
            return ()
        return history[-self.history_limit :]

    def complete(
        self,
        prompt: str,
        config: CompletionConfig,
        history: tuple[ChatMessage, ...] = (),
    ) -> str:
        """Send one completion request and return the reply text.

        Args:
            prompt: The user-turn prompt text.
            config: Provider/model/sampling settings.
            history: Earlier transcript turns, oldest first.

        Returns:
            The stripped reply text.

        Raises:
            ExternalModelError: On non-2xx responses, transport failures,
                timeouts, API error payloads or unparseable replies.
        """
        model_id = resolve_model_id(config)
        url = self._endpoint(model_id)
        payload = self._payload(prompt, config, self._recent(history), model_id)
        headers = self._headers()
        timeout = (min(CONNECT_TIMEOUT, config.timeout_seconds), config.timeout_seconds)

        def post() -> requests.Response:
            return self._session.post(url, json=payload, headers=headers, timeout=timeout)

        post.__name__ = f"{self.provider.value}.complete"
        started = time.perf_counter()
        try:
            response = call_with_retry(
                post,
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                retry_on=(requests.ConnectionError,),
            )
        except requests.Timeout as e:
            raise model_timeout(self.provider.value, config.timeout_seconds, e) from e
        except requests.RequestException as e:
            raise ExternalModelError(
                f"{self.provider.value} request failed: {e}",
                provider=self.provider.value,
                model_name=model_id,
                cause=e,
            ) from e

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            "%s %s -> HTTP %d in %.0fms",
            self.provider.value,
            model_id,
            response.status_code,
            elapsed_ms,
        )

        if not 200 <= response.status_code < 300:
            raise ExternalModelError(
                f"{self.provider.value} returned HTTP {response.status_code}",
                status_code=response.status_code,
                provider=self.provider.value,
                model_name=model_id,
                details={"body": response.text[:500]},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise model_malformed_output(self.provider.value, "body is not JSON") from e

        return self._parse(data)

    def _endpoint(self, model_id: str) -> str:
        raise NotImplementedError

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    def _payload(
        self,
        prompt: str,
        config: CompletionConfig,
        history: tuple[ChatMessage, ...],
        model_id: str,
    ) -> dict[str, Any]:
        raise NotImplementedError

    def _parse(self, data: Any) -> str:
        raise NotImplementedError
