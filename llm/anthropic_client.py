"""Anthropic Messages API client."""

import logging
import os
import random
import time

import requests

from llm.errors import DecodeError, EmptyResponseError, RemoteError, TransportError

log = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicClient:
    """Blocking HTTP client for Anthropic's messages endpoint."""

    def __init__(self, llm_config: dict):
        self._model = llm_config["model"]
        self._api_base = llm_config.get("api_base", "https://api.anthropic.com/v1").rstrip("/")
        self._temperature = llm_config.get("temperature")
        try:
            timeout = float(llm_config.get("timeout_s", 60))
        except (TypeError, ValueError):
            timeout = 60.0
        self._timeout = max(1.0, timeout)
        try:
            max_retries = int(llm_config.get("max_retries", 0))
        except (TypeError, ValueError):
            max_retries = 0
        self._max_retries = max(0, max_retries)
        try:
            retry_base_delay_s = float(llm_config.get("retry_base_delay_s", 0.5))
        except (TypeError, ValueError):
            retry_base_delay_s = 0.5
        self._retry_base_delay_s = max(0.05, retry_base_delay_s)

        self._api_key = os.environ.get("ANTHROPIC_API_KEY", "")
        if not self._api_key:
            print("\033[31mWARNING: ANTHROPIC_API_KEY not set\033[0m")

    @property
    def model(self) -> str:
        return self._model

    def _headers(self) -> dict:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    def complete(self, system: str, messages: list[dict], max_tokens: int) -> dict:
        """Send one non-streaming completion request.

        Returns dict with keys: text, input_tokens, output_tokens, model, elapsed_s

        Raises TransportError, RemoteError, DecodeError or EmptyResponseError.
        """
        payload = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system:
            payload["system"] = system
        if self._temperature is not None:
            payload["temperature"] = self._temperature

        t0 = time.monotonic()
        attempts = self._max_retries + 1

        for attempt in range(attempts):
            resp = None
            try:
                resp = requests.post(
                    f"{self._api_base}/messages",
                    headers=self._headers(),
                    json=payload,
                    timeout=self._timeout,
                )
                if resp.status_code != 200:
                    if self._should_retry_status(resp.status_code) and attempt < attempts - 1:
                        log.warning("API returned %d, retrying (attempt %d/%d)",
                                    resp.status_code, attempt + 1, attempts)
                        self._sleep_before_retry(attempt)
                        continue
                    raise RemoteError(resp.status_code, resp.text)

                result = self._parse(resp)
                result["elapsed_s"] = time.monotonic() - t0
                return result

            except requests.RequestException as exc:
                if attempt >= attempts - 1:
                    raise TransportError(f"request failed: {exc}") from exc
                log.warning("Request failed (%s), retrying (attempt %d/%d)",
                            exc, attempt + 1, attempts)
                self._sleep_before_retry(attempt)
            finally:
                if resp is not None:
                    resp.close()

        raise TransportError("completion request failed without a response")

    def _parse(self, resp) -> dict:
        try:
            data = resp.json()
        except ValueError as exc:
            raise DecodeError(f"response is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise DecodeError("response body is not a JSON object")

        content = data.get("content")
        usage = data.get("usage") or {}
        if not isinstance(content, list) or not isinstance(usage, dict):
            raise DecodeError("response is missing content or usage")

        texts: list[str] = []
        for block in content:
            if not isinstance(block, dict) or block.get("type", "text") != "text":
                continue
            text = block.get("text")
            if not isinstance(text, str):
                raise DecodeError("text block is not a string")
            texts.append(text)
        if not texts:
            raise EmptyResponseError("response contained no text content")

        try:
            input_tokens = int(usage.get("input_tokens", 0))
            output_tokens = int(usage.get("output_tokens", 0))
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"malformed usage block: {exc}") from exc

        return {
            "text": "".join(texts),
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "model": data.get("model", self._model),
        }

    def _should_retry_status(self, status_code: int) -> bool:
        return status_code == 429 or status_code >= 500

    def _sleep_before_retry(self, attempt: int) -> None:
        base = self._retry_base_delay_s * (2 ** attempt)
        jitter = random.uniform(0.0, base * 0.25)
        time.sleep(base + jitter)
