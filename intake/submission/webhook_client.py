import time
from collections.abc import Callable

import httpx

from intake.config.settings import Settings
from intake.logging.logger import Log, mask_secret
from intake.submission.exceptions import ResponseError, TransportError
from intake.submission.models import SubmissionPayload


class WebhookClient:
    """POSTs a submission payload to the automation webhook.

    ``timeout_ms`` bounds the whole exchange, from connect to the last body
    byte, not each network operation separately.
    """

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        timeout_ms: int,
        client: httpx.Client | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._timeout = timeout_ms / 1000
        self._client = client or httpx.Client(timeout=self._timeout)
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebhookClient":
        return cls(
            url=settings.webhook_url,
            api_key=settings.webhook_api_key,
            timeout_ms=settings.webhook_timeout_ms,
        )

    def close(self) -> None:
        self._client.close()

    def post(self, payload: SubmissionPayload) -> httpx.Response:
        """Send the payload wrapped in a one-element array.

        A network-level failure gets exactly one retry carrying only the
        Content-Type header. A timeout is not retried.

        Raises:
            TransportError: on timeout, or when the retry also fails.
            ResponseError: on a non-2xx answer.
        """
        body = [payload.to_wire()]
        Log.info(
            f"POST {self._url} with {payload.total_files} document(s), "
            f"key {mask_secret(self._api_key)}"
        )
        try:
            response = self._send(body, self._auth_headers())
        except httpx.TimeoutException as exc:
            Log.error(f"Webhook request timed out: {exc}")
            raise TransportError(f"Webhook request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            Log.warning(f"Webhook request failed ({exc}); retrying once without auth headers")
            response = self._retry_without_headers(body)

        if not response.is_success:
            Log.error(f"Webhook answered HTTP {response.status_code}: {response.text}")
            raise ResponseError(response.status_code, response.reason_phrase, response.text)
        Log.info(f"Webhook answered HTTP {response.status_code}")
        return response

    def _send(self, body: list[dict[str, object]], headers: dict[str, str]) -> httpx.Response:
        deadline = self._clock() + self._timeout
        with self._client.stream("POST", self._url, json=body, headers=headers) as streamed:
            chunks: list[bytes] = []
            for chunk in streamed.iter_raw():
                self._check_deadline(deadline, streamed.request)
                chunks.append(chunk)
            self._check_deadline(deadline, streamed.request)
        return httpx.Response(
            streamed.status_code,
            headers=streamed.headers,
            content=b"".join(chunks),
            request=streamed.request,
        )

    def _check_deadline(self, deadline: float, request: httpx.Request) -> None:
        if self._clock() > deadline:
            raise httpx.ReadTimeout(
                f"no complete response within {self._timeout:g}s", request=request
            )

    def _retry_without_headers(self, body: list[dict[str, object]]) -> httpx.Response:
        try:
            return self._send(body, {"Content-Type": "application/json"})
        except httpx.TransportError as exc:
            Log.error(f"Webhook retry failed: {exc}")
            raise TransportError(f"Webhook unreachable after retry: {exc}") from exc

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
            "x-api-key": self._api_key,
            "x-make-apikey": self._api_key,
        }
