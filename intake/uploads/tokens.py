from abc import ABC, abstractmethod
from typing import Any

import httpx
from azure.core.exceptions import AzureError
from azure.identity import ClientSecretCredential

from intake.logging.logger import Log
from intake.uploads.exceptions import TokenError


class BaseTokenProvider(ABC):
    """Contract for bearer-credential sources, one per backend flavour."""

    @abstractmethod
    def get_token(self) -> str:
        """Return a bearer token valid for the next request.

        Raises:
            TokenError: if the token cannot be acquired.
        """

    def close(self) -> None:
        """Release any client the provider holds."""


class StaticTokenProvider(BaseTokenProvider):
    """A token the caller already holds, e.g. from a delegated sign-in."""

    def __init__(self, token: str, backend: str) -> None:
        self._token = token
        self._backend = backend

    def get_token(self) -> str:
        if not self._token:
            raise TokenError(self._backend, "No access token configured")
        return self._token


class ProxyTokenProvider(BaseTokenProvider):
    """Fetches a token from a local proxy that holds the real credentials."""

    def __init__(self, url: str, backend: str, client: httpx.Client | None = None) -> None:
        self._url = url
        self._backend = backend
        self._client = client or httpx.Client(timeout=30.0)

    def get_token(self) -> str:
        Log.debug(f"[{self._backend}] Requesting access token from proxy {self._url}")
        try:
            response = self._client.get(self._url)
        except httpx.HTTPError as exc:
            raise TokenError(self._backend, f"Token proxy unreachable: {exc}") from exc
        if not response.is_success:
            raise TokenError(
                self._backend,
                f"Token request failed: {response.text}",
                http_status=response.status_code,
            )
        token = _read_access_token(response, self._backend)
        Log.info(f"[{self._backend}] Access token obtained via proxy")
        return token

    def close(self) -> None:
        self._client.close()


class ClientCredentialsTokenProvider(BaseTokenProvider):
    """Azure AD client-credentials grant for Microsoft Graph.

    ``ClientSecretCredential`` caches the token and refreshes it before it
    expires, so every call can ask for a token.
    """

    SCOPE = "https://graph.microsoft.com/.default"

    def __init__(
        self,
        *,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        backend: str = "onedrive",
        credential: Any | None = None,
    ) -> None:
        self._backend = backend
        self._credential = credential or ClientSecretCredential(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
        )

    def get_token(self) -> str:
        try:
            access_token = self._credential.get_token(self.SCOPE)
        except AzureError as exc:
            raise TokenError(
                self._backend,
                f"Client-credentials token request failed: {exc}",
                http_status=getattr(exc, "status_code", None),
            ) from exc
        Log.debug(f"[{self._backend}] Access token acquired via client credentials")
        return access_token.token

    def close(self) -> None:
        self._credential.close()


def _read_access_token(response: httpx.Response, backend: str) -> str:
    try:
        body = response.json()
    except ValueError as exc:
        raise TokenError(backend, "Token response is not JSON") from exc
    token = body.get("access_token") if isinstance(body, dict) else None
    if not token or not isinstance(token, str):
        raise TokenError(backend, "Token response has no access_token")
    return token
