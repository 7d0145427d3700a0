from unittest.mock import MagicMock, patch

import httpx
import pytest
from azure.core.credentials import AccessToken
from azure.core.exceptions import ClientAuthenticationError

from intake.uploads.exceptions import TokenError
from intake.uploads.tokens import (
    ClientCredentialsTokenProvider,
    ProxyTokenProvider,
    StaticTokenProvider,
)


def _client(transport: httpx.MockTransport) -> httpx.Client:
    return httpx.Client(transport=transport)


class TestStaticTokenProvider:
    def test_returns_token(self) -> None:
        assert StaticTokenProvider("abc", backend="google_drive").get_token() == "abc"

    def test_raises_when_empty(self) -> None:
        with pytest.raises(TokenError, match="No access token"):
            StaticTokenProvider("", backend="google_drive").get_token()


class TestProxyTokenProvider:
    def test_reads_access_token(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"access_token": "tok-1"})
        )
        provider = ProxyTokenProvider("http://proxy/token", "onedrive", client=_client(transport))
        assert provider.get_token() == "tok-1"

    def test_non_2xx_raises_with_status(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="down"))
        provider = ProxyTokenProvider("http://proxy/token", "onedrive", client=_client(transport))
        with pytest.raises(TokenError) as exc_info:
            provider.get_token()
        assert exc_info.value.http_status == 503

    def test_missing_token_field_raises(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True}))
        provider = ProxyTokenProvider("http://proxy/token", "onedrive", client=_client(transport))
        with pytest.raises(TokenError, match="no access_token"):
            provider.get_token()

    def test_transport_failure_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider = ProxyTokenProvider(
            "http://proxy/token", "onedrive", client=_client(httpx.MockTransport(handler))
        )
        with pytest.raises(TokenError, match="unreachable"):
            provider.get_token()


class TestClientCredentialsTokenProvider:
    def _provider(self, credential: MagicMock) -> ClientCredentialsTokenProvider:
        return ClientCredentialsTokenProvider(
            tenant_id="tenant-1",
            client_id="client-1",
            client_secret="s3cret",
            credential=credential,
        )

    def test_requests_graph_default_scope(self) -> None:
        credential = MagicMock()
        credential.get_token.return_value = AccessToken("graph-tok", 1_900_000_000)

        assert self._provider(credential).get_token() == "graph-tok"
        credential.get_token.assert_called_once_with("https://graph.microsoft.com/.default")

    @patch("intake.uploads.tokens.ClientSecretCredential")
    def test_builds_client_secret_credential(self, mock_credential: MagicMock) -> None:
        ClientCredentialsTokenProvider(
            tenant_id="tenant-1", client_id="client-1", client_secret="s3cret"
        )
        mock_credential.assert_called_once_with(
            tenant_id="tenant-1", client_id="client-1", client_secret="s3cret"
        )

    def test_authentication_failure_raises_token_error(self) -> None:
        credential = MagicMock()
        credential.get_token.side_effect = ClientAuthenticationError("AADSTS7000215: invalid")

        with pytest.raises(TokenError, match="AADSTS7000215") as exc_info:
            self._provider(credential).get_token()
        assert exc_info.value.backend == "onedrive"

    def test_close_closes_credential(self) -> None:
        credential = MagicMock()
        self._provider(credential).close()
        credential.close.assert_called_once()
