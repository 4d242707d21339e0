"""
HTTP access to one remote service.

Each RequestGateway wraps a single httpx.AsyncClient bound to a base address.
The credential is attached per request by ``build_request`` instead of a
client-wide hook, so what a request carries is visible before it is sent.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from grepud_client.credentials import CredentialStore
from grepud_client.errors import Rejected, Unreachable

logger = logging.getLogger(__name__)


def build_request(
    client: httpx.AsyncClient,
    store: CredentialStore,
    method: str,
    path: str,
    body: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.Request:
    request_headers = dict(headers or {})
    token = store.get()
    if token:
        request_headers["Authorization"] = f"Bearer {token}"
    return client.build_request(method, path, json=body, headers=request_headers)


def extract_server_message(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        message = data.get("error")
        if isinstance(message, str) and message:
            return message
    return None


class RequestGateway:
    def __init__(
        self,
        base_url: str,
        store: CredentialStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_url = base_url
        self.store = store
        self.client = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=timeout,
            headers={"Content-Type": "application/json", **(headers or {})},
        )

    def build_request(self, method: str, path: str, body: Optional[Any] = None, headers: Optional[Dict[str, str]] = None) -> httpx.Request:
        return build_request(self.client, self.store, method, path, body, headers)

    async def request(self, method: str, path: str, body: Optional[Any] = None, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        request = self.build_request(method, path, body, headers)
        try:
            response = await self.client.send(request)
        except httpx.RequestError as e:
            logger.warning(f"{method} {request.url} unreachable: {e!r}")
            raise Unreachable() from e

        if not response.is_success:
            server_message = extract_server_message(response)
            logger.info(f"{method} {request.url} rejected with {response.status_code}: {server_message}")
            raise Rejected(response.status_code, server_message)

        logger.debug(f"{method} {request.url} -> {response.status_code}")
        return response

    async def aclose(self) -> None:
        await self.client.aclose()
