from typing import Optional

import httpx

from grepud_client.auth import AuthFlow
from grepud_client.config import Settings
from grepud_client.credentials import CredentialStore, FileCredentialStore
from grepud_client.gateway import RequestGateway
from grepud_client.orders import OrderWorkflow


class ClientSession:
    """
    Wires one credential store to the auth and order gateways.

    The auth service and the order/payment gateway live at different
    addresses, so each gets its own RequestGateway; both read the same store.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[CredentialStore] = None,
        auth_transport: Optional[httpx.AsyncBaseTransport] = None,
        gateway_transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_wait=None,
    ):
        self.settings = settings or Settings()
        self.store = store or FileCredentialStore(self.settings.credential_file)
        self.auth_gateway = RequestGateway(
            self.settings.auth_api_url,
            self.store,
            transport=auth_transport,
            timeout=self.settings.request_timeout,
        )
        self.order_gateway = RequestGateway(
            self.settings.gateway_url,
            self.store,
            transport=gateway_transport,
            timeout=self.settings.request_timeout,
        )
        self.auth = AuthFlow(self.auth_gateway, self.store, device_id=self.settings.device_id)
        self.orders = OrderWorkflow(
            self.order_gateway,
            on_unauthorized=self.logout,
            retry_attempts=self.settings.list_retry_attempts,
            retry_wait=retry_wait,
        )

    def logout(self) -> None:
        """Drop the credential and the previous user's cached orders."""
        self.auth.logout()
        self.orders.reset()

    async def aclose(self) -> None:
        self.orders.detach()
        await self.auth_gateway.aclose()
        await self.order_gateway.aclose()

    async def __aenter__(self) -> "ClientSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
