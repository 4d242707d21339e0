"""Fake auth service and order/payment gateway, mounted through httpx.ASGITransport."""

from typing import Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from tenacity import wait_none

from grepud_client.auth import AuthFlow
from grepud_client.credentials import MemoryCredentialStore
from grepud_client.gateway import RequestGateway
from grepud_client.orders import OrderWorkflow

AUTH_URL = "http://auth.test/auth"
GATEWAY_URL = "http://gateway.test"
OTP_CODE = "555181"
TOKEN = "abc123"


def build_auth_app() -> FastAPI:
    app = FastAPI()
    app.state.users = {}
    app.state.device_ids = []

    @app.post("/auth/register")
    async def register(request: Request):
        data = await request.json()
        email = data.get("email")
        if not email or not data.get("username") or not data.get("password"):
            return JSONResponse({"error": "invalid input"}, status_code=400)
        if email in app.state.users:
            return JSONResponse({"error": "email already registered"}, status_code=409)
        app.state.users[email] = {"password": data["password"], "verified": False, "code": OTP_CODE}
        return JSONResponse({"message": "registered, check email for the OTP"}, status_code=201)

    @app.post("/auth/verify")
    async def verify(request: Request):
        data = await request.json()
        user = app.state.users.get(data.get("email"))
        if user is None:
            return JSONResponse({"error": "verification code expired"}, status_code=400)
        if data.get("code") != user["code"]:
            return JSONResponse({"error": "wrong code"}, status_code=400)
        user["verified"] = True
        return JSONResponse({"message": "account verified, please log in"})

    @app.post("/auth/login")
    async def login(request: Request):
        data = await request.json()
        app.state.device_ids.append(request.headers.get("x-device-id"))
        user = app.state.users.get(data.get("email"))
        if user is None or user["password"] != data.get("password"):
            return JSONResponse({"error": "wrong email or password"}, status_code=401)
        if not user["verified"]:
            return JSONResponse({"error": "account not verified, check your email"}, status_code=401)
        return JSONResponse({"token": TOKEN})

    return app


def build_gateway_app() -> FastAPI:
    app = FastAPI()
    app.state.orders = {}
    app.state.next_id = 1
    app.state.tokens = {TOKEN}
    app.state.authorizations = []

    def current_user(request: Request) -> Optional[str]:
        header = request.headers.get("authorization")
        app.state.authorizations.append(header)
        if not header or not header.startswith("Bearer "):
            return None
        token = header[len("Bearer "):]
        return token if token in app.state.tokens else None

    def unauthorized() -> JSONResponse:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    @app.get("/order/list")
    async def list_orders(request: Request):
        user = current_user(request)
        if user is None:
            return unauthorized()
        orders = [
            {k: v for k, v in o.items() if k != "user"}
            for o in app.state.orders.values()
            if o["user"] == user
        ]
        # A user without orders gets null, not [].
        return JSONResponse(orders or None)

    @app.post("/order/create")
    async def create_order(request: Request):
        user = current_user(request)
        if user is None:
            return unauthorized()
        data = await request.json()
        order_id = str(app.state.next_id)
        app.state.next_id += 1
        order = {"id": order_id, "user": user, "item": data["item"], "price": data["price"], "status": "pending"}
        app.state.orders[order_id] = order
        return JSONResponse({k: v for k, v in order.items() if k != "user"}, status_code=201)

    @app.post("/payment/pay")
    async def pay(request: Request):
        user = current_user(request)
        if user is None:
            return unauthorized()
        data = await request.json()
        order = app.state.orders.get(data.get("order_id"))
        if order is None or order["user"] != user:
            return JSONResponse({"error": "order not found"}, status_code=404)
        if order["status"] == "paid":
            return JSONResponse({"error": "order already paid"}, status_code=409)
        if data.get("amount") != order["price"]:
            return JSONResponse({"error": "amount does not match order price"}, status_code=400)
        order["status"] = "paid"
        return JSONResponse({"message": "payment success"})

    return app


def unreachable_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    return httpx.MockTransport(handler)


@pytest.fixture
def auth_app():
    return build_auth_app()


@pytest.fixture
def gateway_app():
    return build_gateway_app()


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def authed_store():
    return MemoryCredentialStore(TOKEN)


@pytest_asyncio.fixture
async def auth_gateway(auth_app, store):
    gateway = RequestGateway(AUTH_URL, store, transport=httpx.ASGITransport(app=auth_app))
    yield gateway
    await gateway.aclose()


@pytest_asyncio.fixture
async def order_gateway(gateway_app, authed_store):
    gateway = RequestGateway(GATEWAY_URL, authed_store, transport=httpx.ASGITransport(app=gateway_app))
    yield gateway
    await gateway.aclose()


@pytest.fixture
def auth_flow(auth_gateway, store):
    return AuthFlow(auth_gateway, store, device_id="test-device")


@pytest.fixture
def workflow(order_gateway):
    return OrderWorkflow(order_gateway, retry_wait=wait_none())
