"""
Order workflow: create, list, pay.

The order cache mirrors the server and is never patched locally. Every
successful mutation is followed by a full re-fetch, and the server's answer
replaces the cache wholesale.
"""

import logging
from typing import Callable, Optional, Tuple

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from grepud_client.errors import ErrorKind, Failure, GatewayError, Result, Unreachable
from grepud_client.gateway import RequestGateway
from grepud_client.models import OrderStatus
from grepud_client.schemas import Order, OrderCreate, OrderList, PaymentRequest

logger = logging.getLogger(__name__)

LIST_FAILED = "Failed to load orders."
CREATE_FAILED = "Failed to create order."
PAY_FAILED = "Payment failed."
UNREADABLE_LIST = "Server returned an unreadable order list."


class OrderWorkflow:
    def __init__(
        self,
        gateway: RequestGateway,
        on_unauthorized: Optional[Callable[[], None]] = None,
        retry_attempts: int = 3,
        retry_wait=None,
    ):
        self.gateway = gateway
        self.on_unauthorized = on_unauthorized
        self.retry_attempts = max(1, retry_attempts)
        self.retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=0.5, min=0.5, max=5)
        self._orders: Tuple[Order, ...] = ()
        self._epoch = 0
        self.is_creating = False
        self.is_paying = False

    @property
    def orders(self) -> Tuple[Order, ...]:
        return self._orders

    def detach(self) -> None:
        """Responses still in flight when this is called are not applied to the cache."""
        self._epoch += 1

    def reset(self) -> None:
        """Forget the cached orders, e.g. when the user behind them logs out."""
        self.detach()
        self._orders = ()

    def _fail(self, exc: GatewayError, fallback: str) -> Result:
        failure = Failure.from_error(exc, fallback)
        if failure.is_unauthorized and self.on_unauthorized is not None:
            logger.warning(f"Authorization rejected ({failure.status}), dropping credential")
            self.on_unauthorized()
        return Result.failed(failure)

    async def _fetch_orders(self) -> httpx.Response:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type(Unreachable),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(f"Retrying order list (attempt {attempt.retry_state.attempt_number})")
                response = await self.gateway.request("GET", "/order/list")
        return response

    def _warn_on_regression(self, orders: Tuple[Order, ...]) -> None:
        """
        Orders only ever go pending -> paid. A snapshot that reports a paid order
        as pending again is still applied, since the server owns order state,
        but it is logged so the drift is visible.
        """
        paid = {o.id for o in self._orders if o.status is OrderStatus.PAID}
        for order in orders:
            if order.id in paid and order.status is OrderStatus.PENDING:
                logger.warning(f"Order {order.id} reported pending after being paid")

    async def list_orders(self, epoch: Optional[int] = None) -> Result:
        """
        Fetch every order of the current user. No orders is an empty tuple, not a failure.

        ``epoch`` is the detach generation the caller started under; the snapshot is
        only applied if no ``detach()`` happened since.
        """
        if epoch is None:
            epoch = self._epoch
        try:
            response = await self._fetch_orders()
        except GatewayError as e:
            return self._fail(e, LIST_FAILED)

        try:
            orders = tuple(OrderList(orders=response.json()).orders)
        except ValueError as e:
            logger.warning(f"Unreadable order list: {e}")
            return Result.failed(Failure(ErrorKind.REJECTED, UNREADABLE_LIST, response.status_code))

        if epoch != self._epoch:
            logger.info("Discarding order list that arrived after detach")
            return Result.success(orders)

        self._warn_on_regression(orders)
        self._orders = orders
        return Result.success(orders)

    async def _refresh_after(self, action: str, epoch: int) -> Result:
        if epoch != self._epoch:
            logger.info(f"{action} finished after detach, skipping refresh")
            return Result.success(self._orders)
        refreshed = await self.list_orders(epoch=epoch)
        if not refreshed.ok:
            logger.warning(f"{action} succeeded but refresh failed: {refreshed.failure.message}")
        return Result.success(self._orders)

    async def create_order(self, item: str, price: int) -> Result:
        epoch = self._epoch
        if self.is_creating:
            return Result.failed(Failure.invalid("An order is already being created"))
        try:
            payload = OrderCreate(item=item, price=price)
        except ValidationError as e:
            return Result.failed(Failure.from_validation(e))

        self.is_creating = True
        try:
            await self.gateway.request("POST", "/order/create", payload.model_dump())
        except GatewayError as e:
            return self._fail(e, CREATE_FAILED)
        finally:
            self.is_creating = False

        logger.info(f"Order created: {payload.item} ({payload.price})")
        return await self._refresh_after("create", epoch)

    async def pay_order(self, order_id: str, amount: int) -> Result:
        """
        Pay one order. ``amount`` must be the cached order's price; it is
        passed through as given. Status changes only through the refresh
        that follows a successful payment.
        """
        epoch = self._epoch
        if self.is_paying:
            return Result.failed(Failure.invalid("A payment is already in progress"))
        try:
            payment = PaymentRequest(order_id=order_id, amount=amount)
        except ValidationError as e:
            return Result.failed(Failure.from_validation(e))

        self.is_paying = True
        try:
            await self.gateway.request("POST", "/payment/pay", payment.model_dump())
        except GatewayError as e:
            return self._fail(e, PAY_FAILED)
        finally:
            self.is_paying = False

        logger.info(f"Payment accepted for order {payment.order_id} amount={payment.amount}")
        return await self._refresh_after("pay", epoch)
