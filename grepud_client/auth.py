"""
Register -> verify (OTP) -> login.

Each stage is single-flight: a second submission while the first is still
outstanding is refused, not queued. Failures leave the state where it was;
the user simply retries the same stage.
"""

import logging
from typing import Optional, Set

import httpx
from pydantic import ValidationError

from grepud_client.credentials import CredentialStore
from grepud_client.errors import ErrorKind, Failure, GatewayError, Result
from grepud_client.gateway import RequestGateway
from grepud_client.models import AuthState
from grepud_client.schemas import LoginCredentials, RegistrationAttempt, TokenResponse, VerificationAttempt

logger = logging.getLogger(__name__)

REGISTER = "register"
VERIFY = "verify"
LOGIN = "login"

REGISTERED_PROMPT = "Registration succeeded. Check your email for the verification code."
VERIFIED_PROMPT = "Account verified. Please log in."
REGISTER_FAILED = "Registration failed."
VERIFY_FAILED = "Code is wrong or expired."
LOGIN_FAILED = "Login failed."
MISSING_TOKEN = "Login response did not include a token."
LOGIN_ABANDONED = "Logged out before the login finished."


class AuthFlow:
    def __init__(self, gateway: RequestGateway, store: CredentialStore, device_id: Optional[str] = None):
        self.gateway = gateway
        self.store = store
        self.device_id = device_id
        self.state = AuthState.AUTHENTICATED if store.get() else AuthState.ANONYMOUS
        self.prefill_email: Optional[str] = None
        self._in_flight: Set[str] = set()
        self._generation = 0

    def is_in_flight(self, stage: str) -> bool:
        return stage in self._in_flight

    async def _submit(self, stage: str, path: str, payload: dict, fallback: str, headers: Optional[dict] = None) -> Result:
        if stage in self._in_flight:
            return Result.failed(Failure.invalid(f"{stage} is already in progress"))

        self._in_flight.add(stage)
        try:
            response = await self.gateway.request("POST", path, payload, headers=headers)
        except GatewayError as e:
            failure = Failure.from_error(e, fallback)
            logger.info(f"{stage} failed ({failure.kind.value}): {failure.message}")
            return Result.failed(failure)
        finally:
            self._in_flight.discard(stage)
        return Result.success(response)

    async def register(self, username: str, email: str, password: str) -> Result:
        """
        Create the account. On 201 the flow moves to REGISTERED and remembers
        the email as the default for ``verify``.
        """
        try:
            attempt = RegistrationAttempt(username=username, email=email, password=password)
        except ValidationError as e:
            return Result.failed(Failure.from_validation(e))

        result = await self._submit(REGISTER, "/register", attempt.model_dump(), REGISTER_FAILED)
        if not result.ok:
            return result

        response: httpx.Response = result.value
        if response.status_code != 201:
            logger.warning(f"register answered {response.status_code} instead of 201")
            return Result.failed(Failure(ErrorKind.REJECTED, REGISTER_FAILED, response.status_code))

        if self.state is AuthState.ANONYMOUS:
            self.state = AuthState.REGISTERED
        self.prefill_email = attempt.email
        logger.info(f"Registered {attempt.email}, awaiting verification")
        return Result.success(REGISTERED_PROMPT)

    async def verify(self, code: str, email: Optional[str] = None) -> Result:
        """
        Submit the OTP. Non-digits are stripped from ``code`` first. Success
        does not log the user in; ``login`` is always a separate step.
        """
        try:
            attempt = VerificationAttempt(email=email or self.prefill_email or "", code=code)
        except ValidationError as e:
            return Result.failed(Failure.from_validation(e))

        result = await self._submit(VERIFY, "/verify", attempt.model_dump(), VERIFY_FAILED)
        if not result.ok:
            return result

        if self.state in (AuthState.ANONYMOUS, AuthState.REGISTERED):
            self.state = AuthState.VERIFIED
        logger.info(f"Verified {attempt.email}")
        return Result.success(VERIFIED_PROMPT)

    async def login(self, email: str, password: str) -> Result:
        try:
            credentials = LoginCredentials(email=email, password=password)
        except ValidationError as e:
            return Result.failed(Failure.from_validation(e))

        generation = self._generation
        headers = {"X-Device-ID": self.device_id} if self.device_id else None
        result = await self._submit(LOGIN, "/login", credentials.model_dump(), LOGIN_FAILED, headers=headers)
        if not result.ok:
            return result

        response: httpx.Response = result.value
        try:
            token = TokenResponse.model_validate(response.json()).token
        except (ValueError, ValidationError):
            return Result.failed(Failure(ErrorKind.REJECTED, MISSING_TOKEN, response.status_code))

        if generation != self._generation:
            logger.info("Discarding login response that arrived after logout")
            return Result.failed(Failure.invalid(LOGIN_ABANDONED))

        self.store.set(token)
        self.state = AuthState.AUTHENTICATED
        logger.info(f"Logged in as {credentials.email}")
        return Result.success(self.state)

    def logout(self) -> None:
        """Drop the credential locally. A login still in flight will not store its token."""
        self._generation += 1
        self.store.clear()
        self.state = AuthState.ANONYMOUS
        self.prefill_email = None
        logger.info("Logged out, credential cleared")
