import os
import logging
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

AUTH_API_URL = os.getenv("AUTH_API_URL", "http://localhost:8080/auth")
GATEWAY_URL = os.getenv("GATEWAY_URL", "http://localhost:8000")
CREDENTIAL_FILE = os.getenv("CREDENTIAL_FILE", os.path.join(os.path.expanduser("~"), ".grepud", "credentials.json"))
DEVICE_ID = os.getenv("DEVICE_ID", "unknown")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))
LIST_RETRY_ATTEMPTS = int(os.getenv("LIST_RETRY_ATTEMPTS", "3"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


@dataclass
class Settings:
    auth_api_url: str = AUTH_API_URL
    gateway_url: str = GATEWAY_URL
    credential_file: str = CREDENTIAL_FILE
    device_id: str = DEVICE_ID
    request_timeout: float = REQUEST_TIMEOUT
    list_retry_attempts: int = LIST_RETRY_ATTEMPTS


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
