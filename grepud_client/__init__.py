from grepud_client.auth import AuthFlow
from grepud_client.credentials import FileCredentialStore, MemoryCredentialStore
from grepud_client.errors import ErrorKind, Failure, Result
from grepud_client.gateway import RequestGateway
from grepud_client.orders import OrderWorkflow
from grepud_client.session import ClientSession

__all__ = [
    "AuthFlow",
    "ClientSession",
    "ErrorKind",
    "Failure",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "OrderWorkflow",
    "RequestGateway",
    "Result",
]
