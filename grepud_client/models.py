import enum


class OrderStatus(enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class AuthState(enum.Enum):
    ANONYMOUS = "ANONYMOUS"
    REGISTERED = "REGISTERED"
    VERIFIED = "VERIFIED"
    AUTHENTICATED = "AUTHENTICATED"
