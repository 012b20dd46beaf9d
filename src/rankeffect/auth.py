"""Single shared-password gate in front of the gallery."""

import hmac
import logging

from .errors import AuthenticationError

logger = logging.getLogger(__name__)


class AuthGate:
    def __init__(self, username: str, password: str):
        self._username = username
        self._password = password
        self.is_authenticated = False

    def login(self, username: str, password: str) -> bool:
        # Compare both fields so a wrong username costs the same as a wrong password
        user_ok = hmac.compare_digest(username.encode(), self._username.encode())
        pass_ok = hmac.compare_digest(password.encode(), self._password.encode())
        self.is_authenticated = user_ok and pass_ok
        if not self.is_authenticated:
            logger.warning("Rejected login for user %r", username)
        return self.is_authenticated

    def logout(self) -> None:
        self.is_authenticated = False

    def require(self) -> None:
        if not self.is_authenticated:
            raise AuthenticationError("Invalid credentials")
