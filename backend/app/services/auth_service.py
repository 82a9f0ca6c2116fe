"""
Auth Service
Account registration, login and refresh token rotation

Only one refresh token is valid per user at a time: login and refresh store
the newly issued token, logout clears it.
"""
import logging

from app.core.auth import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    verify_password,
)
from app.core.exceptions import AuthenticationError, ConflictError
from app.domain.user import TokenPair, User, UserCreate
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class AuthService:

    def __init__(self, repository: UserRepository = None):
        self.repository = repository or UserRepository()

    def _issue_tokens(self, user: User) -> TokenPair:
        tokens = TokenPair(
            access_token=create_access_token(user.id, user.email, user.role.value, user.name),
            refresh_token=create_refresh_token(user.id),
        )
        self.repository.set_refresh_token(user.id, tokens.refresh_token)
        return tokens

    def register(self, data: UserCreate):
        """
        Create an account and sign it in

        Returns:
            Tuple of (User, TokenPair)

        Raises:
            ConflictError: email already registered
        """
        if self.repository.exists_by_email(data.email):
            raise ConflictError("User already exists")

        user = self.repository.create(
            name=data.name,
            email=data.email,
            password_hash=hash_password(data.password)
        )
        logger.info(f"User registered: id={user.id}")
        return user, self._issue_tokens(user)

    def login(self, email: str, password: str):
        """
        Returns:
            Tuple of (User, TokenPair)

        Raises:
            AuthenticationError: unknown email or wrong password
        """
        credentials = self.repository.find_credentials(email)
        if not credentials:
            raise AuthenticationError()

        user, password_hash = credentials
        if not verify_password(password, password_hash):
            logger.info(f"Failed login for user {user.id}")
            raise AuthenticationError()

        return user, self._issue_tokens(user)

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair; the old token stops working

        Raises:
            AuthenticationError: token unknown, revoked or already rotated
        """
        payload = decode_refresh_token(refresh_token)
        user_id = int(payload["sub"])

        stored = self.repository.get_refresh_token(user_id)
        if not stored or stored != refresh_token:
            raise AuthenticationError("Invalid refresh token")

        user = self.repository.find_by_id(user_id)
        if not user:
            raise AuthenticationError("Invalid refresh token")

        return self._issue_tokens(user)

    def logout(self, user_id) -> None:
        self.repository.set_refresh_token(int(user_id), None)
        logger.info(f"User {user_id} logged out")

    def get_profile(self, user_id) -> User:
        user = self.repository.find_by_id(int(user_id))
        if not user:
            raise AuthenticationError("User not found")
        return user
