"""Authentication service for crossbook."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode
from uuid import uuid4

import bcrypt
import jwt
import requests

from crossbook.config import BASE_URL, JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRATION_HOURS
from crossbook.models.user import UserRole
from crossbook.timeutil import utc_now, to_iso

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when a caller cannot be authenticated."""
    pass


class RoleForbiddenError(AuthError):
    """Raised when an authenticated caller lacks the required role."""
    pass


def _strip_password(user: Dict[str, Any]) -> Dict[str, Any]:
    user = dict(user)
    user.pop("password", None)
    return user


class AuthService:
    """Service for issuing and checking access tokens."""

    @staticmethod
    def _hash_password(password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            str: Hashed password
        """
        hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt())
        return hashed.decode('utf-8')

    @staticmethod
    def _verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
        """Check a password against its bcrypt hash."""
        if not hashed_password:
            return False

        try:
            return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
        except ValueError as e:
            logger.error(f"Password verification error: {str(e)}")
            return False

    @staticmethod
    def _generate_jwt(user_id: str, roles: List[str]) -> str:
        """
        Generate a JWT token for a user.

        Args:
            user_id: User ID to encode in the token
            roles: Roles held by the user

        Returns:
            str: JWT token
        """
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user_id,
            "roles": roles,
            "exp": now + timedelta(hours=JWT_EXPIRATION_HOURS),
            "iat": now,
        }
        return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)

    @staticmethod
    def _verify_jwt(token: str) -> Dict[str, Any]:
        """
        Verify a JWT token and return its payload.

        Raises:
            AuthError: If token is missing, invalid or expired
        """
        if not token:
            raise AuthError("Authentication token is required")
        try:
            return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        except jwt.PyJWTError as e:
            raise AuthError(f"Invalid token: {str(e)}")

    @staticmethod
    def register_client(email: str, password: str, name: str,
                        phone: Optional[str] = None) -> Dict[str, Any]:
        """
        Register a new client account.

        Returns:
            Dict: User data with token

        Raises:
            AuthError: If the email is taken or the store is unreachable
        """
        try:
            response = requests.get(f"{BASE_URL}/users/query?{urlencode({'email': email})}")

            if response.status_code == 404:
                existing_users = []
            else:
                response.raise_for_status()
                existing_users = response.json()

            if existing_users:
                raise AuthError(f"User with email {email} already exists")

            now = to_iso(utc_now())
            new_user = {
                "id": str(uuid4()),
                "email": email,
                "password": AuthService._hash_password(password),
                "name": name,
                "phone": phone,
                "avatar": None,
                "roles": [UserRole.CLIENT.value],
                "is_active": True,
                "created_at": now,
                "updated_at": now,
            }

            logger.info(f"Creating new client user: {email}")
            response = requests.post(f"{BASE_URL}/users", json=new_user)
            response.raise_for_status()
            created_user = response.json()

            token = AuthService._generate_jwt(created_user["id"], created_user["roles"])
            return {"user": _strip_password(created_user), "token": token}

        except requests.RequestException as e:
            raise AuthError(f"Registration failed: {str(e)}")

    @staticmethod
    def login(email: str, password: str) -> Dict[str, Any]:
        """
        Sign a user in.

        Returns:
            Dict: User data with token

        Raises:
            AuthError: If the credentials are wrong or the account is inactive
        """
        try:
            response = requests.get(f"{BASE_URL}/users/query?{urlencode({'email': email})}")

            if response.status_code == 404:
                raise AuthError("Invalid credentials")

            response.raise_for_status()
            users = response.json()

            if not users:
                raise AuthError("Invalid credentials")

            user = users[0]
            if not AuthService._verify_password(password, user.get("password")):
                raise AuthError("Invalid credentials")

            if not user.get("is_active", True):
                raise AuthError("This account has been deactivated")

            token = AuthService._generate_jwt(user["id"], user.get("roles", []))
            return {"user": _strip_password(user), "token": token}

        except requests.RequestException as e:
            raise AuthError(f"Login failed: {str(e)}")

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        """
        Verify a token and return the associated user.

        Raises:
            AuthError: If token verification fails
        """
        payload = AuthService._verify_jwt(token)
        user_id = payload.get("user_id")

        if not user_id:
            raise AuthError("Invalid token payload")

        try:
            response = requests.get(f"{BASE_URL}/users/{user_id}")

            if response.status_code == 404:
                raise AuthError(f"User with ID {user_id} not found")

            response.raise_for_status()
            user = response.json()
        except requests.RequestException as e:
            raise AuthError(f"Token verification failed: {str(e)}")

        if not user.get("is_active", True):
            raise AuthError("This account has been deactivated")

        return _strip_password(user)

    @staticmethod
    def require_role(token: str, required_roles: List[str]) -> Dict[str, Any]:
        """
        Verify that a user holds at least one of the required roles.

        Roles are read from the stored user record, not the token, so a
        revoked role takes effect immediately.

        Returns:
            Dict: User data if authorized

        Raises:
            AuthError: If the token is invalid
            RoleForbiddenError: If the user holds none of the roles
        """
        user = AuthService.verify_token(token)

        if not set(user.get("roles", [])) & set(required_roles):
            allowed = ", ".join(required_roles)
            raise RoleForbiddenError(f"Access denied. This action requires one of these roles: {allowed}")

        return user
