"""Authentication: HTTP Basic credentials checked against an htpasswd file."""

import hashlib
from pathlib import Path
from typing import Dict

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from common.logging_config import get_logger
from fragments.exceptions import InvalidCredentialsError

logger = get_logger(__name__)

security = HTTPBasic()


def hash_owner(username: str) -> str:
    """
    Derive the opaque owner id for a username.

    Only the hash is ever stored with fragments.

    Args:
        username: Authenticated username (typically an email address)

    Returns:
        SHA-256 hex digest of the username
    """
    return hashlib.sha256(username.encode('utf-8')).hexdigest()


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password to hash
        rounds: bcrypt cost factor

    Returns:
        Bcrypt hash of the password
    """
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against a bcrypt hash.

    Returns:
        True if password matches hash, False otherwise (including malformed hashes)
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        logger.warning("Malformed password hash in credentials store")
        return False


class BasicAuthenticator:
    """
    Resolves username/password pairs to owner ids.
    """

    def __init__(self, users: Dict[str, str]):
        self.users = users

    @classmethod
    def from_htpasswd(cls, path: str) -> "BasicAuthenticator":
        """
        Load "username:bcrypt-hash" lines from an htpasswd file.

        Blank lines and lines starting with '#' are ignored.
        """
        users: Dict[str, str] = {}
        for line_number, line in enumerate(Path(path).read_text(encoding='utf-8').splitlines(), start=1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            username, separator, password_hash = line.partition(':')
            if not separator or not username or not password_hash:
                logger.warning(f"Skipping malformed htpasswd entry at {path}:{line_number}")
                continue
            users[username] = password_hash

        logger.info(f"Loaded {len(users)} users from {path}")
        return cls(users)

    def authenticate(self, username: str, password: str) -> str:
        """
        Check credentials and return the owner id.

        Raises:
            InvalidCredentialsError: If the user is unknown or the password is wrong
        """
        password_hash = self.users.get(username)
        if password_hash is None or not verify_password(password, password_hash):
            raise InvalidCredentialsError("Invalid username or password")
        return hash_owner(username)


def get_authenticator(request: Request) -> BasicAuthenticator:
    """
    FastAPI dependency returning the authenticator created at startup.
    """
    authenticator = getattr(request.app.state, 'authenticator', None)
    if authenticator is None:
        raise InvalidCredentialsError("No authentication configured")
    return authenticator


async def get_current_owner(
    credentials: HTTPBasicCredentials = Depends(security),
    authenticator: BasicAuthenticator = Depends(get_authenticator),
) -> str:
    """
    FastAPI dependency resolving Basic credentials to an owner id.

    Raises:
        InvalidCredentialsError: 401 if credentials are invalid
    """
    owner_id = authenticator.authenticate(credentials.username, credentials.password)
    logger.debug(f"Authenticated request for owner_id={owner_id}")
    return owner_id
