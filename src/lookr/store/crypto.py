"""User-scoped encryption for the snippet vault.

Data is bound to the logged-in user through a locally held symmetric
secret:

- ``vault.key`` holds 32 random bytes, created with mode 0o600 in a 0o700
  directory.
- The Fernet key is derived with PBKDF2-SHA256 from that secret; the salt
  binds the caller's *context* (versioned application entropy) and the
  current OS user identity.

A blob written under one user / context cannot be decrypted under another.
"""

from __future__ import annotations

import base64
import getpass
import hashlib
import os
from pathlib import Path
from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

_KEY_BYTES = 32
_KDF_ITERATIONS = 100_000


class CipherError(RuntimeError):
    """Raised when the vault cannot be encrypted or decrypted."""


class DecryptionError(CipherError):
    """Raised when a blob was written by another user, context or key."""


class Cipher(Protocol):
    def encrypt(self, data: bytes, context: bytes) -> bytes: ...

    def decrypt(self, blob: bytes, context: bytes) -> bytes: ...


def current_user_identity() -> str:
    """Return a string that identifies the OS user running this process."""
    try:
        login = getpass.getuser()
    except (KeyError, OSError):
        login = ""
    uid = str(os.getuid()) if hasattr(os, "getuid") else ""
    return f"{login}|{uid}|{Path.home()}"


class UserScopedCipher:
    """Fernet cipher whose key is bound to a key file, a context and the OS user.

    Args:
        key_path: Location of the local secret; created on first use.
        identity: Override the user identity (for testing).
    """

    def __init__(self, key_path: Path | str, identity: str | None = None) -> None:
        self.key_path = Path(key_path)
        self._identity = identity if identity is not None else current_user_identity()
        self._fernets: dict[bytes, Fernet] = {}

    def encrypt(self, data: bytes, context: bytes) -> bytes:
        return self._fernet(context).encrypt(data)

    def decrypt(self, blob: bytes, context: bytes) -> bytes:
        try:
            return self._fernet(context).decrypt(blob)
        except InvalidToken as exc:
            raise DecryptionError(
                "Data could not be decrypted for the current user."
            ) from exc

    # ------------------------------------------------------------------
    # Key material
    # ------------------------------------------------------------------

    def _fernet(self, context: bytes) -> Fernet:
        if context not in self._fernets:
            self._fernets[context] = Fernet(self._derive_key(context))
        return self._fernets[context]

    def _derive_key(self, context: bytes) -> bytes:
        secret = self._load_or_create_secret()
        salt = hashlib.sha256(context + b"\x00" + self._identity.encode("utf-8")).digest()
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=_KDF_ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(secret))

    def _load_or_create_secret(self) -> bytes:
        if self.key_path.exists():
            secret = self.key_path.read_bytes()
            if len(secret) != _KEY_BYTES:
                raise CipherError(f"Key file is damaged: {self.key_path}")
            return secret

        self.key_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        secret = os.urandom(_KEY_BYTES)
        try:
            fd = os.open(self.key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        except FileExistsError:
            # Another instance created it first.
            return self._load_or_create_secret()
        with os.fdopen(fd, "wb") as f:
            f.write(secret)
        return secret
