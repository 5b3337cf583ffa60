"""Encrypted on-disk snippet vault.

``load()`` never raises: every failure degrades to an empty library plus a
human-readable ``last_load_error``. ``save()`` raises on failure but never
leaves a partially written vault behind.
"""

from __future__ import annotations

from pathlib import Path

from lookr.models import Snippet
from lookr.store.codec import MalformedSnippetData, SnippetCodec
from lookr.store.crypto import Cipher, CipherError, DecryptionError, UserScopedCipher
from lookr.store.files import atomic_write_bytes

SNIPPETS_FILE_NAME = "snippets.bin"
KEY_FILE_NAME = "vault.key"


class SecureSnippetStore:
    """Owns ``snippets.bin``; holds no live reference to the library.

    Args:
        storage_path: Path of the encrypted vault file.
        cipher: Encryption capability. Defaults to a :class:`UserScopedCipher`
            whose key file lives next to the vault.
    """

    def __init__(self, storage_path: Path | str, cipher: Cipher | None = None) -> None:
        self.storage_path = Path(storage_path)
        if cipher is None:
            cipher = UserScopedCipher(self.storage_path.parent / KEY_FILE_NAME)
        self._codec = SnippetCodec(cipher)
        self.last_load_error: str | None = None

    @classmethod
    def in_directory(cls, app_dir: Path) -> "SecureSnippetStore":
        app_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        return cls(app_dir / SNIPPETS_FILE_NAME)

    def load(self) -> list[Snippet]:
        """Return the stored snippets, or an empty list on any failure."""
        self.last_load_error = None

        if not self.storage_path.exists():
            return []

        try:
            blob = self.storage_path.read_bytes()
            if not blob:
                return []
            return self._codec.decode(blob)
        except CipherError as exc:
            self.last_load_error = _describe_cipher_failure(exc)
        except MalformedSnippetData as exc:
            self.last_load_error = f"Snippet library is malformed and was not loaded: {exc}"
        except PermissionError:
            self.last_load_error = (
                f"Permission denied while reading the snippet library at '{self.storage_path}'."
            )
        except OSError as exc:
            self.last_load_error = f"Could not read the snippet library: {exc}"
        except Exception as exc:
            self.last_load_error = f"Unexpected error while loading snippets: {exc}"
        return []

    def save(self, snippets: list[Snippet]) -> None:
        """Encrypt *snippets* and atomically replace the vault file.

        Raises:
            PermissionError: If the vault directory is not writable.
            OSError: On any other I/O failure.
            CipherError: If the data cannot be encrypted.
        """
        blob = self._codec.encode(list(snippets))
        atomic_write_bytes(self.storage_path, blob)


def _describe_cipher_failure(exc: CipherError) -> str:
    if isinstance(exc, DecryptionError):
        return (
            "Snippet library could not be decrypted. It was created by another "
            "user or its key file changed."
        )
    return f"Snippet library key is unusable: {exc}"
