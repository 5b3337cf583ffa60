"""Lookr persistence layer: encrypted snippet vault."""

from lookr.store.codec import MalformedSnippetData, SnippetCodec
from lookr.store.crypto import CipherError, DecryptionError, UserScopedCipher
from lookr.store.secure_store import SecureSnippetStore

__all__ = [
    "CipherError",
    "DecryptionError",
    "MalformedSnippetData",
    "SecureSnippetStore",
    "SnippetCodec",
    "UserScopedCipher",
]
