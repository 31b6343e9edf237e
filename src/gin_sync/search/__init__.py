"""Search service integration: payload encryption, dispatch and rebuild."""

from .cipher import PayloadCipher, decrypt_string, encrypt_string
from .dispatcher import IndexDispatcher
from .rebuilder import IndexRebuilder

__all__ = [
    "PayloadCipher",
    "encrypt_string",
    "decrypt_string",
    "IndexDispatcher",
    "IndexRebuilder",
]
