"""Security helpers: identities, age encryption plumbing and process hardening.

This package provides:
- identities file parsing (X25519 identities and their recipients)
- armor detection and encrypt/decrypt to file with optional filter commands
- mlockall(2) memory locking
- the SIGUSR1 checkpoint listener
"""

from .identities import load_identities, parse_identities
from .crypto import decrypt_to_file, encrypt_to_file, run_filter
from .memory import lock_memory
from .signals import SignalBridge

__all__ = [
    "load_identities",
    "parse_identities",
    "decrypt_to_file",
    "encrypt_to_file",
    "run_filter",
    "lock_memory",
    "SignalBridge",
]
