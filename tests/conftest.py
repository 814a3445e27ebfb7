"""Shared fixtures: identities, encrypted files and stand-in editors."""

import sys
from pathlib import Path

import pytest
from pyrage import x25519

from ageedit.core.config import SessionConfig
from ageedit.security.crypto import decrypt_to_file, encrypt_to_file

HELPERS = Path(__file__).resolve().parent / "helpers"
EDIT_HELPER = str(HELPERS / "edit.py")
SIGNAL_HELPER = str(HELPERS / "signal_edit.py")


@pytest.fixture
def edit_helper():
    return EDIT_HELPER


@pytest.fixture
def signal_helper():
    return SIGNAL_HELPER


@pytest.fixture
def identity():
    return x25519.Identity.generate()


@pytest.fixture
def identities_file(tmp_path, identity):
    path = tmp_path / "identities.txt"
    path.write_text(f"# test identity\n{identity}\n", encoding="utf-8")
    return path


@pytest.fixture
def make_encrypted(tmp_path, identity):
    """Return a factory writing ``content`` to an encrypted file and returning its path."""

    def _make(content: bytes = b"secret content\n", name: str = "secret.txt.age", armored: bool = False) -> Path:
        plain = tmp_path / f"{name}.plain"
        plain.write_bytes(content)
        encrypted = tmp_path / name
        encrypt_to_file(plain, encrypted, [identity.to_public()], armored=armored)
        plain.unlink()
        return encrypted

    return _make


@pytest.fixture
def read_encrypted(tmp_path, identity):
    """Return a function decrypting a file with the test identity."""

    def _read(path: Path) -> bytes:
        out = tmp_path / "decrypted.out"
        decrypt_to_file(path, out, [identity])
        return out.read_bytes()

    return _read


@pytest.fixture
def temp_prefix(tmp_path):
    prefix = tmp_path / "prefix"
    prefix.mkdir()
    return prefix


@pytest.fixture
def make_config(identities_file, temp_prefix):
    """SessionConfig factory that defaults to the stand-in editor."""

    def _make(encrypted_path, editor_args=(), **overrides) -> SessionConfig:
        params = dict(
            identities_path=str(identities_file),
            encrypted_path=str(encrypted_path),
            temp_dir_prefix=str(temp_prefix),
            command=sys.executable,
            args=(EDIT_HELPER, *editor_args),
        )
        params.update(overrides)
        return SessionConfig(**params)

    return _make
