"""Unit tests for identities file parsing."""

import pytest
from pyrage import x25519

from ageedit.core.exceptions import IdentityError, NoIdentitiesFound
from ageedit.security.identities import load_identities, parse_identities

VALID_KEY = "AGE-SECRET-KEY-150E3TFLT765WC7X9E2Y6KAN2XA7NE4DN0XVCR4ATTFQK6GSXCGVS3KS7MS"

CORRUPTED_KEY = "AGE-SECRET-KEY-1XXXXXXXXXX1234567890abcdefghijklmnopqrstuvwxyz"


@pytest.mark.parametrize(
    "content, expected",
    [
        (VALID_KEY + "\n", 1),
        (VALID_KEY, 1),
        (VALID_KEY + "\n" + VALID_KEY + "\n", 2),
        ("# Comment\n \n\n" + VALID_KEY + "\n", 1),
        ("    # Comment\n" + VALID_KEY, 1),
        ("# first\n" + VALID_KEY + "\n\n# second\n\n" + VALID_KEY + "\n", 2),
    ],
)
def test_load_identities_counts(tmp_path, content, expected):
    path = tmp_path / "identities"
    path.write_text(content, encoding="utf-8")

    identities, recipients = load_identities(path)

    assert len(identities) == expected
    assert len(recipients) == expected


@pytest.mark.parametrize("content", ["invalid-key\n", CORRUPTED_KEY + "\n"])
def test_load_identities_rejects_bad_keys(tmp_path, content):
    path = tmp_path / "identities"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(IdentityError):
        load_identities(path)


@pytest.mark.parametrize("content", ["", "# only a comment\n\n   \n"])
def test_load_identities_requires_at_least_one(tmp_path, content):
    path = tmp_path / "identities"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(NoIdentitiesFound):
        load_identities(path)


def test_parse_error_names_key_number():
    # comments and blank lines don't count
    text = "# header\n\n" + VALID_KEY + "\n# another\nnot-a-key\n"
    with pytest.raises(IdentityError, match="number 2"):
        parse_identities(text)


def test_recipients_match_identities():
    first = x25519.Identity.generate()
    second = x25519.Identity.generate()

    identities, recipients = parse_identities(f"{first}\n{second}\n")

    assert [str(r) for r in recipients] == [str(first.to_public()), str(second.to_public())]
    assert [str(i) for i in identities] == [str(first), str(second)]


def test_missing_file(tmp_path):
    with pytest.raises(IdentityError, match="failed to read identities file"):
        load_identities(tmp_path / "nope")
