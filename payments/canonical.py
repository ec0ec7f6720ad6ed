"""
Canonical serialization of Paddle webhook fields.

Paddle signs alerts over PHP's ``serialize()`` of the key-sorted field array,
so the verifying side must rebuild those exact bytes:

    a:2:{s:6:"amount";s:4:"9.99";s:8:"currency";s:3:"USD";}

String lengths are UTF-8 byte lengths, not character counts. Keys are assumed
non-numeric: PHP would turn a key like "10" into the integer key `i:10;`.
"""

from typing import Mapping


def sorted_fields(fields: Mapping[str, str]) -> list[tuple[str, str]]:
    """Fields ordered by key in ascending byte order of their UTF-8 encoding."""
    return sorted(fields.items(), key=lambda item: item[0].encode("utf-8"))


def _php_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return b's:%d:"%s";' % (len(raw), raw)


def canonicalize(fields: Mapping[str, str]) -> bytes:
    """PHP-serialize the key-sorted mapping; insertion order does not matter."""
    items = sorted_fields(fields)
    body = b"".join(_php_string(key) + _php_string(value) for key, value in items)
    return b"a:%d:{%s}" % (len(items), body)
