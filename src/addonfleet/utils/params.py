"""Parsing helpers for command line parameters."""

from addonfleet.core.exceptions import ConfigurationError


def parse_comma_separated_params(value: str) -> dict[str, str]:
    """Parse ``foo=bar,baz=qux`` into a dictionary.

    Whitespace around keys and values is stripped. Empty input yields an
    empty dictionary.

    Args:
        value: Comma separated ``key=value`` pairs

    Returns:
        Mapping of keys to values

    Raises:
        ConfigurationError: If a pair has no ``=`` or an empty key
    """
    params: dict[str, str] = {}
    if not value or not value.strip():
        return params

    for pair in value.split(","):
        if not pair.strip():
            continue
        key, sep, val = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError(f"Invalid parameter {pair.strip()!r}: expected key=value")
        params[key] = val.strip()

    return params
