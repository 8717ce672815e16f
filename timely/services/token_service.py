import re
import secrets

SECRET_BYTES = 64
SECRET_LENGTH = SECRET_BYTES * 2  # hex chars
PREFIX_LENGTH = 16

_HEX_SECRET = re.compile(r"[0-9a-fA-F]{%d}" % SECRET_LENGTH)


def generate_secret(byte_length: int = SECRET_BYTES) -> str:
    """Return a random hex string of 2 * byte_length characters from the OS CSPRNG."""
    return secrets.token_hex(byte_length)


def is_well_formed_secret(value) -> bool:
    return isinstance(value, str) and _HEX_SECRET.fullmatch(value) is not None


def secret_prefix(raw_secret: str) -> str:
    """Leading slice stored in the clear to narrow lookups."""
    return raw_secret[:PREFIX_LENGTH].lower()
