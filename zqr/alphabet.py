"""64-symbol alphabet: each character maps to a 6-bit code (its index)."""

import string

from zqr.errors import UnknownSymbol

# Digits, uppercase, lowercase, then the ignore marker and space
ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase + "% "
ALPHABET_SIZE = len(ALPHABET)
CODE_BITS = 6

# Pads short messages and replaces unknown characters; dropped on decode
IGNORE = "%"

_CODES: dict[str, int] = {ch: i for i, ch in enumerate(ALPHABET)}


def symbol_to_code(symbol: str) -> int:
    """Return the 6-bit code of a symbol, or raise UnknownSymbol."""
    try:
        return _CODES[symbol]
    except (KeyError, TypeError):
        raise UnknownSymbol(symbol) from None


def code_to_symbol(code: int) -> str:
    """Return the symbol for a 6-bit code. Every code 0-63 has one."""
    if not 0 <= code < ALPHABET_SIZE:
        raise ValueError(f"code must be in 0..{ALPHABET_SIZE - 1}, got {code}")
    return ALPHABET[code]


IGNORE_CODE = symbol_to_code(IGNORE)
