"""Pod memory quantities and the JVM heap settings derived from them."""

from __future__ import annotations

import re
from fractions import Fraction

UNIT_K = 1024
UNIT_M = 1024 * UNIT_K
UNIT_G = 1024 * UNIT_M

_BINARY_SUFFIXES = {
    "Ki": 2**10,
    "Mi": 2**20,
    "Gi": 2**30,
    "Ti": 2**40,
    "Pi": 2**50,
    "Ei": 2**60,
}

_DECIMAL_SUFFIXES = {
    "n": Fraction(1, 10**9),
    "u": Fraction(1, 10**6),
    "m": Fraction(1, 10**3),
    "": Fraction(1),
    "k": Fraction(10**3),
    "M": Fraction(10**6),
    "G": Fraction(10**9),
    "T": Fraction(10**12),
    "P": Fraction(10**15),
    "E": Fraction(10**18),
}

_QUANTITY = re.compile(r"([+-]?)([0-9]*)(?:\.([0-9]*))?(.*)", re.DOTALL)
_EXPONENT = re.compile(r"[eE]([+-]?[0-9]+)")


def _trunc_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero."""
    return int(Fraction(numerator, denominator))


def _multiplier(suffix: str) -> Fraction:
    if suffix in _BINARY_SUFFIXES:
        return Fraction(_BINARY_SUFFIXES[suffix])
    if suffix in _DECIMAL_SUFFIXES:
        return _DECIMAL_SUFFIXES[suffix]
    exponent = _EXPONENT.fullmatch(suffix)
    if exponent:
        return Fraction(10) ** int(exponent.group(1))
    raise ValueError(f"unable to parse quantity's suffix: {suffix!r}")


def parse_quantity(size: str) -> int:
    """Parse a resource quantity such as ``.5Gi`` or ``1500M`` into whole units.

    Fractional results are rounded up, away from zero.
    """
    match = _QUANTITY.fullmatch(size)
    if not match:
        raise ValueError(f"quantities must match the regular expression: {size!r}")
    sign, whole, frac, suffix = match.groups()
    frac = frac or ""
    if not whole and not frac:
        raise ValueError(f"quantities must match the regular expression: {size!r}")
    number = Fraction(int(whole or "0"))
    if frac:
        number += Fraction(int(frac), 10 ** len(frac))
    amount = number * _multiplier(suffix)
    magnitude = -((-amount.numerator) // amount.denominator)
    return -magnitude if sign == "-" else magnitude


def format_jvm_heap_min_max(heap: str) -> str:
    """Return identical min and max heap arguments, e.g. ``-Xms2g -Xmx2g``."""
    return f"-Xms{heap} -Xmx{heap}"


def format_jvm_heap_size(size_b: int) -> str:
    """Format a byte count as a whole-number heap size with k, m or g suffix."""
    if size_b >= UNIT_G:
        if size_b % UNIT_G == 0:
            return f"{size_b / UNIT_G:.0f}g"
        if size_b % UNIT_M == 0:
            return f"{size_b / UNIT_M:.0f}m"
        return f"{size_b / UNIT_M + 1:.0f}m"
    if size_b >= UNIT_M and size_b % UNIT_M == 0:
        return f"{size_b / UNIT_M:.0f}m"
    if size_b % UNIT_K == 0:
        return f"{size_b / UNIT_K:.0f}k"
    return f"{_trunc_div(size_b, UNIT_K) + 1}k"


def pod_mem_to_jvm_heap(size: str) -> str:
    """Convert a pod memory request into a heap size of about 75% of it."""
    heap = _trunc_div(parse_quantity(size) * 75, 100)
    return format_jvm_heap_size(heap)


def pod_mem_to_jvm_heap_args(size: str, default_value: str) -> str:
    """Convert a pod memory request into JVM heap arguments.

    An empty size yields ``default_value`` unchanged.
    """
    if size == "":
        return default_value
    return format_jvm_heap_min_max(pod_mem_to_jvm_heap(size))