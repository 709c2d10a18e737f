"""
Modular-Arithmetic Signal Transform.

Purpose:
    Maps integer prices onto digital-root categories (1-9) and provides the
    sequence generators and descriptive analytics built on top of them.
    Everything downstream (enrichment, signal policy, reporting) reads
    prices only through these functions.

Key Responsibilities:
    1. **Digital Roots** - mod-9 root with the 9k -> 9 convention
    2. **Sequences** - doubling (x2 mod 9) and tripling cycles
    3. **Classification** - doubling-sequence membership, pattern numbers {3, 6, 9}
    4. **Descriptive Analytics** - pattern counts, sequence matches, entropy

Architecture Position:
    Leaf module, no internal imports:

        from vortexflow.vortex_math import digital_root, is_in_doubling_sequence

        root = digital_root(price_to_int(price))
        if is_in_doubling_sequence(root):
            ...

Design Principles:
    - Pure functions: no state, no side effects
    - Integer in, integer out: callers round prices before taking roots
    - Descriptive only: analytics here never drive trading decisions
"""

import math
from typing import Dict, Iterable, List, Sequence, Any


DOUBLING_CYCLE = (1, 2, 4, 8, 7, 5)
PATTERN_NUMBERS = frozenset((3, 6, 9))
_DOUBLING_SET = frozenset(DOUBLING_CYCLE)


# =============================================================================
# Digital Roots
# =============================================================================

def digital_root(n: int) -> int:
    """
    Digital root via modular arithmetic.

    Equal to n mod 9, except positive multiples of 9 map to 9 and 0 maps
    to 0. Negative inputs use their absolute value.

    Example:
        >>> digital_root(1234)
        1
        >>> digital_root(999)
        9
    """
    n = abs(int(n))
    if n == 0:
        return 0
    mod = n % 9
    return 9 if mod == 0 else mod


def digital_root_iterative(n: int) -> int:
    """
    Digital root by repeated digit summation until one digit remains.

    Reference definition that digital_root() must agree with.
    """
    n = abs(int(n))
    while n >= 10:
        total = 0
        while n > 0:
            total += n % 10
            n //= 10
        n = total
    return n


def price_to_int(price: float) -> int:
    """Round a price half-up to the integer its digital root is taken from."""
    return int(math.floor(price + 0.5))


# =============================================================================
# Sequences
# =============================================================================

def generate_sequence(
    start: int = 1,
    multiplier: int = 2,
    base: int = 9,
    max_length: int = 20
) -> List[int]:
    """
    Repeatedly apply current = (current * multiplier) mod base.

    A result of 0 is mapped to base. Generation stops as soon as the value
    returns to start (the closing value is included) or max_length values
    have been emitted, whichever comes first.

    Example:
        >>> generate_sequence(1, 2, 9, 20)
        [1, 2, 4, 8, 7, 5, 1]
    """
    if max_length <= 0:
        return []

    sequence = [start]
    current = start
    while len(sequence) < max_length:
        current = (current * multiplier) % base
        if current == 0:
            current = base
        sequence.append(current)
        if current == start:
            break
    return sequence


def doubling_sequence(length: int = 20) -> List[int]:
    """The doubling cycle 1 -> 2 -> 4 -> 8 -> 7 -> 5 -> 1, truncated to length."""
    return generate_sequence(1, 2, 9, length)


def tripling_sequence(length: int = 20) -> List[int]:
    """Sequence generated by x3 mod 9 from 1."""
    return generate_sequence(1, 3, 9, length)


# =============================================================================
# Classification
# =============================================================================

def is_in_doubling_sequence(root: int) -> bool:
    """True if root is one of {1, 2, 4, 8, 7, 5}."""
    return root in _DOUBLING_SET


def is_pattern_number(root: int) -> bool:
    """True if root is one of {3, 6, 9}."""
    return root in PATTERN_NUMBERS


def sequence_position(root: int) -> int:
    """Zero-based index of root in the doubling cycle, -1 if absent."""
    try:
        return DOUBLING_CYCLE.index(root)
    except ValueError:
        return -1


def next_in_doubling(root: int) -> int:
    """Successor of root under x2 mod 9 (0 maps to 9)."""
    value = (root * 2) % 9
    return 9 if value == 0 else value


# =============================================================================
# Descriptive Analytics
# =============================================================================

def detect_pattern_numbers(values: Iterable[int]) -> Dict[str, Any]:
    """
    Locate 3-6-9 digital roots in a sequence of integers.

    Returns:
        {
            'pattern_count': int,
            'pattern_positions': [{'index': i, 'value': root}, ...],
            'oscillations': int,      # adjacent 3->6 or 6->3 transitions
            'balance_points': int,    # roots equal to 9
        }
    """
    roots = [digital_root(v) for v in values]
    positions = [
        {'index': i, 'value': r} for i, r in enumerate(roots) if is_pattern_number(r)
    ]
    oscillations = sum(
        1 for prev, curr in zip(roots, roots[1:]) if {prev, curr} == {3, 6}
    )
    return {
        'pattern_count': len(positions),
        'pattern_positions': positions,
        'oscillations': oscillations,
        'balance_points': sum(1 for r in roots if r == 9),
    }


def find_sequence_matches(roots: Sequence[int]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Find runs of digital roots that reproduce the doubling cycle.

    Full matches are the complete 6-element cycle; partial matches are
    contiguous runs of 3 to 5 roots equal to any slice of the cycle.
    """
    cycle = list(DOUBLING_CYCLE)
    roots = list(roots)
    matches: Dict[str, List[Dict[str, Any]]] = {
        'doubling_matches': [],
        'partial_matches': [],
    }

    for i in range(len(roots) - len(cycle) + 1):
        if roots[i:i + len(cycle)] == cycle:
            matches['doubling_matches'].append({'start': i, 'end': i + len(cycle) - 1})

    for length in range(3, len(cycle)):
        slices = [cycle[j:j + length] for j in range(len(cycle) - length + 1)]
        for i in range(len(roots) - length + 1):
            window = roots[i:i + length]
            if window in slices:
                matches['partial_matches'].append({
                    'start': i,
                    'end': i + length - 1,
                    'length': length,
                    'sequence': window,
                })

    return matches


def shannon_entropy(frequency: Dict[int, int], total: int) -> float:
    """Shannon entropy (bits) of a root frequency table, rounded to 4 places."""
    if total <= 0:
        return 0.0
    entropy = 0.0
    for count in frequency.values():
        if count > 0:
            p = count / total
            entropy -= p * math.log2(p)
    return round(entropy, 4)


def root_statistics(roots: Sequence[int]) -> Dict[str, Any]:
    """Frequency table, percentage distribution and entropy of roots 1-9."""
    frequency = {r: 0 for r in range(1, 10)}
    for r in roots:
        if r in frequency:
            frequency[r] += 1

    total = len(roots)
    distribution = {
        r: (count / total * 100 if total else 0.0) for r, count in frequency.items()
    }
    return {
        'frequency': frequency,
        'distribution': distribution,
        'total_samples': total,
        'entropy': shannon_entropy(frequency, total),
    }


def cross_base_analysis(number: int, bases: Sequence[int] = (8, 9, 10)) -> Dict[str, Dict[str, Any]]:
    """
    Compare the digital root and doubling cycle of number across bases.

    A base-b digital root is number mod (b - 1) with the same zero
    convention as digital_root().
    """
    analysis = {}
    number = abs(int(number))
    for base in bases:
        modulus = base - 1
        if base == 9:
            root = digital_root(number)
            note = "Standard base-9 root"
        else:
            mod = number % modulus
            root = 0 if number == 0 else (modulus if mod == 0 else mod)
            note = f"Base-{base} modular arithmetic"
        analysis[f"base{base}"] = {
            'digital_root': root,
            'doubling_sequence': generate_sequence(1, 2, 9 if base == 9 else modulus, 10),
            'note': note,
        }
    return analysis


def analyze_prices(prices: Sequence[float]) -> Dict[str, Any]:
    """
    Root-level analysis of raw prices.

    Prices are converted to whole cents before taking the root so that
    decimals participate.
    """
    cents = [price_to_int(p * 100) for p in prices]
    roots = [digital_root(c) for c in cents]
    return {
        'digital_roots': roots,
        'pattern_numbers': detect_pattern_numbers(roots),
        'sequence_matches': find_sequence_matches(roots),
        'statistics': root_statistics(roots),
    }


def validate_mathematical_properties(samples: Iterable[int] = (123, 456, 789, 999, 1000)) -> Dict[str, Any]:
    """Self-check that the modular and iterative roots agree and the cycle is sane."""
    issues = []
    for n in samples:
        modular = digital_root(n)
        iterative = digital_root_iterative(n)
        if modular != iterative:
            issues.append(f"Digital root mismatch for {n}: modular={modular}, iterative={iterative}")

    cycle_ok = doubling_sequence(20) == list(DOUBLING_CYCLE) + [1]
    if not cycle_ok:
        issues.append("Doubling sequence generation failed")

    return {
        'digital_root_consistency': not any(i.startswith("Digital root") for i in issues),
        'sequence_generation': cycle_ok,
        'issues': issues,
    }
