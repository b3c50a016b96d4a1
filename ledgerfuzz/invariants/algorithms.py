"""Pure checking algorithms behind the invariant rules.

Nothing here touches the ledger: each function takes already-decoded data
and returns ``Finding`` records (empty when the property holds), so the
rules stay thin and the algorithms are testable on plain dicts.
"""

from __future__ import annotations

import decimal
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Hashable, Iterable, Mapping

from ledgerfuzz.core.fixed_point import EXACT_PRECISION
from ledgerfuzz.core.tolerance import approx_equal_abs

U64_MAX = (1 << 64) - 1
TICK_BASE = Decimal("1.0001")


@dataclass(frozen=True)
class Finding:
    """One failed check: a message plus the storage keys involved."""
    message: str
    keys: tuple[Any, ...] = ()


# ── Bijections ───────────────────────────────────────────────────────────────


def check_bijection(
    forward: Mapping[Hashable, Hashable],
    reverse: Mapping[Hashable, Hashable],
    expected_size: int | None = None,
    *,
    domain: Iterable[Hashable] | None = None,
    forward_name: str = "forward",
    reverse_name: str = "reverse",
) -> list[Finding]:
    """Verify ``forward`` and ``reverse`` are exact inverses.

    Reports every mismatch, not just the first: size against
    ``expected_size``, key set against ``domain``, duplicate values on either
    side, differing value/key sets and point-wise inversion both ways.
    """
    findings: list[Finding] = []
    fwd, rev = forward_name, reverse_name

    if expected_size is not None:
        if len(forward) != expected_size:
            findings.append(Finding(f"{fwd} has {len(forward)} entries, expected {expected_size}"))
        if len(reverse) != expected_size:
            findings.append(Finding(f"{rev} has {len(reverse)} entries, expected {expected_size}"))

    if domain is not None:
        expected = set(domain)
        for name, found in ((fwd, set(forward)), (rev, set(reverse.values()))):
            for missing in sorted(expected - found, key=repr):
                findings.append(Finding(f"{name} is missing {missing!r}", (missing,)))
            for extra in sorted(found - expected, key=repr):
                findings.append(Finding(f"{name} has {extra!r} outside the expected range", (extra,)))

    for name, mapping in ((fwd, forward), (rev, reverse)):
        counts = Counter(mapping.values())
        for value, count in counts.items():
            if count > 1:
                holders = tuple(k for k, v in mapping.items() if v == value)
                findings.append(Finding(f"{name} maps {count} keys to {value!r}", holders))

    fwd_values, rev_keys = set(forward.values()), set(reverse)
    if fwd_values != rev_keys:
        findings.append(Finding(
            f"Value set of {fwd} differs from key set of {rev} "
            f"(only in {fwd}: {len(fwd_values - rev_keys)}, only in {rev}: {len(rev_keys - fwd_values)})"
        ))

    for key, value in forward.items():
        back = reverse.get(value)
        if back is None:
            findings.append(Finding(f"{fwd}({key!r}) -> {value!r} has no {rev} entry", (key, value)))
        elif back != key:
            findings.append(Finding(
                f"{fwd}({key!r}) -> {value!r} but {rev}({value!r}) -> {back!r}", (key, value),
            ))
    for key, value in reverse.items():
        back = forward.get(value)
        if back is None:
            findings.append(Finding(f"{rev}({key!r}) -> {value!r} has no {fwd} entry", (key, value)))
        elif back != key:
            findings.append(Finding(
                f"{rev}({key!r}) -> {value!r} but {fwd}({value!r}) -> {back!r}", (key, value),
            ))
    return findings


# ── Sums and bounds ──────────────────────────────────────────────────────────


def check_conservation(
    parts: Iterable[int | Decimal],
    aggregate: int | Decimal,
    pending: int | Decimal = 0,
    tolerance: int | Decimal | None = None,
    *,
    label: str = "aggregate",
) -> Finding | None:
    """``sum(parts) + pending`` must equal ``aggregate`` (exactly, or within ``tolerance``)."""
    total = sum(parts, start=type(aggregate)(0)) + pending
    if tolerance is None:
        holds = total == aggregate
    else:
        holds = approx_equal_abs(total, aggregate, tolerance)
    if holds:
        return None
    return Finding(f"sum of parts {total - pending} + pending {pending} = {total} != {label} {aggregate}")


def check_bound(value: int, maximum: int, *, label: str = "value", bound_label: str = "maximum") -> Finding | None:
    if value <= maximum:
        return None
    return Finding(f"{label} {value} exceeds {bound_label} {maximum}")


# ── Graphs ───────────────────────────────────────────────────────────────────

_WHITE, _GRAY, _BLACK = 0, 1, 2


def find_cycles(adjacency: Mapping[Hashable, Iterable[Hashable]]) -> list[list[Hashable]]:
    """Every back edge of a depth-first walk, as a closed path.

    Iterative three-colour DFS, so deep delegation chains cannot hit the
    recursion limit. A self-loop ``a -> a`` is reported as ``[a, a]``.
    """
    nodes: dict[Hashable, None] = dict.fromkeys(adjacency)
    for targets in adjacency.values():
        for t in targets:
            nodes.setdefault(t, None)

    colour: dict[Hashable, int] = {}
    cycles: list[list[Hashable]] = []

    for root in nodes:
        if colour.get(root, _WHITE) != _WHITE:
            continue
        colour[root] = _GRAY
        path = [root]
        stack = [(root, iter(adjacency.get(root, ())))]

        while stack:
            node, children = stack[-1]
            descended = False
            for child in children:
                state = colour.get(child, _WHITE)
                if state == _WHITE:
                    colour[child] = _GRAY
                    path.append(child)
                    stack.append((child, iter(adjacency.get(child, ()))))
                    descended = True
                    break
                if state == _GRAY:
                    start = path.index(child)
                    cycles.append(path[start:] + [child])
            if not descended:
                colour[node] = _BLACK
                path.pop()
                stack.pop()

    return cycles


def check_edge_weight_sums(
    edges: Mapping[Hashable, Iterable[int]],
    scale: int = U64_MAX,
) -> list[Finding]:
    """Each non-empty weight list must sum into ``(0, scale]``."""
    findings = []
    for owner, weights in edges.items():
        weights = list(weights)
        if not weights:
            continue
        total = sum(weights)
        if total <= 0:
            findings.append(Finding(f"{owner!r} has edges with zero total weight", (owner,)))
        elif total > scale:
            findings.append(Finding(f"{owner!r} edge weights sum to {total} > {scale}", (owner,)))
    return findings


def missing_edges(
    source: Iterable[tuple[Hashable, Hashable]],
    target: Iterable[tuple[Hashable, Hashable]],
) -> list[tuple[Hashable, Hashable]]:
    """Edges of ``source`` absent from ``target`` (one-way implication)."""
    present = set(target)
    return [edge for edge in source if edge not in present]


# ── Concentrated-liquidity math ──────────────────────────────────────────────


def tick_to_sqrt_price(tick: int) -> Decimal:
    """``sqrt(1.0001 ** tick)``."""
    with decimal.localcontext() as ctx:
        ctx.prec = EXACT_PRECISION
        return TICK_BASE ** (Decimal(tick) / 2)


def position_reserves(
    liquidity: int,
    tick_low: int,
    tick_high: int,
    sqrt_price: Decimal,
) -> tuple[Decimal, Decimal]:
    """Implied ``(tao, alpha)`` held by a range position at ``sqrt_price``.

    The current sqrt price is clamped into the position's range, so a range
    entirely above the price is all alpha and one entirely below is all TAO.
    """
    if tick_low >= tick_high:
        raise ValueError(f"Empty tick range [{tick_low}, {tick_high}]")
    with decimal.localcontext() as ctx:
        ctx.prec = EXACT_PRECISION
        sqrt_low = tick_to_sqrt_price(tick_low)
        sqrt_high = tick_to_sqrt_price(tick_high)
        current = min(max(Decimal(sqrt_price), sqrt_low), sqrt_high)
        liq = Decimal(liquidity)
        tao = liq * (current - sqrt_low)
        alpha = liq * (sqrt_high - current) / (current * sqrt_high)
        return tao, alpha
