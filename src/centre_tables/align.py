"""Row and column alignment between two tables, or three via a common ancestor.

Columns are matched by exact name. Rows are matched in two passes:

1. Anchors: rows whose fingerprint (normalized values of the matched
   columns) is identical on both sides. In ordered mode the anchors come from
   ``difflib.SequenceMatcher`` and never cross; in unordered mode equal
   fingerprints are paired by hash in original order.
2. Refinement: rows left between two anchors are paired when they share a
   value in an identifying column (non-empty and unique on both sides of the
   gap), or failing that with the most similar nearby candidate. A pair is
   only accepted when at least half of the matched columns hold equal values,
   so an edited row shows up as modified rather than deleted plus inserted.

Duplicate rows: in ordered mode the match extending the longest run of equal
rows wins, ties going to the earliest row. In unordered mode duplicates are
paired first-to-first.
"""

import difflib
import logging
from bisect import bisect_left, bisect_right
from collections import defaultdict, deque
from typing import NamedTuple, Sequence

from .models import CompareFlags
from .table import Table, normalize_value

logger = logging.getLogger(__name__)

# Candidates examined per row when pairing by similarity
SIMILARITY_LOOKAHEAD = 32

Fingerprint = tuple[str, ...]


class Unit(NamedTuple):
    """One position in a 2-way alignment; None marks an absent side."""

    a: int | None
    b: int | None


class Unit3(NamedTuple):
    """One position in a 3-way alignment; None marks an absent side."""

    ancestor: int | None
    local: int | None
    remote: int | None


def match_columns(names_a: Sequence[str], names_b: Sequence[str]) -> dict[int, int]:
    """Match column indices of A to B by exact name.

    Repeated names are paired in order: the k-th column called ``x`` in A
    matches the k-th column called ``x`` in B.
    """
    positions: dict[str, list[int]] = defaultdict(list)
    for j, name in enumerate(names_b):
        positions[name].append(j)

    used: dict[str, int] = defaultdict(int)
    result: dict[int, int] = {}
    for i, name in enumerate(names_a):
        candidates = positions.get(name)
        if not candidates:
            continue
        k = used[name]
        if k < len(candidates):
            result[i] = candidates[k]
            used[name] = k + 1
    return result


def merge_order(count_a: int, count_b: int, b_to_a: dict[int, int]) -> list[Unit]:
    """Interleave two matched sequences into display order.

    B's order drives the result. Unmatched A items are emitted just before
    the first B item matched to a later A item, so deletions stay next to
    their original neighbours.
    """
    matched_a = set(b_to_a.values())
    units: list[Unit] = []
    next_a = 0

    for j in range(count_b):
        i = b_to_a.get(j)
        if i is None:
            units.append(Unit(None, j))
            continue
        while next_a < i:
            if next_a not in matched_a:
                units.append(Unit(next_a, None))
            next_a += 1
        units.append(Unit(i, j))
        next_a = max(next_a, i + 1)

    while next_a < count_a:
        if next_a not in matched_a:
            units.append(Unit(next_a, None))
        next_a += 1

    return units


class Alignment:
    """Correspondence between rows and columns of table ``a`` and table ``b``.

    Attributes:
        a: Left-hand ("old") table
        b: Right-hand ("new") table
        column_map: Column index in a -> column index in b
        row_map: Row index in a -> row index in b
        ordered: Whether rows were matched preserving relative order
    """

    def __init__(
        self,
        a: Table,
        b: Table,
        column_map: dict[int, int],
        row_map: dict[int, int],
        ordered: bool = True,
    ):
        self.a = a
        self.b = b
        self.column_map = column_map
        self.row_map = row_map
        self.ordered = ordered

    def row_units(self) -> list[Unit]:
        """Rows in display order (B order, deletions kept near their neighbours)."""
        b_to_a = {j: i for i, j in self.row_map.items()}
        return merge_order(self.a.row_count(), self.b.row_count(), b_to_a)

    def column_units(self) -> list[Unit]:
        """Columns in display order."""
        b_to_a = {j: i for i, j in self.column_map.items()}
        return merge_order(self.a.column_count(), self.b.column_count(), b_to_a)

    def matched_rows(self) -> list[Unit]:
        return [Unit(i, j) for i, j in sorted(self.row_map.items())]

    def inserted_rows(self) -> list[int]:
        """Rows of b with no counterpart in a."""
        matched = set(self.row_map.values())
        return [j for j in range(self.b.row_count()) if j not in matched]

    def deleted_rows(self) -> list[int]:
        """Rows of a with no counterpart in b."""
        return [i for i in range(self.a.row_count()) if i not in self.row_map]

    def inserted_columns(self) -> list[int]:
        matched = set(self.column_map.values())
        return [j for j in range(self.b.column_count()) if j not in matched]

    def deleted_columns(self) -> list[int]:
        return [i for i in range(self.a.column_count()) if i not in self.column_map]

    def is_degenerate(self) -> bool:
        """True when no rows could be matched because a side has no rows."""
        return self.a.row_count() == 0 or self.b.row_count() == 0

    def __repr__(self) -> str:
        return (
            f"Alignment(rows_matched={len(self.row_map)}, "
            f"columns_matched={len(self.column_map)}, ordered={self.ordered})"
        )


class Alignment3:
    """Three-way alignment anchored on the ancestor's rows and columns.

    Attributes:
        ancestor: Common base table
        local: Local table (the one changes are merged into)
        remote: Remote table (the source of incoming changes)
        local_alignment: 2-way alignment ancestor -> local
        remote_alignment: 2-way alignment ancestor -> remote
    """

    def __init__(
        self,
        ancestor: Table,
        local: Table,
        remote: Table,
        local_alignment: Alignment,
        remote_alignment: Alignment,
        row_units: list[Unit3],
        column_units: list[Unit3],
    ):
        self.ancestor = ancestor
        self.local = local
        self.remote = remote
        self.local_alignment = local_alignment
        self.remote_alignment = remote_alignment
        self._row_units = row_units
        self._column_units = column_units

    @property
    def ordered(self) -> bool:
        return self.local_alignment.ordered

    def row_units(self) -> list[Unit3]:
        """Rows in local order, with remote-only rows after their remote predecessor."""
        return list(self._row_units)

    def column_units(self) -> list[Unit3]:
        return list(self._column_units)

    def __repr__(self) -> str:
        return f"Alignment3(rows={len(self._row_units)}, columns={len(self._column_units)})"


def _fingerprints(table: Table, columns: list[int]) -> list[Fingerprint]:
    return [tuple(normalize_value(row[c]) for c in columns) for row in table.rows()]


def _score(fp_a: Fingerprint, fp_b: Fingerprint) -> int:
    return sum(1 for x, y in zip(fp_a, fp_b) if x == y)


def _ordered_anchors(fp_a: list[Fingerprint], fp_b: list[Fingerprint]) -> dict[int, int]:
    matcher = difflib.SequenceMatcher(None, fp_a, fp_b, autojunk=False)
    pairs: dict[int, int] = {}
    for block in matcher.get_matching_blocks():
        for k in range(block.size):
            pairs[block.a + k] = block.b + k
    return pairs


def _unordered_anchors(fp_a: list[Fingerprint], fp_b: list[Fingerprint]) -> dict[int, int]:
    queues: dict[Fingerprint, deque[int]] = defaultdict(deque)
    for j, fp in enumerate(fp_b):
        queues[fp].append(j)

    pairs: dict[int, int] = {}
    for i, fp in enumerate(fp_a):
        queue = queues.get(fp)
        if queue:
            pairs[i] = queue.popleft()
    return pairs


def _longest_increasing(pairs: dict[int, int]) -> dict[int, int]:
    """Keep the largest subset of pairs whose b indices increase with a."""
    items = sorted(pairs.items())
    if not items:
        return {}

    tails: list[int] = []  # smallest b ending a run of each length
    tail_index: list[int] = []
    previous = [-1] * len(items)
    for k, (_, b) in enumerate(items):
        pos = bisect_left(tails, b)
        if pos == len(tails):
            tails.append(b)
            tail_index.append(k)
        else:
            tails[pos] = b
            tail_index[pos] = k
        previous[k] = tail_index[pos - 1] if pos > 0 else -1

    kept: dict[int, int] = {}
    k = tail_index[-1]
    while k >= 0:
        a, b = items[k]
        kept[a] = b
        k = previous[k]
    return kept


def _key_pairs(
    rows_a: list[int],
    rows_b: list[int],
    fp_a: list[Fingerprint],
    fp_b: list[Fingerprint],
    required: int,
) -> dict[int, int]:
    """Pair rows sharing a value that is unique within the gap on both sides."""
    width = len(fp_a[rows_a[0]])
    pairs: dict[int, int] = {}
    used_b: set[int] = set()

    for col in range(width):
        where_a: dict[str, list[int]] = defaultdict(list)
        where_b: dict[str, list[int]] = defaultdict(list)
        for i in rows_a:
            if i not in pairs and fp_a[i][col]:
                where_a[fp_a[i][col]].append(i)
        for j in rows_b:
            if j not in used_b and fp_b[j][col]:
                where_b[fp_b[j][col]].append(j)

        for value, found_a in where_a.items():
            found_b = where_b.get(value)
            if len(found_a) != 1 or not found_b or len(found_b) != 1:
                continue
            i, j = found_a[0], found_b[0]
            if _score(fp_a[i], fp_b[j]) >= required:
                pairs[i] = j
                used_b.add(j)

    return pairs


def _similar_pairs(
    rows_a: list[int],
    rows_b: list[int],
    fp_a: list[Fingerprint],
    fp_b: list[Fingerprint],
    required: int,
    ordered: bool,
) -> dict[int, int]:
    """Greedily pair each A row with its most similar nearby B row."""
    pairs: dict[int, int] = {}
    remaining = list(rows_b)
    start = 0

    for i in rows_a:
        best_k = -1
        best_score = required - 1
        stop = min(len(remaining), start + SIMILARITY_LOOKAHEAD)
        for k in range(start, stop):
            score = _score(fp_a[i], fp_b[remaining[k]])
            if score > best_score:
                best_k, best_score = k, score
        if best_k < 0:
            continue
        pairs[i] = remaining[best_k]
        if ordered:
            start = best_k + 1
        else:
            remaining.pop(best_k)

    return pairs


def _refine(
    rows_a: list[int],
    rows_b: list[int],
    fp_a: list[Fingerprint],
    fp_b: list[Fingerprint],
    ordered: bool,
) -> dict[int, int]:
    """Pair up modified rows left unmatched between anchors."""
    if not rows_a or not rows_b:
        return {}
    width = len(fp_a[rows_a[0]])
    if width == 0:
        return {}
    required = (width + 1) // 2

    pairs = _key_pairs(rows_a, rows_b, fp_a, fp_b, required)

    if not ordered:
        used_b = set(pairs.values())
        rest_a = [i for i in rows_a if i not in pairs]
        rest_b = [j for j in rows_b if j not in used_b]
        pairs.update(_similar_pairs(rest_a, rest_b, fp_a, fp_b, required, ordered=False))
        return pairs

    pairs = _longest_increasing(pairs)
    result = dict(pairs)
    bounds = [(-1, -1)] + sorted(pairs.items()) + [(rows_a[-1] + 1, rows_b[-1] + 1)]
    for (a0, b0), (a1, b1) in zip(bounds, bounds[1:]):
        sub_a = rows_a[bisect_right(rows_a, a0) : bisect_left(rows_a, a1)]
        sub_b = rows_b[bisect_right(rows_b, b0) : bisect_left(rows_b, b1)]
        if sub_a and sub_b:
            result.update(_similar_pairs(sub_a, sub_b, fp_a, fp_b, required, ordered=True))
    return result


def align(a: Table, b: Table, flags: CompareFlags | None = None) -> Alignment:
    """Compute a 2-way alignment between table ``a`` (old) and ``b`` (new).

    Args:
        a: Left-hand table
        b: Right-hand table
        flags: Comparison options; only ``ordered`` affects matching

    Returns:
        Alignment. If either table has no rows the alignment has no row
        matches and every row of the other side is an insertion/deletion.
    """
    flags = flags or CompareFlags()
    column_map = match_columns(a.column_names(), b.column_names())

    if a.row_count() == 0 or b.row_count() == 0:
        logger.debug("Empty table in alignment (%d vs %d rows)", a.row_count(), b.row_count())
        return Alignment(a, b, column_map, {}, flags.ordered)

    matched_columns = sorted(column_map.items())
    fp_a = _fingerprints(a, [i for i, _ in matched_columns])
    fp_b = _fingerprints(b, [j for _, j in matched_columns])

    if flags.ordered:
        anchors = _ordered_anchors(fp_a, fp_b)
        row_map = dict(anchors)
        bounds = [(-1, -1)] + sorted(anchors.items()) + [(a.row_count(), b.row_count())]
        for (a0, b0), (a1, b1) in zip(bounds, bounds[1:]):
            if a1 - a0 > 1 and b1 - b0 > 1:
                row_map.update(
                    _refine(list(range(a0 + 1, a1)), list(range(b0 + 1, b1)), fp_a, fp_b, True)
                )
    else:
        anchors = _unordered_anchors(fp_a, fp_b)
        row_map = dict(anchors)
        used_b = set(anchors.values())
        row_map.update(
            _refine(
                [i for i in range(a.row_count()) if i not in anchors],
                [j for j in range(b.row_count()) if j not in used_b],
                fp_a,
                fp_b,
                False,
            )
        )

    logger.debug(
        "Aligned %d/%d rows (%d exact), %d/%d columns",
        len(row_map),
        a.row_count(),
        len(anchors),
        len(column_map),
        a.column_count(),
    )
    return Alignment(a, b, column_map, row_map, flags.ordered)


def _compose(
    base_units: list[Unit],
    to_remote: dict[int, int],
    coalesced: dict[int, int],
    remote_count: int,
) -> list[Unit3]:
    """Attach remote indices to ancestor/local units and place remote-only items.

    Args:
        base_units: (ancestor, local) units in display order
        to_remote: Ancestor index -> remote index
        coalesced: Local-inserted index -> identical remote-inserted index
        remote_count: Number of remote items
    """
    placed: dict[int, int] = {}
    base: list[Unit3] = []
    for k, (ancestor, local) in enumerate(base_units):
        if ancestor is not None:
            remote = to_remote.get(ancestor)
        else:
            remote = coalesced.get(local)
        base.append(Unit3(ancestor, local, remote))
        if remote is not None:
            placed[remote] = k

    # Remote-only items follow the nearest preceding remote item already placed
    extras: dict[int, list[int]] = defaultdict(list)
    anchor = -1
    for r in range(remote_count):
        if r in placed:
            anchor = placed[r]
        else:
            extras[anchor].append(r)

    units = [Unit3(None, None, r) for r in extras.get(-1, [])]
    for k, unit in enumerate(base):
        units.append(unit)
        units.extend(Unit3(None, None, r) for r in extras.get(k, []))
    return units


def _coalesce_rows(local: Table, remote: Table, rows_l: list[int], rows_r: list[int]):
    """Pair rows inserted on both sides whose common-column values are identical."""
    columns = sorted(match_columns(local.column_names(), remote.column_names()).items())
    fp_l = _fingerprints(local, [i for i, _ in columns])
    fp_r = _fingerprints(remote, [j for _, j in columns])

    queues: dict[Fingerprint, deque[int]] = defaultdict(deque)
    for r in rows_r:
        queues[fp_r[r]].append(r)

    pairs: dict[int, int] = {}
    for row in rows_l:
        queue = queues.get(fp_l[row])
        if queue:
            pairs[row] = queue.popleft()
    return pairs


def align3(
    ancestor: Table, local: Table, remote: Table, flags: CompareFlags | None = None
) -> Alignment3:
    """Compute a 3-way alignment through the ancestor's row and column identity.

    ``align(ancestor, local)`` and ``align(ancestor, remote)`` are computed
    independently and composed. Rows inserted on both sides with identical
    fingerprints (and columns inserted on both sides with the same name) are
    coalesced into a single unit; other insertions stay separate.
    """
    flags = flags or CompareFlags()
    local_alignment = align(ancestor, local, flags)
    remote_alignment = align(ancestor, remote, flags)

    inserted_l = local_alignment.inserted_rows()
    inserted_r = remote_alignment.inserted_rows()
    row_pairs = _coalesce_rows(local, remote, inserted_l, inserted_r) if inserted_l else {}

    columns_l = local_alignment.inserted_columns()
    columns_r = remote_alignment.inserted_columns()
    column_pairs = {
        columns_l[i]: columns_r[j]
        for i, j in match_columns(
            [local.column_names()[c] for c in columns_l],
            [remote.column_names()[c] for c in columns_r],
        ).items()
    }

    row_units = _compose(
        local_alignment.row_units(), remote_alignment.row_map, row_pairs, remote.row_count()
    )
    column_units = _compose(
        local_alignment.column_units(),
        remote_alignment.column_map,
        column_pairs,
        remote.column_count(),
    )

    logger.debug(
        "3-way alignment: %d row units (%d coalesced insertions), %d column units",
        len(row_units),
        len(row_pairs),
        len(column_units),
    )
    return Alignment3(
        ancestor, local, remote, local_alignment, remote_alignment, row_units, column_units
    )
