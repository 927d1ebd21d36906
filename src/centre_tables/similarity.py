"""Column similarity scoring and the column matching question loop.

Two data sources often publish the same information under different column
names. Before diffing, each local column is offered the remote columns whose
values overlap with it, and the user picks the one that is really the same
column (or none). The loop is a pure state machine::

    state = RenameState.start(similarity_results(local, remote))
    while isinstance(step := next_question(state), Question):
        state = answer(state, pick(step))
    renamed_remote = remote.rename_columns(step.rename)
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .table import Table, normalize_value

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.2
NONE_CHOICE = "None"


@dataclass(frozen=True)
class Candidate:
    """A remote column that may hold the same data as a local column."""

    column: str
    score: float

    @property
    def label(self) -> str:
        return f"{self.column} (similarity score: {self.score:.2f})"


def inclusion(local_values: Iterable[object], remote_values: Iterable[object]) -> float:
    """Share of local rows whose distinct values also appear in the remote column.

    Returns:
        Number between 0 and 1; 0 if either column is empty
    """
    local_list = [normalize_value(v) for v in local_values]
    remote_set = {normalize_value(v) for v in remote_values}
    if not local_list or not remote_set:
        return 0.0
    shared = {v for v in local_list if v in remote_set}
    return len(shared) / len(local_list)


def similarity_results(
    local: Table, remote: Table, threshold: float = DEFAULT_THRESHOLD
) -> dict[str, list[Candidate]]:
    """Score every remote column against every local column.

    Args:
        local: Table whose column names are kept
        remote: Table whose columns may be renamed
        threshold: Minimum score (exclusive) for a remote column to be offered

    Returns:
        Local column name -> candidates sorted by decreasing score (ties keep
        remote column order)
    """
    if not 0 <= threshold <= 1:
        raise ValueError(f"Similarity threshold must be between 0 and 1, got {threshold}")

    results: dict[str, list[Candidate]] = {}
    remote_columns = [(name, remote.column(k)) for k, name in enumerate(remote.column_names())]
    for k, local_name in enumerate(local.column_names()):
        local_values = local.column(k)
        candidates = []
        for remote_name, remote_values in remote_columns:
            score = inclusion(local_values, remote_values)
            if score > threshold:
                candidates.append(Candidate(remote_name, score))
        candidates.sort(key=lambda c: c.score, reverse=True)
        results[local_name] = candidates
        logger.debug(f"{local_name}: {len(candidates)} candidate column(s)")
    return results


def remove_picked_columns(
    results: dict[str, list[Candidate]], picked: str
) -> dict[str, list[Candidate]]:
    """Drop an already-chosen remote column from every candidate list."""
    return {
        local_name: [c for c in candidates if c.column != picked]
        for local_name, candidates in results.items()
    }


@dataclass(frozen=True)
class Question:
    """Ask which remote column matches ``local_column``."""

    local_column: str
    candidates: tuple[Candidate, ...]

    @property
    def choices(self) -> list[str]:
        return [c.column for c in self.candidates] + [NONE_CHOICE]

    @property
    def message(self) -> str:
        return f'Choose which column is the same as the following column: "{self.local_column}"'


@dataclass(frozen=True)
class Done:
    """Loop finished; ``rename`` maps remote column name -> local column name."""

    rename: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RenameState:
    """Explicit state of the column matching loop."""

    pending: tuple[tuple[str, tuple[Candidate, ...]], ...]
    answers: tuple[tuple[str, str], ...] = ()

    @classmethod
    def start(cls, results: dict[str, list[Candidate]]) -> "RenameState":
        return cls(tuple((name, tuple(cands)) for name, cands in results.items()))


def next_question(state: RenameState) -> Question | Done:
    """Return the next question, skipping local columns without candidates."""
    for local_name, candidates in state.pending:
        if candidates:
            return Question(local_name, candidates)
    return Done({remote: local for local, remote in state.answers})


def answer(state: RenameState, choice: str | None) -> RenameState:
    """Record the answer to the current question and advance.

    Args:
        state: Current loop state
        choice: Chosen remote column name, or None / "None" for no match

    Raises:
        ValueError: If the loop is already done or the choice is not offered
    """
    question = next_question(state)
    if isinstance(question, Done):
        raise ValueError("No question left to answer")
    if choice == NONE_CHOICE:
        choice = None
    if choice is not None and choice not in question.choices:
        raise ValueError(f"{choice!r} is not a candidate for {question.local_column!r}")

    names = [name for name, _ in state.pending]
    remaining = state.pending[names.index(question.local_column) + 1 :]
    answers = state.answers
    if choice is not None:
        left = remove_picked_columns({name: list(cands) for name, cands in remaining}, choice)
        remaining = tuple((name, tuple(cands)) for name, cands in left.items())
        answers = answers + ((question.local_column, choice),)
    return RenameState(remaining, answers)
