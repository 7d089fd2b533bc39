"""Human-readable explanations of resolution failures.

``explain`` walks the derivation DAG below the failing incompatibility and
emits one sentence per resolution step, leaves first, ending with
"version solving failed". An incompatibility that is reached through more
than one path is explained once, given a line number, and referred to by
that number afterwards, so the output never repeats a sub-explanation.

Example for two top-level requirements that pin different versions of
``b``::

    Because a depends on b ==1.0 and c depends on b ==2.0, a is
    incompatible with c.
    And because root depends on a and root depends on c, version solving
    failed.

This module only relies on the shape of incompatibilities (``id``,
``terms``, ``cause.kind``), so it does not import the solver.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class ExplanationLine:
    """One line of an explanation.

    Attributes:
        text: The sentence ("" for a paragraph break).
        number: Line number when later lines refer back to this one.
        padding: Width reserved for line numbers, for alignment.
    """

    text: str
    number: Optional[int] = None
    padding: int = 0

    def __str__(self) -> str:
        if not self.text:
            return ""
        prefix = f"({self.number})" if self.number is not None else ""
        return prefix.ljust(self.padding) + self.text


# ---------------------------------------------------------------------------
# Describing single incompatibilities
# ---------------------------------------------------------------------------


def _kind(incompatibility: Any) -> str:
    return incompatibility.cause.kind


def _is_derived(incompatibility: Any) -> bool:
    return _kind(incompatibility) == "conflict"


def _terse(term: Any, allow_every: bool = False) -> str:
    if allow_every and term.range.is_full() and not term.subject.is_root:
        return f"every version of {term.subject}"
    return term.describe()


def _single(incompatibility: Any, positive: bool) -> Any:
    found = None
    for term in incompatibility.terms:
        if term.positive != positive:
            continue
        if found is not None:
            return None
        found = term
    return found


def _verb(incompatibility: Any) -> str:
    return "depends on" if _kind(incompatibility) == "dependency" else "requires"


def describe(incompatibility: Any) -> str:
    """Render one incompatibility as a clause (no trailing period)."""
    kind = _kind(incompatibility)
    terms = incompatibility.terms

    if kind == "dependency":
        depender = terms[0]
        if len(terms) == 1:
            # A version depending on a range of itself that excludes it.
            dependency = incompatibility.cause.dependency
            return f"{_terse(depender)} depends on {dependency.subject} {dependency.range}"
        return f"{_terse(depender, allow_every=True)} depends on {_terse(terms[-1])}"
    if kind == "requires_python":
        cause = incompatibility.cause
        return (
            f"{_terse(terms[0], allow_every=True)} requires Python "
            f"{cause.requires_python} (the target Python is {cause.python})"
        )
    if kind == "no_versions":
        return f"no versions of {terms[0].subject} match {terms[0].range}"
    if kind == "not_found":
        return f"{terms[0].subject} doesn't exist ({incompatibility.cause.reason})"
    if kind == "root":
        return f"{terms[0].subject} is selected"
    if incompatibility.is_failure:
        return "version solving failed"

    if len(terms) == 1:
        term = terms[0]
        state = "forbidden" if term.positive else "required"
        return f"{_terse(term)} is {state}"

    if len(terms) == 2:
        first, second = terms
        if first.positive and second.positive:
            return f"{_terse(first)} is incompatible with {_terse(second)}"
        if not first.positive and not second.positive:
            return f"either {_terse(first)} or {_terse(second)}"

    positive = [_terse(t) for t in terms if t.positive]
    negative = [_terse(t) for t in terms if not t.positive]
    if positive and negative:
        if len(positive) == 1:
            term = _single(incompatibility, True)
            return f"{_terse(term, allow_every=True)} requires {' or '.join(negative)}"
        return f"if {' and '.join(positive)} then {' or '.join(negative)}"
    if positive:
        return f"one of {' or '.join(positive)} must be false"
    return f"one of {' or '.join(negative)} must be true"


def _line(number: int | None) -> str:
    return f" ({number})" if number is not None else ""


def _requires_both(first: Any, second: Any, first_line, second_line) -> str | None:
    if len(first.terms) == 1 or len(second.terms) == 1:
        return None
    first_positive = _single(first, True)
    second_positive = _single(second, True)
    if first_positive is None or second_positive is None:
        return None
    if first_positive != second_positive:
        return None

    first_negatives = " or ".join(_terse(t) for t in first.terms if not t.positive)
    second_negatives = " or ".join(_terse(t) for t in second.terms if not t.positive)
    both_dependencies = _kind(first) == "dependency" and _kind(second) == "dependency"
    verb = "depends on" if both_dependencies else "requires"
    return (
        f"{_terse(first_positive, allow_every=True)} {verb} both "
        f"{first_negatives}{_line(first_line)} and "
        f"{second_negatives}{_line(second_line)}"
    )


def _requires_through(first: Any, second: Any, first_line, second_line) -> str | None:
    if len(first.terms) == 1 or len(second.terms) == 1:
        return None
    first_negative = _single(first, False)
    second_negative = _single(second, False)
    if first_negative is None and second_negative is None:
        return None
    first_positive = _single(first, True)
    second_positive = _single(second, True)

    if (
        first_negative is not None
        and second_positive is not None
        and first_negative.subject == second_positive.subject
        and first_negative.inverse.satisfies(second_positive)
    ):
        prior, prior_negative, prior_line = first, first_negative, first_line
        latter, latter_line = second, second_line
    elif (
        second_negative is not None
        and first_positive is not None
        and second_negative.subject == first_positive.subject
        and second_negative.inverse.satisfies(first_positive)
    ):
        prior, prior_negative, prior_line = second, second_negative, second_line
        latter, latter_line = first, first_line
    else:
        return None

    prior_positives = [t for t in prior.terms if t.positive]
    if not prior_positives:
        return None
    if len(prior_positives) > 1:
        head = f"if {' or '.join(_terse(t) for t in prior_positives)} then "
    else:
        head = f"{_terse(prior_positives[0], allow_every=True)} {_verb(prior)} "

    latter_negatives = " or ".join(_terse(t) for t in latter.terms if not t.positive)
    return (
        f"{head}{_terse(prior_negative)}{_line(prior_line)} which "
        f"{_verb(latter)} {latter_negatives}{_line(latter_line)}"
    )


def _requires_forbidden(first: Any, second: Any, first_line, second_line) -> str | None:
    if len(first.terms) != 1 and len(second.terms) != 1:
        return None
    if len(first.terms) == 1:
        prior, prior_line, latter, latter_line = second, second_line, first, first_line
    else:
        prior, prior_line, latter, latter_line = first, first_line, second, second_line

    negative = _single(prior, False)
    if negative is None:
        return None
    if not negative.inverse.satisfies(latter.terms[0]):
        return None
    positives = [t for t in prior.terms if t.positive]
    if not positives:
        return None

    if len(positives) > 1:
        head = f"if {' or '.join(_terse(t) for t in positives)} then "
    else:
        head = f"{_terse(positives[0], allow_every=True)} {_verb(prior)} "

    kind = _kind(latter)
    if kind == "no_versions":
        tail = " which doesn't match any versions"
    elif kind == "not_found":
        tail = f" which doesn't exist ({latter.cause.reason})"
    elif kind == "requires_python":
        tail = f" which requires Python {latter.cause.requires_python}"
    else:
        tail = " which is forbidden"
    return f"{head}{_terse(latter.terms[0])}{_line(prior_line)}{tail}{_line(latter_line)}"


def describe_pair(
    first: Any,
    second: Any,
    first_line: int | None = None,
    second_line: int | None = None,
) -> str:
    """Render "first and second" as a single clause, merging where possible."""
    for attempt in (_requires_both, _requires_through, _requires_forbidden):
        text = attempt(first, second, first_line, second_line)
        if text is not None:
            return text
    return (
        f"{describe(first)}{_line(first_line)} and "
        f"{describe(second)}{_line(second_line)}"
    )


# ---------------------------------------------------------------------------
# Unfolding the derivation DAG
# ---------------------------------------------------------------------------


class _Writer:
    def __init__(self, store: Any, root_id: int) -> None:
        self._store = store
        self._root = store.get(root_id)
        self._derivations: dict[int, int] = {}
        self._lines: list[tuple[str, int | None]] = []
        self._line_numbers: dict[int, int] = {}
        self._count_derivations()

    def _count_derivations(self) -> None:
        stack = [self._root.id]
        while stack:
            current = stack.pop()
            if current in self._derivations:
                self._derivations[current] += 1
                continue
            self._derivations[current] = 1
            cause = self._store.get(current).cause
            if cause.kind == "conflict":
                stack.append(cause.other)
                stack.append(cause.conflict)

    def write(self) -> list[ExplanationLine]:
        if _is_derived(self._root):
            self._visit(self._root)
        else:
            self._write(self._root, f"Because {describe(self._root)}, version solving failed.")

        padding = 0
        if self._line_numbers:
            padding = len(f"({max(self._line_numbers.values())}) ")

        lines: list[ExplanationLine] = []
        last_empty = False
        for text, number in self._lines:
            if not text:
                if not last_empty:
                    lines.append(ExplanationLine(""))
                last_empty = True
                continue
            last_empty = False
            lines.append(ExplanationLine(text, number, padding))
        return lines

    def _write(self, incompatibility: Any, message: str, numbered: bool = False) -> None:
        if numbered:
            number = len(self._line_numbers) + 1
            self._line_numbers[incompatibility.id] = number
            self._lines.append((message, number))
        else:
            self._lines.append((message, None))

    def _visit(self, incompatibility: Any, conclusion: bool = False) -> None:
        numbered = conclusion or self._derivations[incompatibility.id] > 1
        conjunction = "So," if numbered else "And"
        text = describe(incompatibility)

        cause = incompatibility.cause
        conflict = self._store.get(cause.conflict)
        other = self._store.get(cause.other)

        if _is_derived(conflict) and _is_derived(other):
            conflict_line = self._line_numbers.get(conflict.id)
            other_line = self._line_numbers.get(other.id)
            if conflict_line is not None and other_line is not None:
                pair = describe_pair(conflict, other, conflict_line, other_line)
                self._write(incompatibility, f"Because {pair}, {text}.", numbered)
            elif conflict_line is not None or other_line is not None:
                if conflict_line is not None:
                    with_line, without_line, line = conflict, other, conflict_line
                else:
                    with_line, without_line, line = other, conflict, other_line
                self._visit(without_line)
                self._write(
                    incompatibility,
                    f"{conjunction} because {describe(with_line)} ({line}), {text}.",
                    numbered,
                )
            else:
                single_conflict = self._is_single_line(conflict)
                single_other = self._is_single_line(other)
                if single_conflict or single_other:
                    first = conflict if single_other else other
                    second = other if single_other else conflict
                    self._visit(first)
                    self._visit(second)
                    self._write(incompatibility, f"Thus, {text}.", numbered)
                else:
                    self._visit(conflict, conclusion=True)
                    self._lines.append(("", None))
                    self._visit(other)
                    self._write(
                        incompatibility,
                        f"{conjunction} because {describe(conflict)} "
                        f"({self._line_numbers[conflict.id]}), {text}.",
                        numbered,
                    )
        elif _is_derived(conflict) or _is_derived(other):
            derived = conflict if _is_derived(conflict) else other
            external = other if _is_derived(conflict) else conflict
            derived_line = self._line_numbers.get(derived.id)
            if derived_line is not None:
                pair = describe_pair(external, derived, None, derived_line)
                self._write(incompatibility, f"Because {pair}, {text}.", numbered)
            elif self._is_collapsible(derived):
                inner = derived.cause
                inner_conflict = self._store.get(inner.conflict)
                inner_other = self._store.get(inner.other)
                collapsed_derived = inner_conflict if _is_derived(inner_conflict) else inner_other
                collapsed_external = inner_other if _is_derived(inner_conflict) else inner_conflict
                self._visit(collapsed_derived)
                pair = describe_pair(collapsed_external, external)
                self._write(
                    incompatibility, f"{conjunction} because {pair}, {text}.", numbered
                )
            else:
                self._visit(derived)
                self._write(
                    incompatibility,
                    f"{conjunction} because {describe(external)}, {text}.",
                    numbered,
                )
        else:
            pair = describe_pair(conflict, other)
            self._write(incompatibility, f"Because {pair}, {text}.", numbered)

    def _is_single_line(self, incompatibility: Any) -> bool:
        cause = incompatibility.cause
        return not _is_derived(self._store.get(cause.conflict)) and not _is_derived(
            self._store.get(cause.other)
        )

    def _is_collapsible(self, incompatibility: Any) -> bool:
        if self._derivations[incompatibility.id] > 1:
            return False
        cause = incompatibility.cause
        conflict = self._store.get(cause.conflict)
        other = self._store.get(cause.other)
        if _is_derived(conflict) == _is_derived(other):
            return False
        complex_ = conflict if _is_derived(conflict) else other
        return complex_.id not in self._line_numbers


def explain(store: Any, failure_id: int) -> list[ExplanationLine]:
    """Unfold the derivation of ``failure_id`` into ordered explanation lines.

    Args:
        store: The ``IncompatibilityStore`` the failure was derived in.
        failure_id: Id of the incompatibility that ruled out the root.

    Returns:
        Lines in presentation order. Incompatibilities reached more than
        once carry a line number and are referenced, not repeated.
    """
    return _Writer(store, failure_id).write()


def collect_hints(store: Any, failure_id: int) -> list[str]:
    """Distinct hints attached to missing-package facts below ``failure_id``."""
    hints: list[str] = []
    seen: set[int] = set()
    stack = [failure_id]
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        cause = store.get(current).cause
        if cause.kind == "conflict":
            stack.append(cause.other)
            stack.append(cause.conflict)
        elif cause.kind == "not_found" and cause.hint and cause.hint not in hints:
            hints.append(cause.hint)
    return hints
