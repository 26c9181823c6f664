"""
Interview variable completion engine.

A variable is *filled* when ``interview_data[id]`` is a string whose trimmed
value is non-empty; every other case (missing key, ``None``, whitespace,
non-string) is *empty*. The same rule drives completion display and the
selection of variables an AI fill may target.

``merge_generated`` is the only path by which generated values reach
``interview_data``. It never overwrites a value outside the empty set.
"""

from __future__ import annotations

from dataclasses import dataclass

from advertis.services.static_tables import InterviewVariable


def is_filled(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


@dataclass(frozen=True)
class CompletionSplit:
    empty: list[InterviewVariable]
    filled: list[InterviewVariable]

    @property
    def empty_ids(self) -> list[str]:
        return [v.id for v in self.empty]

    @property
    def filled_ids(self) -> list[str]:
        return [v.id for v in self.filled]

    @property
    def total(self) -> int:
        return len(self.empty) + len(self.filled)

    def to_dict(self) -> dict:
        total = self.total
        return {
            "empty": self.empty_ids,
            "filled": self.filled_ids,
            "total": total,
            "completion_pct": round(len(self.filled) * 100 / total) if total else 0,
        }


def split_by_completion(variables, interview_data: dict | None) -> CompletionSplit:
    """Partition ``variables`` (schema order kept) into empty and filled."""
    data = interview_data or {}
    empty, filled = [], []
    for var in variables:
        (filled if is_filled(data.get(var.id)) else empty).append(var)
    return CompletionSplit(empty=empty, filled=filled)


def merge_generated(interview_data: dict | None, generated, empty_ids) -> tuple[dict, list[str]]:
    """
    Merge generated values into a copy of ``interview_data``.

    A generated entry is accepted only if its key is in ``empty_ids`` and its
    value is a string that is non-empty after trimming; the trimmed value is
    stored. Everything else is dropped. Never raises.

    Returns:
        (merged, auto_filled_ids) with ids in the order they were accepted.
    """
    merged = dict(interview_data or {})
    accepted: list[str] = []
    if not isinstance(generated, dict):
        return merged, accepted

    targets = set(empty_ids or ())
    for key, value in generated.items():
        if key not in targets or not isinstance(value, str):
            continue
        cleaned = value.strip()
        if not cleaned:
            continue
        merged[key] = cleaned
        accepted.append(key)
    return merged, accepted


def count_filled(variables, interview_data: dict | None) -> int:
    data = interview_data or {}
    return sum(1 for var in variables if is_filled(data.get(var.id)))
