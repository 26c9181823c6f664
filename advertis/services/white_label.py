"""
White-label transposition.

Maps internal methodology vocabulary to client-facing labels for
non-internal roles. Internal roles (ADMIN, OPERATOR) always see the raw
label. Unmapped labels pass through unchanged.

The mapping must not contain any output value that is also a key; this is
checked at construction so that applying ``transform`` twice never maps a
label a second time.
"""

import logging

from advertis.services.roles import is_internal

logger = logging.getLogger(__name__)


class WhiteLabelTransposer:
    """Role-keyed label mapper built from a static internal → external table."""

    def __init__(self, mapping: dict[str, str]):
        chained = sorted(set(mapping.values()) & set(mapping))
        if chained:
            raise ValueError(
                "White-label map is not idempotent; these outputs are also keys: "
                + ", ".join(chained)
            )
        self._mapping = dict(mapping)

    def __len__(self):
        return len(self._mapping)

    def transform(self, label, role):
        if not isinstance(label, str) or is_internal(role):
            return label
        return self._mapping.get(label, label)

    def transform_fields(self, obj: dict, fields, role) -> dict:
        """Return a copy of ``obj`` with only the named fields transposed."""
        if is_internal(role):
            return obj
        result = dict(obj)
        for name in fields:
            if name in result:
                result[name] = self.transform(result[name], role)
        return result

    def transform_pillars(self, pillars: list[dict], role) -> list[dict]:
        return [self.transform_fields(p, ("title",), role) for p in pillars]

    def transform_labels(self, labels: list[str], role) -> list[str]:
        return [self.transform(label, role) for label in labels]
