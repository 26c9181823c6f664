"""
Static configuration tables.

The interview variable schema, white-label map, pillar/phase catalogues and
model pricing table are YAML files under ``advertis/static_tables/``. They
are loaded once by ``create_app()`` and handed to the components that need
them, so tests can build their own ``StaticTables`` with substitute data.

Usage:
    tables = load_static_tables()
    tables.schema.all_ids()          # ["A0", "A1", ..., "E6"]
    tables.phase_title("audit-t")    # "Audit Track"
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_TABLES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "static_tables")


@dataclass(frozen=True)
class InterviewVariable:
    """One schema-defined interview field."""

    id: str
    label: str
    pillar: str
    description: str = ""
    placeholder: str = ""
    priority: bool = False
    type: str = "textarea"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "pillar": self.pillar,
            "description": self.description,
            "placeholder": self.placeholder,
            "priority": self.priority,
            "type": self.type,
        }


@dataclass(frozen=True)
class InterviewSection:
    pillar: str
    title: str
    variables: tuple[InterviewVariable, ...]


class InterviewSchema:
    """Ordered interview sections with lookup helpers."""

    def __init__(self, sections: list[InterviewSection]):
        self.sections = list(sections)
        self._by_id: dict[str, InterviewVariable] = {}
        for section in self.sections:
            for var in section.variables:
                if var.id in self._by_id:
                    raise ValueError(f"Duplicate interview variable id: {var.id}")
                self._by_id[var.id] = var

    @classmethod
    def from_dict(cls, data: dict) -> "InterviewSchema":
        sections = []
        for raw in data.get("sections", []):
            pillar = raw["pillar"]
            variables = tuple(
                InterviewVariable(
                    id=v["id"],
                    label=v["label"],
                    pillar=pillar,
                    description=v.get("description", ""),
                    placeholder=v.get("placeholder", ""),
                    priority=bool(v.get("priority", False)),
                    type=v.get("type", "textarea"),
                )
                for v in raw.get("variables", [])
            )
            sections.append(InterviewSection(pillar=pillar, title=raw.get("title", pillar), variables=variables))
        return cls(sections)

    @property
    def variables(self) -> list[InterviewVariable]:
        return [v for section in self.sections for v in section.variables]

    def all_ids(self) -> list[str]:
        return [v.id for v in self.variables]

    def count(self) -> int:
        return len(self._by_id)

    def get(self, variable_id: str) -> InterviewVariable | None:
        return self._by_id.get(variable_id)

    def for_pillar(self, pillar: str) -> list[InterviewVariable]:
        for section in self.sections:
            if section.pillar == pillar:
                return list(section.variables)
        return []

    def priority_sections(self) -> list[InterviewSection]:
        """Sections restricted to priority (express mode) variables."""
        return [
            InterviewSection(
                pillar=s.pillar,
                title=s.title,
                variables=tuple(v for v in s.variables if v.priority),
            )
            for s in self.sections
        ]

    def to_dict(self) -> dict:
        return {
            "sections": [
                {
                    "pillar": s.pillar,
                    "title": s.title,
                    "variables": [v.to_dict() for v in s.variables],
                }
                for s in self.sections
            ],
            "count": self.count(),
        }


@dataclass(frozen=True)
class StaticTables:
    """Immutable bundle of every configuration table the service reads."""

    schema: InterviewSchema
    white_label: dict[str, str] = field(default_factory=dict)
    pillars: tuple[dict, ...] = ()
    phases: tuple[dict, ...] = ()
    pricing: dict[str, dict] = field(default_factory=dict)

    def pillar_entry(self, pillar_type: str) -> dict | None:
        return next((p for p in self.pillars if p["type"] == pillar_type), None)

    def pillar_title(self, pillar_type: str) -> str:
        entry = self.pillar_entry(pillar_type)
        return entry["title"] if entry else pillar_type

    def phase_entry(self, phase: str) -> dict | None:
        return next((p for p in self.phases if p["id"] == phase), None)

    def phase_title(self, phase: str) -> str:
        entry = self.phase_entry(phase)
        return entry["title"] if entry else phase


def _read_yaml(path: Path) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Static table {path.name} must be a mapping")
    return data


def load_static_tables(directory: str | None = None) -> StaticTables:
    """Load all YAML tables from ``directory`` (defaults to the packaged tables)."""
    base = Path(directory or _TABLES_DIR)

    schema = InterviewSchema.from_dict(_read_yaml(base / "interview_schema.yaml"))
    white_label = {str(k): str(v) for k, v in _read_yaml(base / "white_label.yaml").get("labels", {}).items()}
    catalogue = _read_yaml(base / "catalogue.yaml")
    pricing = _read_yaml(base / "model_pricing.yaml").get("models", {})

    tables = StaticTables(
        schema=schema,
        white_label=white_label,
        pillars=tuple(sorted(catalogue.get("pillars", []), key=lambda p: p.get("order", 0))),
        phases=tuple(catalogue.get("phases", [])),
        pricing={str(k): {"input": float(v["input"]), "output": float(v["output"])} for k, v in pricing.items()},
    )
    logger.info(
        "Static tables loaded from %s: %d interview variables, %d white-label entries, %d priced models",
        base, schema.count(), len(white_label), len(tables.pricing),
    )
    return tables
