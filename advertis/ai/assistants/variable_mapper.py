"""
ADVERTIS Strategy Platform
Variable Mapper Assistant.

Maps a free-form brand description onto the interview variables. The text
is trimmed, rejected below the minimum length and cut to the maximum before
it reaches the prompt. The result is a proposal only; nothing is persisted.
"""

import logging

from advertis.ai.extraction import bound_freetext, parse_json_object

logger = logging.getLogger(__name__)

PURPOSE = "map_freetext"


class VariableMapper:
    """Free text → {variable id: extracted value} via the LLM gateway."""

    def __init__(self, gateway, prompt_registry, tables, *,
                 min_chars: int = 100, max_chars: int = 50_000,
                 timeout: float | None = 120, max_tokens: int | None = None):
        self.gateway = gateway
        self.prompt_registry = prompt_registry
        self.tables = tables
        self.min_chars = min_chars
        self.max_chars = max_chars
        self.timeout = timeout
        self.max_tokens = max_tokens

    def map_text(self, text, brand_name: str | None = None, sector: str | None = None,
                 *, user: str = "system") -> dict:
        """
        Returns:
            {"mappedVariables": {id: str}, "confidence": 0-100, "unmappedVariables": [id]}

        Raises:
            ValidationError: text missing or shorter than ``min_chars``.
            UpstreamTransientError, UpstreamFatalError, AIResponseParseError
        """
        processed = bound_freetext(text, self.min_chars, self.max_chars)
        messages = self.prompt_registry.render(
            PURPOSE,
            variable_reference=self._variable_reference(),
            brand_name=brand_name or "",
            sector=sector or "Non spécifié",
            text=processed,
        )
        kwargs = self.prompt_registry.generation_params(PURPOSE)
        if self.max_tokens:
            kwargs["max_tokens"] = self.max_tokens
        response = self.gateway.chat(
            messages, purpose=PURPOSE, user=user, timeout=self.timeout, **kwargs,
        )
        parsed = parse_json_object(response["content"], PURPOSE)

        all_ids = self.tables.schema.all_ids()
        mapped = {}
        for vid in all_ids:
            value = parsed.get(vid)
            mapped[vid] = value.strip() if isinstance(value, str) else ""

        filled = sum(1 for value in mapped.values() if value)
        confidence = int(filled * 100 / len(all_ids) + 0.5) if all_ids else 0
        unmapped = [vid for vid in all_ids if not mapped[vid]]

        logger.info("Free text mapped chars=%d filled=%d/%d", len(processed), filled, len(all_ids))
        return {
            "mappedVariables": mapped,
            "confidence": confidence,
            "unmappedVariables": unmapped,
        }

    def _variable_reference(self) -> str:
        blocks = []
        for section in self.tables.schema.sections:
            lines = "\n".join(f"  - {v.id} ({v.label}): {v.description}" for v in section.variables)
            blocks.append(f"Pilier {section.pillar} — {section.title}:\n{lines}")
        return "\n\n".join(blocks)
