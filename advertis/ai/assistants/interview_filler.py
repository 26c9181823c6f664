"""
ADVERTIS Strategy Platform
Interview Filler Assistant.

Auto-fill pipeline for one strategy:
    1. Load the owned strategy and split schema variables into empty/filled
    2. Nothing empty → return the current data without calling the model
    3. Build the prompt: filled variables (trusted), complete A-D-V-E pillar
       content (truncated), then each empty variable with its description
       and example
    4. One gateway call; strict JSON parse of the answer
    5. Merge without overwriting and persist under the version read in step 1
"""

import logging

from advertis.ai.extraction import build_pillar_context, parse_json_object
from advertis.models.strategy import FICHE_PILLARS
from advertis.services import strategy_service
from advertis.services.interview import count_filled, merge_generated, split_by_completion

logger = logging.getLogger(__name__)

PURPOSE = "fill_interview"


class InterviewFiller:
    """Completes empty interview variables of a strategy via the LLM gateway."""

    def __init__(self, gateway, prompt_registry, tables, *,
                 pillar_context_chars: int = 3000, timeout: float | None = 90,
                 max_tokens: int | None = None):
        self.gateway = gateway
        self.prompt_registry = prompt_registry
        self.tables = tables
        self.pillar_context_chars = pillar_context_chars
        self.timeout = timeout
        self.max_tokens = max_tokens

    def fill(self, strategy_id: str, user_id: str) -> dict:
        """
        Returns:
            {"filledData": {...}, "autoFilledIds": [...], "totalFilled": int}

        Raises:
            NotFoundError, UpstreamTransientError, UpstreamFatalError,
            AIResponseParseError, ConflictError
        """
        strategy = strategy_service.get_owned_strategy(strategy_id, user_id)
        base_version = strategy.interview_version
        data = dict(strategy.interview_data or {})
        variables = self.tables.schema.variables

        split = split_by_completion(variables, data)
        if not split.empty:
            logger.info("Auto-fill short-circuit strategy=%s: nothing empty", strategy_id)
            return {"filledData": data, "autoFilledIds": [], "totalFilled": len(variables)}

        messages = self.build_messages(strategy, split, data)
        kwargs = self.prompt_registry.generation_params(PURPOSE)
        if self.max_tokens:
            kwargs["max_tokens"] = self.max_tokens
        response = self.gateway.chat(
            messages,
            purpose=PURPOSE,
            user=user_id,
            strategy_id=strategy_id,
            timeout=self.timeout,
            **kwargs,
        )
        generated = parse_json_object(response["content"], PURPOSE)

        merged, auto_filled_ids = merge_generated(data, generated, split.empty_ids)
        if auto_filled_ids:
            strategy_service.write_interview_data(strategy, merged, base_version)

        logger.info("Auto-fill strategy=%s accepted=%d of %d empty",
                    strategy_id, len(auto_filled_ids), len(split.empty))
        return {
            "filledData": merged,
            "autoFilledIds": auto_filled_ids,
            "totalFilled": count_filled(variables, merged),
        }

    # ── Prompt ────────────────────────────────────────────────────────────

    def build_messages(self, strategy, split, data: dict) -> list[dict]:
        filled_lines = []
        if split.filled:
            filled_lines.append("## Variables déjà remplies par l'utilisateur\n")
            for v in split.filled:
                filled_lines.append(f"**{v.id} — {v.label}** : {data[v.id].strip()}\n")

        pillar_parts = build_pillar_context(
            strategy.pillars.all(), self.tables,
            limit=self.pillar_context_chars, allowed_types=FICHE_PILLARS,
        )
        pillar_section = ""
        if pillar_parts:
            pillar_section = (
                "## Contenu structuré des piliers (généré par l'IA)\n\n"
                + "\n\n".join(pillar_parts) + "\n\n"
            )

        empty_lines = []
        for v in split.empty:
            empty_lines.append(
                f"### {v.id} — {v.label} (Pilier {v.pillar})\n"
                f"Description : {v.description}\n"
                f"Exemple attendu : {v.placeholder}\n"
            )

        return self.prompt_registry.render(
            PURPOSE,
            brand_name=strategy.brand_name,
            sector=strategy.sector or "Non spécifié",
            filled_section="\n".join(filled_lines) + ("\n" if filled_lines else ""),
            pillar_section=pillar_section,
            empty_section="\n".join(empty_lines) + "\n",
            empty_count=len(split.empty),
        )
