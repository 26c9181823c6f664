"""
ADVERTIS Strategy Platform
Prompt Registry.

YAML-based prompt templates with ``{{variable}}`` substitution and version
tracking. Templates in ``advertis/ai/prompts/*.yaml`` override the built-in
defaults of the same name and version.

Usage:
    from advertis.ai.prompt_registry import PromptRegistry
    registry = PromptRegistry()
    messages = registry.render("fill_interview", brand_name="Acme", ...)
"""

import logging
import os
import re
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_PROMPTS_DIR = os.path.join(os.path.dirname(__file__), "prompts")

# Template metadata keys forwarded to the gateway
_GENERATION_PARAMS = ("max_tokens", "temperature")


class PromptTemplate:
    """A single prompt template with metadata."""

    def __init__(self, name: str, version: str, system: str, user: str,
                 description: str = "", metadata: dict | None = None):
        self.name = name
        self.version = version
        self.system = system
        self.user = user
        self.description = description
        self.metadata = metadata or {}

    def render(self, **variables) -> list[dict]:
        """
        Render template with variables, returning chat messages.

        Returns:
            List of message dicts: [{"role": "system", "content": "..."}, ...]
        """
        system_rendered = self._substitute(self.system, variables)
        user_rendered = self._substitute(self.user, variables)

        messages = []
        if system_rendered.strip():
            messages.append({"role": "system", "content": system_rendered})
        if user_rendered.strip():
            messages.append({"role": "user", "content": user_rendered})
        return messages

    @staticmethod
    def _substitute(template: str, variables: dict) -> str:
        """Replace {{var}} placeholders with values; unknown placeholders are kept."""
        def replacer(match):
            key = match.group(1).strip()
            return str(variables.get(key, f"{{{{{key}}}}}"))
        return re.sub(r'\{\{(\s*\w+\s*)\}\}', replacer, template)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "system_preview": self.system[:200],
            "user_preview": self.user[:200],
        }


class PromptRegistry:
    """
    Registry for loading prompt templates.

    Falls back to built-in default templates if YAML files are missing.
    """

    def __init__(self, prompts_dir: str | None = None):
        self._prompts_dir = prompts_dir or _PROMPTS_DIR
        self._templates: dict[str, dict[str, PromptTemplate]] = {}  # name → {version → template}
        self._load_defaults()
        self._load_from_dir()

    def _load_defaults(self):
        for tpl in _DEFAULT_TEMPLATES:
            self._register(tpl)

    def _load_from_dir(self):
        prompts_path = Path(self._prompts_dir)
        if not prompts_path.exists():
            logger.info("Prompts directory not found: %s. Using defaults only.", self._prompts_dir)
            return

        for yaml_file in sorted(prompts_path.glob("*.yaml")):
            try:
                with open(yaml_file, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.error("Failed to load prompt %s: %s", yaml_file.name, e)
                continue
            if not data or not isinstance(data, dict):
                continue

            tpl = PromptTemplate(
                name=data.get("name", yaml_file.stem),
                version=str(data.get("version", "v1")),
                system=data.get("system", ""),
                user=data.get("user", ""),
                description=data.get("description", ""),
                metadata=data.get("metadata", {}),
            )
            self._register(tpl)
            logger.debug("Loaded prompt template: %s (%s) from %s",
                         tpl.name, tpl.version, yaml_file.name)

    def _register(self, template: PromptTemplate):
        self._templates.setdefault(template.name, {})[template.version] = template

    def get(self, name: str, version: str = "v1") -> PromptTemplate | None:
        return self._templates.get(name, {}).get(version)

    def generation_params(self, name: str, version: str = "v1") -> dict:
        """``max_tokens`` / ``temperature`` declared in the template metadata, if any."""
        tpl = self.get(name, version)
        if not tpl:
            return {}
        return {k: tpl.metadata[k] for k in _GENERATION_PARAMS if tpl.metadata.get(k) is not None}

    def render(self, name: str, version: str = "v1", **variables) -> list[dict]:
        """
        Render a prompt template with variables.

        Raises:
            KeyError: If template not found.
        """
        tpl = self.get(name, version)
        if not tpl:
            raise KeyError(f"Prompt template not found: {name} {version}")
        return tpl.render(**variables)

    def list_templates(self) -> list[dict]:
        return [tpl.to_dict() for versions in self._templates.values() for tpl in versions.values()]


# ── Built-in Default Templates ────────────────────────────────────────────────

_DEFAULT_TEMPLATES = [
    PromptTemplate(
        name="fill_interview",
        version="v1",
        description="Complete empty Fiche de Marque variables from filled ones and pillar content",
        system=(
            "Tu es un expert en stratégie de marque utilisant la méthodologie ADVERTIS.\n"
            "Génère le contenu des variables VIDES uniquement, à partir du contexte fourni.\n"
            "Réponds UNIQUEMENT avec un objet JSON valide { \"ID\": \"valeur\", ... }, en français, "
            "sans texte avant ou après."
        ),
        user=(
            "# Marque : {{brand_name}}\n"
            "# Secteur : {{sector}}\n\n"
            "{{filled_section}}"
            "{{pillar_section}}"
            "## Variables à compléter\n\n"
            "{{empty_section}}"
            "---\n"
            "Génère un objet JSON avec les {{empty_count}} variables manquantes."
        ),
    ),
    PromptTemplate(
        name="map_freetext",
        version="v1",
        description="Map a free-form brand description onto the Fiche de Marque variables",
        system=(
            "Tu es un expert en stratégie de marque utilisant la méthodologie ADVERTIS.\n"
            "Extrais du texte fourni la valeur de chaque variable ci-dessous; laisse \"\" si "
            "l'information est absente. N'invente rien.\n\n"
            "{{variable_reference}}\n\n"
            "Réponds UNIQUEMENT avec un objet JSON valide mappant chaque ID à sa valeur."
        ),
        user=(
            "Document pour la marque \"{{brand_name}}\" (secteur : {{sector}}) :\n\n"
            "---\n{{text}}\n---"
        ),
    ),
]
