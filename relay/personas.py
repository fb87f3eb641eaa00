"""Persona registry -- system prompts that steer a backend's tone.

Personas are JSON files (one per persona) loaded once at startup from a
directory. The bundled set lives in relay/constitutions/.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class Persona(BaseModel):
    id: str
    name: str
    version: str = "1.0.0"
    description: str = ""
    system_prompt: str
    principles: list[str] = Field(default_factory=list)
    limits: list[str] = Field(default_factory=list)


class PersonaRegistry:
    """Looks up personas by id and renders them into system prompts."""

    def __init__(self, personas: list[Persona], default_id: str) -> None:
        self._personas = {p.id: p for p in personas}
        if default_id not in self._personas:
            raise ValueError(
                f"Default persona '{default_id}' not loaded (have: {sorted(self._personas)})"
            )
        self._default_id = default_id

    @classmethod
    def from_directory(cls, directory: Path, default_id: str) -> PersonaRegistry:
        """Load every *.json persona in ``directory``.

        Files that fail to parse are skipped with a warning.
        """
        personas: list[Persona] = []
        for path in sorted(Path(directory).glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                personas.append(Persona.model_validate(data))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning("Skipping persona file %s: %s", path.name, e)
        logger.info("Loaded %d personas: %s", len(personas), ", ".join(p.id for p in personas))
        return cls(personas, default_id)

    @property
    def default_id(self) -> str:
        return self._default_id

    def ids(self) -> list[str]:
        return sorted(self._personas)

    def all(self) -> list[Persona]:
        return [self._personas[i] for i in self.ids()]

    def get(self, persona_id: str) -> Persona | None:
        return self._personas.get(persona_id)

    def resolve(self, persona_id: str | None) -> Persona:
        """Return the named persona, or the default one."""
        if persona_id is None:
            return self._personas[self._default_id]
        persona = self._personas.get(persona_id)
        if persona is None:
            logger.warning("Unknown persona '%s', using '%s'", persona_id, self._default_id)
            return self._personas[self._default_id]
        return persona

    def build_prompt(self, persona_id: str | None, supplemental_context: str | None = None) -> str:
        persona = self.resolve(persona_id)
        parts = [persona.system_prompt.strip(), ""]
        if persona.principles:
            parts.append("PRINCIPLES:")
            parts.extend(f"- {p}" for p in persona.principles)
        if persona.limits:
            parts.append("")
            parts.append("LIMITS:")
            parts.extend(f"- {limit}" for limit in persona.limits)
        if supplemental_context:
            parts.append("")
            parts.append("ADDITIONAL CONTEXT:")
            parts.append(supplemental_context.strip())
        return "\n".join(parts).strip() + "\n"
