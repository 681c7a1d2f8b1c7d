# ABOUTME: Immutable catalog of allowed Gemini TTS models and candidate list resolution
# ABOUTME: Orders the requested or default model first, then the rest of the allowlist

from dataclasses import dataclass
from typing import Optional, Tuple

MODEL_PREFIX = "models/"


def normalize_model_name(name: Optional[str]) -> str:
    """Trim a model identifier and give it the ``models/`` prefix if missing."""
    name = (name or "").strip()
    if name and not name.startswith(MODEL_PREFIX):
        name = MODEL_PREFIX + name
    return name


@dataclass(frozen=True)
class ModelCatalog:
    """Process-wide model allowlist and default selection.

    Built once from settings and injected where candidate lists are needed.
    """
    models: Tuple[str, ...]
    default_model: str

    def __post_init__(self):
        # Deduplicate while keeping allowlist order
        unique = tuple(dict.fromkeys(self.models))
        if not unique:
            raise ValueError("Model allowlist must not be empty")
        if self.default_model not in unique:
            raise ValueError(f"Default model {self.default_model} is not in the allowlist")
        object.__setattr__(self, "models", unique)

    def __contains__(self, model: str) -> bool:
        return model in self.models

    def resolve_primary(self, requested: Optional[str] = None) -> str:
        """Return the requested model if allowlisted, otherwise the default."""
        model = normalize_model_name(requested)
        return model if model in self.models else self.default_model

    def candidates(self, requested: Optional[str] = None) -> Tuple[str, ...]:
        """Build the ordered, duplicate-free candidate list for one request."""
        primary = self.resolve_primary(requested)
        return (primary,) + tuple(m for m in self.models if m != primary)
