"""Processing: merge slice partials, apply the user dictionary, format with an LLM."""
from .dictionary import apply_dictionary
from .formatter import format_text
from .merge import merge_partials

__all__ = ["apply_dictionary", "format_text", "merge_partials"]
