"""Name folding and formatting shared by subjects and professors."""

import unicodedata


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold_name(name: str) -> str:
    """Comparison key: accent-free, lowercase, single-spaced. Never stored for display."""
    return " ".join(strip_diacritics(name).lower().split())


def format_name(name: str) -> str:
    """Title-case each whitespace-delimited token: 'josé  PÉREZ' -> 'José Pérez'."""
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.split())
