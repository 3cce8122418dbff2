"""
Utility functions for models
"""
import re
import unicodedata


def snake_to_camel(snake_str: str) -> str:
    """Convert snake_case to camelCase"""
    first, *rest = snake_str.split("_")
    return first + "".join(x.title() for x in rest)


def slugify(name: str) -> str:
    """'Eletrônicos & Áudio' -> 'eletronicos-audio'"""
    text = unicodedata.normalize("NFD", name.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^a-z0-9\s-]", "", text)
    text = re.sub(r"\s+", "-", text.strip())
    return re.sub(r"-+", "-", text).strip("-")


def blank_to_none(value):
    """Form inputs send '' for untouched fields"""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value
