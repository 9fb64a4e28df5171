import re
import unicodedata


def slugify(text: str) -> str:
    """
    URL slug: accents stripped, lower-cased, runs of anything that is not
    a-z/0-9 collapsed into "-", no leading/trailing dashes.

    slugify("Olá Mundo!") -> "ola-mundo"
    """
    normalized = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    return re.sub(r"[^a-z0-9]+", "-", stripped).strip("-")
