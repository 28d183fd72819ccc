"""Slug service"""

import re
import secrets

SLUG_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
SLUG_SUFFIX_LENGTH = 6
SLUG_BASE_MAX_LENGTH = 40
FALLBACK_BASE = "launch"

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slug_base(title: str) -> str:
    """Partie déterministe du slug : "Product & Launch 2024!" -> "product-launch-2024" """
    base = _NON_SLUG_CHARS.sub("-", (title or "").lower()).strip("-")
    return base[:SLUG_BASE_MAX_LENGTH] or FALLBACK_BASE


def random_suffix(length: int = SLUG_SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(SLUG_ALPHABET) for _ in range(length))


def generate_slug(title: str) -> str:
    # pas unique par construction : l'appelant relance en cas de conflit
    return f"{slug_base(title)}-{random_suffix()}"
