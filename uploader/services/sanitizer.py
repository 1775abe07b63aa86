from __future__ import annotations

import random
import re
import string


ID_ALPHABET = string.ascii_lowercase + string.digits

_UNSAFE_RUN = re.compile(r"[^a-z0-9]+")


def sanitize(value: str, max_length: int) -> str:
    """Lowercase, hyphenate unsafe runs, trim edge hyphens, then truncate.

    Truncation happens last, so a result may end with a hyphen.
    """
    lowered = value.lower()
    hyphenated = _UNSAFE_RUN.sub("-", lowered)
    return hyphenated.strip("-")[: max(0, max_length)]


def generate_id(length: int) -> str:
    # Collision avoidance only, not a secret.
    return "".join(random.choice(ID_ALPHABET) for _ in range(length))


def strip_extension(filename: str, extension: str | None = None) -> str:
    if extension is not None:
        suffix = f".{extension.lstrip('.')}"
        return filename[: -len(suffix)] if filename.endswith(suffix) else filename
    stem, dot, _ = filename.rpartition(".")
    return stem if dot and stem else filename
