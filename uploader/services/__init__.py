from __future__ import annotations

from uploader.services.sanitizer import generate_id, sanitize, strip_extension

__all__ = ["generate_id", "sanitize", "strip_extension"]
