from __future__ import annotations

_VISIBLE = 4


def mask_secret(value: str | None) -> str:
    """Mask a credential for logs: keep a short prefix and suffix, collapse the middle."""
    if not value:
        return "<unset>"
    v = str(value)
    if len(v) <= _VISIBLE * 2:
        return "****"
    return f"{v[:_VISIBLE]}...{v[-_VISIBLE:]}"

