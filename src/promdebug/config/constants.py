"""Common coercion helpers and constants."""

from __future__ import annotations

TRUTHY_STRINGS = {"1", "true", "yes", "on"}
FALSY_STRINGS = {"0", "false", "no", "off"}


CONFIG_BASENAME = "config"
DEFAULT_CONFIG_FILENAME = f"{CONFIG_BASENAME}.toml"
LOCAL_CONFIG_FILENAME = f"{CONFIG_BASENAME}.local.toml"

DEFAULT_ARCHIVE_NAME = "debug.tar.gz"
DEFAULT_FETCH_TIMEOUT = 30.0


def coerce_bool(value: object | None, *, default: bool = False) -> bool:
    """Convert common truthy/falsey string markers into booleans.

    Falls back to ``default`` when the value is ``None`` or ambiguous.
    """

    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if not normalized:
            return default
        if normalized in TRUTHY_STRINGS:
            return True
        if normalized in FALSY_STRINGS:
            return False
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    return default


def coerce_positive_float(
    candidate: object | None, *, default: float | None = None
) -> float:
    """Coerce ``candidate`` into a positive float, enforcing strict validation."""

    if candidate is None:
        if default is None:
            raise ValueError("No numeric value provided and no default specified")
        return default

    try:
        value = float(candidate)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid numeric value: {candidate}") from exc

    if value <= 0:
        raise ValueError(f"Value must be positive: {candidate}")

    return value


__all__ = [
    "coerce_bool",
    "coerce_positive_float",
    "TRUTHY_STRINGS",
    "FALSY_STRINGS",
    "CONFIG_BASENAME",
    "DEFAULT_CONFIG_FILENAME",
    "LOCAL_CONFIG_FILENAME",
    "DEFAULT_ARCHIVE_NAME",
    "DEFAULT_FETCH_TIMEOUT",
]
