"""
Parameter Normalization
=======================

Resolves the optional ``(canvas, options, callback)`` arguments of the draw
entry points into one canonical DrawParameters value.

Positional arguments are classified by shape, not position: a callable is the
callback, an object exposing the Canvas protocol is the canvas, a mapping is
the options. The same roles can be given explicitly by keyword.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from pydantic import ValidationError

from rasterizer.core.errors import InvalidOptionsError
from rasterizer.core.interfaces import Canvas
from rasterizer.models.schemas import DrawOptions

LegacyCallback = Callable[[Any, list], None]

RENDER_OPTION_KEYS = ("width", "height", "hover", "active", "zoom")
CACHE_OPTION_KEYS = ("cache", "cache_bucket")

# Forwarded by identity, never replaced by a validated copy
_OPAQUE_OPTION_KEYS = ("cache_bucket",)

_ALIASES = {
    field_info.alias: name
    for name, field_info in DrawOptions.model_fields.items()
    if field_info.alias is not None
}


@dataclass
class DrawParameters:
    """Canonical optional parameters of a draw call."""

    canvas: Optional[Canvas] = None
    options: Dict[str, Any] = field(default_factory=dict)
    callback: Optional[LegacyCallback] = None


def _classify(argument: Any) -> str:
    if callable(argument):
        return "callback"
    if isinstance(argument, Canvas):
        return "canvas"
    if isinstance(argument, Mapping):
        return "options"
    raise TypeError(f"Cannot determine the role of argument of type {type(argument).__name__}")


def normalize_options(options: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Rename camelCase aliases to snake_case and validate recognized keys.

    Recognized keys carry their validated values (``"false"`` becomes
    ``False``, ``"42"`` becomes ``42``). Opaque handles such as
    ``cache_bucket`` and unrecognized keys are passed through as given.

    Raises:
        InvalidOptionsError: If a recognized key has an invalid value
    """
    normalized: Dict[str, Any] = {}
    for key, value in options.items():
        name = _ALIASES.get(key, key)
        if name in normalized:
            raise InvalidOptionsError(f"Option '{name}' given more than once")
        normalized[name] = value

    try:
        validated = DrawOptions.model_validate(normalized)
    except ValidationError as e:
        raise InvalidOptionsError(f"Invalid draw options: {e}") from e

    for name in DrawOptions.model_fields:
        if name in normalized and name not in _OPAQUE_OPTION_KEYS:
            normalized[name] = getattr(validated, name)
    return normalized


def parse_optional_parameters(
    args: Sequence[Any],
    canvas: Optional[Canvas] = None,
    options: Optional[Mapping[str, Any]] = None,
    callback: Optional[LegacyCallback] = None,
) -> DrawParameters:
    """
    Build DrawParameters from positional and keyword arguments.

    Args:
        args: Positional arguments following the required one
        canvas: Explicit canvas
        options: Explicit options mapping
        callback: Explicit legacy callback

    Returns:
        DrawParameters with defaults applied

    Raises:
        TypeError: If an argument matches no role, or a role is given twice
        InvalidOptionsError: If the options fail validation
    """
    found: Dict[str, Any] = {}
    for role, value in (("canvas", canvas), ("options", options), ("callback", callback)):
        if value is not None:
            found[role] = value

    for argument in args:
        if argument is None:
            continue
        role = _classify(argument)
        if role in found:
            raise TypeError(f"Got more than one {role} argument")
        found[role] = argument

    return DrawParameters(
        canvas=found.get("canvas"),
        options=normalize_options(found.get("options", {})),
        callback=found.get("callback"),
    )


def render_options_subset(options: Mapping[str, Any]) -> Dict[str, Any]:
    """Pick the options the renderer understands, only those that are set."""
    return {key: options[key] for key in RENDER_OPTION_KEYS if key in options}


def cache_options_subset(options: Mapping[str, Any]) -> Dict[str, Any]:
    """Pick the options the loader understands, only those that are set."""
    return {key: options[key] for key in CACHE_OPTION_KEYS if key in options}
