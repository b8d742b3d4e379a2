"""
Parameter manifests and the binder that fills them from request values.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Sequence, Tuple, Union
from urllib.parse import unquote_plus

from .exceptions import ApiError, ErrorKind, RouteConfigurationError

logger = logging.getLogger(__name__)


class _Required:
    """Marker for a parameter without a default value."""

    def __repr__(self) -> str:
        return "REQUIRED"


REQUIRED: Any = _Required()


@dataclass(frozen=True)
class Param:
    """One declared handler parameter.

    Args:
        name: The name a request value must be provided under
        default: Value used when the request provides none; ``REQUIRED`` if there is no default
    """

    name: str
    default: Any = REQUIRED

    @property
    def has_default(self) -> bool:
        return self.default is not REQUIRED


def params_from_callable(func: Callable) -> Tuple[Param, ...]:
    """Build a parameter manifest from a callable's signature.

    Used once when a route is registered without an explicit manifest.

    Raises:
        RouteConfigurationError: If the callable has keyword-only parameters,
            which cannot be passed positionally
    """
    manifest = []
    for name, param in inspect.signature(func).parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if param.kind == inspect.Parameter.KEYWORD_ONLY:
            raise RouteConfigurationError(
                f"Handler {getattr(func, '__name__', func)!s} has keyword-only parameter {name}"
            )
        default = REQUIRED if param.default is inspect.Parameter.empty else param.default
        manifest.append(Param(name, default))
    return tuple(manifest)


def _decode(value: Any) -> Any:
    """URL-decode a value once more; containers are decoded one level deep."""
    if isinstance(value, str):
        return unquote_plus(value)
    if isinstance(value, (list, tuple)):
        return [unquote_plus(item) if isinstance(item, str) else item for item in value]
    if isinstance(value, Mapping):
        return {key: unquote_plus(item) if isinstance(item, str) else item for key, item in value.items()}
    return value


def bind(declared: Sequence[Param], available: Mapping[str, Any]) -> Union[List[Any], ApiError]:
    """Order the available request values by the handler's declared parameters.

    Values provided under a declared name are used (URL-decoded once more);
    otherwise the parameter's default; otherwise binding fails on that
    parameter and no further parameters are considered.

    Args:
        declared: The handler's parameter manifest, in declaration order
        available: Every named value assembled by the dispatcher

    Returns:
        Positional call arguments, or an ApiError naming the first missing parameter
    """
    ordered = []
    for param in declared:
        if param.name in available and available[param.name] is not None:
            ordered.append(_decode(available[param.name]))
        elif param.has_default:
            ordered.append(param.default)
        else:
            logger.warning(f"Missing handler parameter: {param.name}")
            return ApiError.from_kind(ErrorKind.MISSING_CALLBACK_PARAM, name=param.name)
    return ordered
