"""Precedence merging with per-parameter source whitelisting."""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional

from .matrix import ParameterMatrix, build_default_matrix
from .models import (
    DEFAULT,
    PRECEDENCE,
    UNSET,
    ParamType,
    ParameterSpec,
    ResolvedConfiguration,
    Source,
)
from .sources import MISSING, RawSourceValues

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"^\$([A-Za-z_][A-Za-z0-9_]*)$")
_TRUE = frozenset({"true", "1", "yes", "y", "on"})
_FALSE = frozenset({"false", "0", "no", "n", "off"})


def coerce_boolean(value: Any) -> Optional[bool]:
    """Interpret *value* as a flag; ``None`` when it cannot be read as one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return None


class ConfigResolver:
    """Resolve raw source values into a ``ResolvedConfiguration``.

    The resolver never reads ``os.environ``; the environment snapshot used
    for ``$NAME`` tokens is passed in once and reused for every call, so
    resolving the same ``RawSourceValues`` twice gives equal results.
    """

    def __init__(
        self,
        matrix: Optional[ParameterMatrix] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.matrix = matrix or build_default_matrix()
        self.env: dict[str, str] = dict(env or {})

    def resolve(self, sources: RawSourceValues) -> tuple[ResolvedConfiguration, dict[str, str]]:
        """Walk every parameter through the precedence list.

        Returns:
            The resolved configuration (not yet frozen, the finalizer owns
            it next) and a copy of its provenance map.
        """
        resolved = ResolvedConfiguration()
        for spec in self.matrix:
            source, value = self._winning_value(spec, sources)
            if source is not None:
                resolved.set(spec.name, self._finish_value(spec, value, source), source.value)
            elif spec.default is not None:
                resolved.set(spec.name, spec.default, DEFAULT)
            else:
                resolved.set(spec.name, None, UNSET)
        return resolved, resolved.provenance

    def _winning_value(self, spec: ParameterSpec, sources: RawSourceValues) -> tuple[Optional[Source], Any]:
        for source in PRECEDENCE:
            value = sources.lookup(source, spec.name)
            if value is MISSING:
                continue
            if not spec.allows(source):
                logger.debug("Ignoring %s from %s: source not allowed", spec.name, source.value)
                continue
            return source, value
        return None, None

    def _finish_value(self, spec: ParameterSpec, value: Any, source: Source) -> Any:
        if isinstance(value, str):
            match = _TOKEN.match(value.strip())
            if match:
                value = self.env.get(match.group(1))
                if value is None:
                    logger.debug(
                        "%s from %s references $%s which is not set",
                        spec.name, source.value, match.group(1),
                    )
                    return None
        return self._coerce(spec, value)

    def _coerce(self, spec: ParameterSpec, value: Any) -> Any:
        if spec.value_type is ParamType.BOOLEAN:
            flag = coerce_boolean(value)
            if flag is None:
                logger.debug("Cannot read %r as a boolean for %s; using default", value, spec.name)
                return spec.default
            return flag
        if spec.value_type is ParamType.MAPPING:
            if not isinstance(value, Mapping):
                logger.debug("Cannot read %r as a mapping for %s; using default", value, spec.name)
                return spec.default
            return {str(key): _as_text(item) for key, item in value.items()}
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
