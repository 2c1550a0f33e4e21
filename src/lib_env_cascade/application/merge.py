"""Application-layer merge policy.

Purpose
-------
Provide the configurable deep-merge/clone primitive used to fold parsed dotenv
files together and to combine resolved values with the live environment. The
module is free of I/O so alternative composition roots can reuse it.

Contents
    - ``MergeConfig``: frozen options governing key selection, array handling,
      clone types, and ``None`` handling.
    - ``make_merger``: factory returning a ``merge(target, source)`` callable.
    - ``clone``: deep copy honouring the same options.
    - ``OVERWRITE_MERGE``: the default merger (arrays replaced, ``None`` skipped).

System Role
-----------
:mod:`lib_env_cascade.adapters.dotenv.default` folds files left-to-right with
``OVERWRITE_MERGE`` and :mod:`lib_env_cascade.core` uses it again at commit time
with the environment snapshot as the winning source.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Sequence

ArrayMerge = Callable[[Any, Sequence[Any]], Any]
Merger = Callable[[Mapping[Any, Any], Any], dict[Any, Any]]

# Values that are objects but must never be merged into or cloned key-by-key.
_OPAQUE_TYPES: tuple[type, ...] = (
    str,
    bytes,
    bytearray,
    memoryview,
    re.Pattern,
    datetime,
    date,
    time,
    timedelta,
)


@dataclass(frozen=True, slots=True)
class MergeConfig:
    """Options for :func:`make_merger` and :func:`clone`.

    Attributes
    ----------
    include_non_string_keys:
        When ``False`` (default) only ``str`` keys of the source are merged;
        other hashable keys are ignored.
    clone_mapping_type:
        Mapping type used for cloned mappings. ``None`` keeps the original type.
    array_merge:
        ``array_merge(target_value, source_sequence)`` replacing the default
        "copy the source sequence" behaviour.
    include_none:
        When ``False`` (default) source values that are ``None`` are skipped so
        the target value survives.
    """

    include_non_string_keys: bool = False
    clone_mapping_type: type | None = None
    array_merge: ArrayMerge | None = None
    include_none: bool = False


_DEFAULT_CONFIG = MergeConfig()


def can_merge(value: object) -> bool:
    """Return ``True`` when *value* is a mapping that may be merged recursively.

    Examples
    --------
    >>> can_merge({"a": 1}), can_merge([1]), can_merge("text"), can_merge(None)
    (True, False, False, False)
    """

    return isinstance(value, Mapping) and not isinstance(value, _OPAQUE_TYPES)


def _is_sequence(value: object) -> bool:
    return isinstance(value, (list, tuple))


def _keys(value: Mapping[Any, Any], config: MergeConfig) -> list[Any]:
    if config.include_non_string_keys:
        return list(value.keys())
    return [key for key in value.keys() if isinstance(key, str)]


def clone(value: Any, config: MergeConfig | None = None) -> Any:
    """Deep-clone *value* following the merge configuration.

    Sequences are cloned element-wise into lists, mappings into a fresh instance
    of their own type (or ``config.clone_mapping_type``). Scalars and opaque
    built-ins (strings, bytes, dates, compiled patterns) are returned as-is.

    Examples
    --------
    >>> original = {"a": [{"b": 1}]}
    >>> copied = clone(original)
    >>> copied == original, copied["a"][0] is original["a"][0]
    (True, False)
    """

    cfg = config or _DEFAULT_CONFIG
    if _is_sequence(value):
        return [clone(item, cfg) for item in value]
    if can_merge(value):
        factory = cfg.clone_mapping_type or type(value)
        try:
            cloned = factory()
        except TypeError:
            cloned = {}
        for key in _keys(value, cfg):
            cloned[key] = clone(value[key], cfg)
        return cloned
    return value


def make_merger(config: MergeConfig | None = None) -> Merger:
    """Return a ``merge(target, source)`` function configured by *config*.

    Why
    ----
    The same deep-merge semantics are needed with different knobs (array
    strategy, ``None`` handling) by callers embedding the library.

    What
    ----
    The returned callable shallow-copies ``target`` into a new ``dict`` and then
    walks ``source``: ``None`` values are skipped unless ``include_none``;
    sequences replace the target value (via ``array_merge`` when supplied);
    mappings merge recursively; everything else is cloned. Neither input is
    mutated.

    Examples
    --------
    >>> merge = make_merger()
    >>> merge({"a": 1, "n": {"x": 1}}, {"b": 2, "n": {"y": 2}})
    {'a': 1, 'n': {'x': 1, 'y': 2}, 'b': 2}
    >>> merge({"tags": [1, 2]}, {"tags": [3]})
    {'tags': [3]}
    >>> concat = make_merger(MergeConfig(array_merge=lambda t, s: list(t or []) + list(s)))
    >>> concat({"tags": [1, 2]}, {"tags": [3]})
    {'tags': [1, 2, 3]}
    """

    cfg = config or _DEFAULT_CONFIG

    def merge_arrays(target_value: Any, source_value: Sequence[Any]) -> Any:
        if cfg.array_merge is not None:
            return cfg.array_merge(target_value, source_value)
        return list(source_value)

    def merge(target: Mapping[Any, Any], source: Any) -> dict[Any, Any]:
        output: dict[Any, Any] = dict(target)
        if not can_merge(source):
            return output

        for key in _keys(source, cfg):
            source_value = source[key]
            if source_value is None and not cfg.include_none:
                continue
            if _is_sequence(source_value):
                output[key] = merge_arrays(target.get(key), source_value)
            elif can_merge(source_value):
                target_value = target.get(key)
                output[key] = merge(target_value if can_merge(target_value) else {}, source_value)
            else:
                output[key] = clone(source_value, cfg)
        return output

    return merge


OVERWRITE_MERGE: Merger = make_merger()
"""Default overwrite merge: later sources replace earlier values key by key."""
