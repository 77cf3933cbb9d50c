"""Recover listing records from the OpenRent search-page script.

The page does not expose an API. It declares one global array per field
(`PROPERTYIDS`, `prices`, ...) whose entries line up by position. The
script is run in a throwaway V8 context with no timers, network or host
callbacks; each array is then read back as JSON and decoded column by
column through `LISTING_FIELDS`, the only place that knows the mapping.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from py_mini_racer import (
    JSEvalException,
    JSOOMException,
    JSParseException,
    JSTimeoutException,
    MiniRacer,
)

from rental_area_search.errors import (
    EvaluationError,
    FieldCoercionError,
    MissingFieldError,
)
from rental_area_search.openrent.models import Listing, listing_url
from rental_area_search.settings import get_settings


_JS_ERRORS = (JSEvalException, JSParseException, JSTimeoutException, JSOOMException)

_INT_RE = re.compile(r"^[+-]?\d+$")

UINT32_MAX = 2**32 - 1

# Capabilities removed from the global object before the page script runs.
_PRELUDE = """
(function (g) {
  var names = ["setTimeout", "setInterval", "setImmediate", "clearTimeout",
               "clearInterval", "clearImmediate", "queueMicrotask", "fetch",
               "XMLHttpRequest", "WebSocket", "WebAssembly", "Atomics",
               "SharedArrayBuffer"];
  for (var i = 0; i < names.length; i++) {
    try { delete g[names[i]]; } catch (e) {}
    try { if (typeof g[names[i]] !== "undefined") g[names[i]] = undefined; } catch (e) {}
  }
})(globalThis);
"""

_READ_BINDING = """
(function () {{
  var v;
  try {{ v = {name}; }} catch (e) {{ return JSON.stringify({{kind: "missing"}}); }}
  if (typeof v === "undefined") return JSON.stringify({{kind: "missing"}});
  if (!Array.isArray(v)) return JSON.stringify({{kind: typeof v}});
  // Values JSON cannot carry come back tagged and fail coercion.
  return JSON.stringify({{kind: "array", items: v}}, function (k, x) {{
    var t = typeof x;
    if (t === "bigint" || t === "symbol" || t === "function") return {{unserializable: t}};
    return x;
  }});
}})()
"""


def _integral(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None
    if isinstance(value, str) and _INT_RE.match(value.strip()):
        return int(value.strip())
    return None


def to_unsigned(value: Any) -> Optional[int]:
    n = _integral(value)
    if n is None or n < 0 or n > UINT32_MAX:
        return None
    return n


def to_small_int(value: Any) -> Optional[int]:
    n = _integral(value)
    if n is None or n < -128 or n > 127:
        return None
    return n


def to_flag(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    n = _integral(value)
    if n == 0:
        return False
    if n == 1:
        return True
    return None


def to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    v = float(value)
    if not math.isfinite(v):
        return None
    return v


Coercer = Callable[[Any], Any]

# (Listing field, script binding, coercer, expected type for error messages)
LISTING_FIELDS: Tuple[Tuple[str, str, Coercer, str], ...] = (
    ("id", "PROPERTYIDS", to_unsigned, "unsigned integer"),
    ("longitude", "PROPERTYLISTLONGITUDES", to_float, "number"),
    ("latitude", "PROPERTYLISTLATITUDES", to_float, "number"),
    ("price", "prices", to_unsigned, "unsigned integer"),
    ("bedroom_count", "bedrooms", to_small_int, "small integer"),
    ("studio", "isstudio", to_flag, "0/1 flag"),
    ("shared", "isshared", to_flag, "0/1 flag"),
    ("live", "islivelistBool", to_flag, "0/1 flag"),
    ("furnished", "furnished", to_flag, "0/1 flag"),
)

BINDINGS: Tuple[str, ...] = tuple(binding for _, binding, _, _ in LISTING_FIELDS)


def decode_listings(columns: Dict[str, Sequence[Any]], url_base: str) -> List[Listing]:
    """Zip the per-field arrays into listings.

    The id column decides the record count. Any value that does not
    coerce, including a position missing from a shorter array, fails the
    whole batch.
    """

    for binding in BINDINGS:
        if binding not in columns:
            raise MissingFieldError(binding)

    count = len(columns["PROPERTYIDS"])
    out: List[Listing] = []
    for i in range(count):
        values: Dict[str, Any] = {}
        for field, binding, coerce, expected in LISTING_FIELDS:
            column = columns[binding]
            raw = column[i] if i < len(column) else None
            value = coerce(raw)
            if value is None:
                raise FieldCoercionError(field, i, raw, expected)
            values[field] = value
        values["url"] = listing_url(url_base, values["id"])
        out.append(Listing(**values))
    return out


def _read_column(ctx: MiniRacer, name: str, timeout_ms: int, max_memory: int) -> List[Any]:
    try:
        raw = ctx.eval(
            _READ_BINDING.format(name=name),
            timeout=timeout_ms,
            max_memory=max_memory,
        )
    except _JS_ERRORS as exc:
        raise EvaluationError(f"reading {name!r} failed: {exc}") from exc
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise EvaluationError(f"reading {name!r} returned {raw!r}") from exc
    kind = payload.get("kind")
    if kind == "missing":
        raise MissingFieldError(name)
    if kind != "array":
        raise MissingFieldError(name, f"a {kind}, not an array")
    return payload.get("items") or []


def read_bindings(
    script: str,
    bindings: Sequence[str],
    *,
    timeout_ms: int,
    max_memory: int,
) -> Dict[str, List[Any]]:
    """Run `script` in a fresh V8 context and read back array bindings.

    The context is closed on return, whatever the outcome.
    """

    for name in bindings:
        if not name.isidentifier():
            raise ValueError(f"not a binding name: {name!r}")

    with MiniRacer() as ctx:
        try:
            ctx.eval(_PRELUDE, timeout=timeout_ms, max_memory=max_memory)
            # Force an undefined completion value so nothing needs converting.
            ctx.eval(script + "\n;void 0;", timeout=timeout_ms, max_memory=max_memory)
        except _JS_ERRORS as exc:
            raise EvaluationError(f"script evaluation failed: {exc}") from exc

        return {
            name: _read_column(ctx, name, timeout_ms, max_memory) for name in bindings
        }


def extract_listings(
    raw_script: str,
    *,
    time_limit_s: Optional[float] = None,
    memory_limit_mb: Optional[float] = None,
    listing_url_base: Optional[str] = None,
) -> List[Listing]:
    settings = get_settings()
    if time_limit_s is None:
        time_limit_s = settings.sandbox_time_limit_s
    if memory_limit_mb is None:
        memory_limit_mb = settings.sandbox_memory_limit_mb
    columns = read_bindings(
        raw_script,
        BINDINGS,
        timeout_ms=max(1, int(time_limit_s * 1000)),
        max_memory=int(memory_limit_mb * 1024 * 1024),
    )
    return decode_listings(columns, listing_url_base or settings.listing_url_base)
