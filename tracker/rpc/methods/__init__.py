from __future__ import annotations

"""
tracker.rpc.methods
===================

A lightweight registry that binds JSON-RPC method names (e.g.
"tracker.getContractStates") to Python callables.

- Simple: a dict mapping {method_name: MethodSpec}; aliases share the spec.
- Lazy: the built-in method modules are imported on first lookup.
- Safe: duplicate registrations must opt-in with replace=True.

Typical method module usage
---------------------------
from . import method

@method("tracker.getStats")
def get_stats() -> dict:
    ...

Params may be positional (list/tuple) or named (dict); `MethodSpec.call`
binds them against the function signature and raises `InvalidParams` when
they do not fit.
"""

import importlib
import inspect
import threading
import typing as t
from dataclasses import dataclass, field

from pydantic import BaseModel

from tracker.rpc.errors import InvalidParams, MethodNotFound


@dataclass(frozen=True)
class MethodSpec:
    """Metadata about a JSON-RPC method binding."""

    name: str
    func: t.Callable[..., t.Any]
    desc: str | None = None
    result_model: type[BaseModel] | None = None
    namespace: str | None = None
    aliases: tuple[str, ...] = field(default_factory=tuple)

    def call(self, params: t.Any = None) -> t.Any:
        if params is None:
            args: tuple[t.Any, ...] = ()
            kwargs: dict[str, t.Any] = {}
        elif isinstance(params, (list, tuple)):
            args = tuple(params)
            kwargs = {}
        elif isinstance(params, dict):
            args = ()
            kwargs = params
        else:
            raise InvalidParams("params must be array or object")

        try:
            inspect.signature(self.func).bind(*args, **kwargs)
        except TypeError as e:
            raise InvalidParams(str(e)) from e

        result = self.func(*args, **kwargs)

        if self.result_model is not None:
            return self.result_model.model_validate(result).model_dump(by_alias=True)
        return result


# ---- Global registry --------------------------------------------------------

_REGISTRY: dict[str, MethodSpec] = {}
_LOADED = False
_LOCK = threading.RLock()

_BUILTIN_MODULES = ("tracker.rpc.methods.contracts",)


def register(
    name: str,
    func: t.Callable[..., t.Any],
    *,
    desc: str | None = None,
    result_model: type[BaseModel] | None = None,
    aliases: t.Iterable[str] = (),
    replace: bool = False,
) -> MethodSpec:
    """Register a method callable under a JSON-RPC name."""
    if not isinstance(name, str) or "." not in name:
        raise ValueError(
            f"Method name must be namespaced like 'ns.method', got {name!r}"
        )

    namespace = name.split(".", 1)[0]

    with _LOCK:
        if name in _REGISTRY and not replace:
            raise KeyError(f"Method {name!r} is already registered")
        spec = MethodSpec(
            name=name,
            func=func,
            desc=desc or _func_desc(func),
            result_model=result_model,
            namespace=namespace,
            aliases=tuple(aliases or ()),
        )
        _REGISTRY[name] = spec
        for alias in spec.aliases:
            _REGISTRY[alias] = spec
        return spec


def method(
    name: str,
    *,
    desc: str | None = None,
    result_model: type[BaseModel] | None = None,
    aliases: t.Iterable[str] = (),
    replace: bool = False,
):
    """
    Decorator to register a function as a JSON-RPC method.

    Example:
        @method("tracker.getStats")
        def get_stats(): ...
    """

    def _wrap(fn: t.Callable[..., t.Any]):
        register(
            name,
            fn,
            desc=desc,
            result_model=result_model,
            aliases=aliases,
            replace=replace,
        )
        return fn

    return _wrap


def resolve(name: str) -> MethodSpec:
    ensure_loaded()
    with _LOCK:
        spec = _REGISTRY.get(name)
        if spec is None:
            raise MethodNotFound(name)
        return spec


def list_methods(namespace: str | None = None) -> list[str]:
    """Canonical method names (aliases folded into their spec)."""
    ensure_loaded()
    with _LOCK:
        specs = {id(s): s for s in _REGISTRY.values()}
        names = sorted(s.name for s in specs.values())
    if namespace:
        names = [n for n in names if n.startswith(namespace + ".")]
    return names


def ensure_loaded() -> None:
    global _LOADED
    with _LOCK:
        if _LOADED:
            return
        for mod in _BUILTIN_MODULES:
            importlib.import_module(mod)
        _LOADED = True


def _func_desc(fn: t.Callable[..., t.Any]) -> str | None:
    """One-line description from the docstring, else the signature."""
    doc = (fn.__doc__ or "").strip().splitlines()
    if doc:
        return doc[0].strip()
    return f"{fn.__name__}{inspect.signature(fn)}"


__all__ = [
    "MethodSpec",
    "register",
    "method",
    "resolve",
    "list_methods",
    "ensure_loaded",
]
