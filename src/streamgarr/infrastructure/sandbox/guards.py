"""RestrictedPython guard functions and per-invocation cancel scopes.

Plugin code runs on worker threads. Every guarded operation the
RestrictedPython compiler inserts (attribute/item access, iteration,
augmented assignment) calls :func:`checkpoint`, and so does the top of
every loop body. It raises :class:`SandboxCancelled` once the
invocation's wall-clock bound expired.
"""

from __future__ import annotations

import ast
import asyncio
import concurrent.futures
import operator
import threading
from collections.abc import Callable, Iterable, Iterator
from contextvars import ContextVar
from types import ModuleType
from typing import Any

from RestrictedPython import (
    RestrictingNodeTransformer,
    limited_builtins,
    safe_builtins,
)
from RestrictedPython.Guards import (
    full_write_guard,
    guarded_iter_unpack_sequence,
    guarded_unpack_sequence,
    safer_getattr,
)


class SandboxCancelled(BaseException):
    """Raised inside plugin code after its invocation was abandoned.

    Derives from BaseException so ``except Exception`` in plugin code does
    not swallow it.
    """


class CancelScope:
    """Cancellation state for one sandboxed invocation.

    Holds the event loop that owns the host HTTP client and every
    in-flight future scheduled on it, so ``cancel()`` from the loop side
    tears down pending requests as well as waking sleeping plugin code.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._pending: set[concurrent.futures.Future[Any]] = set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        if self._event.is_set():
            raise SandboxCancelled()

    def wait(self, seconds: float) -> None:
        """Sleep up to ``seconds``; raise as soon as the scope is cancelled."""
        if self._event.wait(seconds):
            raise SandboxCancelled()

    def track(self, future: concurrent.futures.Future[Any]) -> None:
        with self._lock:
            if self._event.is_set():
                future.cancel()
                raise SandboxCancelled()
            self._pending.add(future)

    def untrack(self, future: concurrent.futures.Future[Any]) -> None:
        with self._lock:
            self._pending.discard(future)

    def cancel(self) -> None:
        with self._lock:
            self._event.set()
            pending = list(self._pending)
            self._pending.clear()
        for future in pending:
            future.cancel()


_current_scope: ContextVar[CancelScope | None] = ContextVar(
    "sandbox_cancel_scope", default=None
)


def current_scope() -> CancelScope:
    scope = _current_scope.get()
    if scope is None:
        raise RuntimeError("sandbox capability used outside a sandboxed invocation")
    return scope


def run_in_scope(scope: CancelScope, fn: Callable[..., Any], *args: Any) -> Any:
    """Worker-thread entry point: bind ``scope`` and run ``fn``."""
    token = _current_scope.set(scope)
    try:
        scope.check()
        return fn(*args)
    finally:
        _current_scope.reset(token)


def checkpoint() -> None:
    scope = _current_scope.get()
    if scope is not None:
        scope.check()


# --- guards inserted by the RestrictedPython compiler ---------------------


def guarded_getattr(obj: Any, name: str, default: Any = None) -> Any:
    checkpoint()
    value = safer_getattr(obj, name, default)
    if isinstance(value, ModuleType):
        raise AttributeError(f"access to module object {name!r} is not allowed")
    return value


def guarded_getitem(obj: Any, key: Any) -> Any:
    checkpoint()
    return obj[key]


def guarded_getiter(obj: Iterable[Any]) -> Iterator[Any]:
    checkpoint()
    for item in obj:
        checkpoint()
        yield item


_INPLACE_OPS: dict[str, Callable[[Any, Any], Any]] = {
    "+=": operator.iadd,
    "-=": operator.isub,
    "*=": operator.imul,
    "/=": operator.itruediv,
    "//=": operator.ifloordiv,
    "%=": operator.imod,
    "**=": operator.ipow,
    "<<=": operator.ilshift,
    ">>=": operator.irshift,
    "&=": operator.iand,
    "|=": operator.ior,
    "^=": operator.ixor,
}


def guarded_inplacevar(op: str, x: Any, y: Any) -> Any:
    checkpoint()
    try:
        fn = _INPLACE_OPS[op]
    except KeyError:
        raise SyntaxError(f"unsupported augmented assignment {op!r}") from None
    return fn(x, y)


def guarded_apply(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    checkpoint()
    return fn(*args, **kwargs)


_EXTRA_BUILTINS: dict[str, Any] = {
    "dict": dict,
    "list": list,
    "set": set,
    "frozenset": frozenset,
    "enumerate": enumerate,
    "min": min,
    "max": max,
    "sum": sum,
    "any": any,
    "all": all,
    "map": map,
    "filter": filter,
    "reversed": reversed,
}


def build_builtins(importer: Callable[..., Any]) -> dict[str, Any]:
    """Builtins dict for one plugin: safe subset plus a capability importer."""
    builtins: dict[str, Any] = {}
    builtins.update(safe_builtins)
    builtins.update(limited_builtins)
    builtins.update(_EXTRA_BUILTINS)
    builtins["__import__"] = importer
    builtins["getattr"] = guarded_getattr
    return builtins


def guard_globals() -> dict[str, Any]:
    """Guard names the restricted compiler references from generated code."""
    return {
        "_getattr_": guarded_getattr,
        "_getitem_": guarded_getitem,
        "_getiter_": guarded_getiter,
        "_write_": full_write_guard,
        "_inplacevar_": guarded_inplacevar,
        "_apply_": guarded_apply,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_checkpoint_": checkpoint,
        "__metaclass__": type,
    }


class CheckpointingTransformer(RestrictingNodeTransformer):
    """Restricting policy that also checkpoints at the top of every loop body.

    A loop whose body performs no guarded operation (``while True: pass``)
    would otherwise never observe cancellation and pin its worker thread.
    """

    def visit_While(self, node: ast.While) -> ast.AST:
        return self._prepend_checkpoint(super().visit_While(node))

    def visit_For(self, node: ast.For) -> ast.AST:
        return self._prepend_checkpoint(super().visit_For(node))

    @staticmethod
    def _prepend_checkpoint(node: Any) -> Any:
        if not isinstance(node, (ast.While, ast.For)):
            return node
        call = ast.Expr(
            value=ast.Call(
                func=ast.Name(id="_checkpoint_", ctx=ast.Load()),
                args=[],
                keywords=[],
            )
        )
        ast.copy_location(call, node.body[0])
        ast.fix_missing_locations(call)
        node.body.insert(0, call)
        return node
