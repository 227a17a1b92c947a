"""Lookup of the bundled map/reduce applications by name."""

from __future__ import annotations

from pathlib import PurePath
from typing import Callable, NamedTuple

from minimr.apps import crash, early_exit, indexer, jobcount, mtiming, nocrash, rtiming, wc
from minimr.types import KeyValue

MapFn = Callable[[str, str], "list[KeyValue]"]
ReduceFn = Callable[[str, "list[str]"], str]

_APPS = {
    "wc": wc,
    "indexer": indexer,
    "early_exit": early_exit,
    "crash": crash,
    "nocrash": nocrash,
    "jobcount": jobcount,
    "mtiming": mtiming,
    "rtiming": rtiming,
}

_SUFFIXES = (".so", ".py")


class PluginError(LookupError):
    """Raised when no application matches the requested name."""


class App(NamedTuple):
    """The map and reduce functions of an application."""

    map_fn: MapFn
    reduce_fn: ReduceFn


def load_app(name: str) -> App:
    """Return the application named ``name``.

    ``name`` may be a bare name such as ``wc`` or a path such as
    ``mapreduce/mrapps/wc.so``; only its final component, without a
    ``.so`` or ``.py`` suffix, is used.
    """
    stem = PurePath(name).name
    for suffix in _SUFFIXES:
        if stem.endswith(suffix):
            stem = stem[: -len(suffix)]
            break
    module = _APPS.get(stem)
    if module is None:
        raise PluginError(f"cannot load plugin {name}")
    return App(module.map_fn, module.reduce_fn)