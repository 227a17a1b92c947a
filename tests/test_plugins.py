import pytest

from minimr.apps import indexer, wc
from minimr.plugins import App, PluginError, load_app

ALL_APPS = ["wc", "indexer", "early_exit", "crash", "nocrash", "jobcount", "mtiming", "rtiming"]


def test_load_by_bare_name():
    app = load_app("wc")
    assert app.map_fn is wc.map_fn
    assert app.reduce_fn is wc.reduce_fn


@pytest.mark.parametrize(
    "name", ["mapreduce/mrapps/wc.so", "wc.so", "./wc.py", "/abs/dir/wc.so"]
)
def test_load_by_path(name):
    assert load_app(name) == App(wc.map_fn, wc.reduce_fn)


def test_result_unpacks_into_pair():
    map_fn, reduce_fn = load_app("indexer.so")
    assert map_fn is indexer.map_fn
    assert reduce_fn is indexer.reduce_fn


@pytest.mark.parametrize("name", ALL_APPS)
def test_every_bundled_app_loads(name):
    app = load_app(name)
    assert callable(app.map_fn) and callable(app.reduce_fn)
    assert app.map_fn.__module__.endswith(name)


@pytest.mark.parametrize("name", ["missing", "missing.so", "", "wc.dll"])
def test_unknown_app_raises(name):
    with pytest.raises(PluginError):
        load_app(name)


def test_plugin_error_is_lookup_error():
    with pytest.raises(LookupError, match="cannot load plugin nothing.so"):
        load_app("nothing.so")


def test_loaded_functions_work():
    map_fn, reduce_fn = load_app("wc")
    pairs = map_fn("f.txt", "one two one")
    assert [kv.key for kv in pairs] == ["one", "two", "one"]
    assert reduce_fn("one", ["1", "1"]) == "2"