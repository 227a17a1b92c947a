# minimr

A small MapReduce framework. One master splits the input files into line
ranges, hands one map task to each of a fixed number of workers, collects the
names of the intermediate files they write, and then hands out one reduce task
per reduce partition. Workers fetch intermediate data from each other, run the
application's reduce function and write the final output.

A task whose worker fails is handed to another idle worker, and the master
asks every worker for its health every 20 seconds.

## Installing

    pip install .

For running the tests:

    pip install ".[test]"
    pytest

## Applications

An application is a pair of functions: `map_fn(filename, contents)` returning
a list of `minimr.types.KeyValue` pairs, and `reduce_fn(key, values)` returning
a string. The bundled applications live in `minimr.apps`:

| name         | what it does                                                 |
|--------------|--------------------------------------------------------------|
| `wc`         | counts occurrences of each word (run of letters)             |
| `indexer`    | lists, for each word, the count and names of its documents   |
| `early_exit` | counts input files; keys containing `sherlock` or `tom` reduce slowly |
| `crash`      | sometimes exits the process or stalls, to exercise recovery  |
| `nocrash`    | the same output as `crash`, without the failures             |
| `jobcount`   | counts how many times map tasks were run, via marker files   |
| `mtiming`    | reports how many map tasks ran in parallel                   |
| `rtiming`    | reports how many reduce tasks ran in parallel                |

`minimr.plugins.load_app(name)` returns an `App` holding `map_fn` and
`reduce_fn`. The name may be bare (`wc`) or a path such as `apps/wc.so` or
`wc.py`; only the last component, without a `.so` or `.py` suffix, is used.
An unknown name raises `minimr.plugins.PluginError`.

## Running a cluster

Start the master, telling it how many workers to wait for (`-w`), its port
(`-m`) and the number of reduce partitions (`-r`):

    minimr-master -i "input/pg-*.txt" -p wc -w 4 -m 40000 -r 1

Then start that many workers, each on its own port (`-P`), with the same
application, master port and number of reduce partitions:

    minimr-worker -i "input/pg-*.txt" -p wc -P 40001 -m 40000 -r 1
    minimr-worker -i "input/pg-*.txt" -p wc -P 40002 -m 40000 -r 1
    minimr-worker -i "input/pg-*.txt" -p wc -P 40003 -m 40000 -r 1
    minimr-worker -i "input/pg-*.txt" -p wc -P 40004 -m 40000 -r 1

Options shared by both commands:

- `-i`, `--input` — input files; may be repeated, comma separated, glob
  patterns are expanded (required)
- `-p`, `--plugin` — application to run: a bundled name, or a path whose
  file name names one (required)
- `-r`, `--reduce` — number of reduce partitions (default 1)
- `-w`, `--worker` — number of workers the master waits for (default 4)
- `-m`, `--port` — master port (default 40000)
- `-P`, `--port-worker` — worker port (default 40001)

Everything listens on `127.0.0.1`. Master and workers talk JSON over HTTP:
each call is a `POST /<Method>` with a JSON object body.

Workers write intermediate files as `output/mr-imd-<worker id>-<partition>`
and final files as `output/mr-out-<partition>`, one `key value` line per
distinct key in key order; temporary files go to `output/temp/`, which is
created when needed. Workers exchange intermediate data by file path, so all
of them must run from the same working directory. When all reduce tasks are
done the master tells every worker to shut down and exits.

## Running sequentially

The sequential runner does the whole job in one process and writes
`output/mr-out-0` (the `output` directory must already exist):

    minimr-sequential wc input/pg-*.txt

From Python, with a bundled application or your own functions:

    from minimr.plugins import load_app
    from minimr.sequential import run_sequential

    map_fn, reduce_fn = load_app("wc")
    run_sequential(map_fn, reduce_fn, ["input/pg-1.txt"], "output/mr-out-0")

`run_sequential` returns the number of keys written.

## Using the pieces directly

`minimr.master.Master` and `minimr.worker.Worker` can be driven from Python;
`make_master_server` and `make_worker_server` build the HTTP servers for them,
and a `Worker` accepts any `map_fn` and `reduce_fn`.

## What it does not do

The commands cannot load application code from arbitrary files: `-p` only
selects one of the bundled applications. Other applications can be run only
through the Python API. Nothing listens on anything other than `127.0.0.1`,
and there is no authentication between master and workers.