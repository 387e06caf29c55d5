# admiral

Building blocks for controllers that span several clusters, and in-memory
fakes that make such controllers easy to test. It is a library: it has no
command of its own.

## What is inside

| Module | Purpose |
| --- | --- |
| `admiral.ipam` | `IPPool`, an allocator of IPv4 addresses from a CIDR. It allocates single addresses and contiguous blocks, and it supports release and reservation. Metrics callbacks are optional and go through `MetricsReporterFuncs`. |
| `admiral.logger` | `Logger`, a levelled logger. It has `info`, `warning`, `error`, `fatal` and `fatal_on_error`, and a `*f` formatting variant of each. `v(level)` sets verbosity, `with_name` names the logger, and sinks are pluggable (`LogSink`, `StdlibSink`, `set_default_sink`, `get_logger`). It also holds the levels `DEBUG`, `LIBDEBUG`, `TRACE` and `LIBTRACE`. |
| `admiral.kzerolog` | `ConsoleSink`, a console sink that writes one line per entry with fixed-width caller and logger-name columns. `add_flags` adds `-v` and `--alsologtostderr` to an `argparse` parser. `init_k8s_logging(verbosity, stream)` installs the sink as the default. |
| `admiral.reporter` | Progress reporters built on `Basic` and `Adapter`: `stdout()`, `silent()` and `klog()` (through `logging`), plus `Tracker`, which records whether the current operation had warnings or failures. |
| `admiral.federator` | The `Federator` abstract base class, `NoopFederator`, and `FakeFederator`, which records the objects it distributes and deletes so tests can check them. It also holds `CLUSTER_ID_LABEL_KEY`. |
| `admiral.command` | `Executor` and `FakeCommand`, a fake command runner. It records commands and returns configured output. |
| `admiral.matchers` | `contain_error_substring`, which checks that one error's message contains another's. |
| `admiral.names` | Well-known component names. |
| `admiral.fake.client` | `Fake`, an in-memory API fake driven by a chain of reactors, with `ResourceClient`, `Action`, API error classes and label/field selector parsing. |
| `admiral.fake.reactors` | Reactors that make the fake behave like a real API server (`add_basic_reactors` and the individual `add_*_reactor` functions). |
| `admiral.fake.failure` | Failure injection: `fail_on_action`, `new_failing_reactor`, `conflict_on_update_reactor` and `add_verify_namespace_reactor`. |
| `admiral.fake.reacting` | `ReactingClient`, which intercepts requests by verb (`VerbType`) and resource. `failing_reaction` gives a reaction that always fails. |

The only runtime dependency is `sortedcontainers`.

## IP address pools

```python
from admiral.ipam import IPPool

pool = IPPool("169.254.1.0/24")
print(pool.size())          # 254: network and broadcast addresses are excluded

block = pool.allocate(10)   # the lowest free run of ten contiguous addresses
pool.reserve("169.254.1.200")
pool.release(*block)
print(pool.cidr())          # "169.254.1.0/24"
```

A single address comes from the top of the pool.

`ValueError` is raised in these cases:
- the CIDR is invalid, or is smaller than a /30;
- the count asked for is negative;
- too few addresses are free;
- no contiguous block of the size asked for is free;
- an address that is released or reserved lies outside the CIDR;
- an address that is reserved is already allocated.

`reserve` is all or nothing.

## Logging

```python
from admiral.logger import DEBUG, get_logger
from admiral.kzerolog import init_k8s_logging

init_k8s_logging(verbosity=DEBUG)
log = get_logger("gateway")
log.info("Starting", "node", "worker-1")
log.warningf("Retrying in %d seconds", 5)
log.v(DEBUG).info("Detailed state")
```

`fatal` and `fatal_on_error` log the entry and then raise `SystemExit(255)`. `fatal_on_error` does nothing when the error is `None`.

## Reporting progress

```python
from admiral.reporter import stdout, Tracker

tracker = Tracker(stdout())
tracker.start("Deploying the gateway")
tracker.warning("Gateway node has no public IP")   # prints "WARNING: ..."
tracker.success("Gateway deployed")
tracker.end()

if tracker.has_warnings():
    ...
```

`error(err, message, *args)` does the following in order:
1. It wraps the error with the formatted message.
2. It reports the wrapped error as a failure, with its first letter capitalised.
3. It ends the operation.
4. It returns the wrapped error.

When the error is `None`, `error` does nothing and returns `None`.

## Testing with the API fake

Objects are plain dictionaries with a `metadata` mapping.

```python
from admiral.fake.client import Fake
from admiral.fake.reactors import add_basic_reactors
from admiral.fake.failure import fail_on_action

fake = Fake()
add_basic_reactors(fake)

pods = fake.resource("pods", "test-ns")
created = pods.create({"metadata": {"generateName": "pod-", "labels": {"app": "test"}}})
# created has a generated name, resourceVersion "1", a UID and a creation timestamp

fail_on_action(fake, "pods", "update", None, True)   # only the next update fails
```

The basic reactors reproduce this server behaviour:
- generated names;
- name validation;
- resource-version checks and `ConflictError` on update;
- deletion preconditions;
- finalizers that postpone deletion until they are removed;
- field-selector filtering of lists;
- label/field-selector delete-collection.

`add_verify_namespace_reactor` makes requests in a namespace that does not exist fail with `NotFoundError`. Deleting a namespace also deletes the objects it holds. `Fake.actions_for` lists the recorded actions, so tests can check that no request was made.

## What the package does not do

- It does not talk to a real cluster or API server. The clients work only against the in-memory `Fake`.
- The fake has no watch support: objects can be got, created, updated, deleted and listed, but not watched.
- The package starts no HTTP server for metrics or profiling.
- `Executor` never runs real processes. It only records commands and hands back the output it was given.