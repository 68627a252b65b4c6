# vmoutil

Small building blocks for a Kubernetes monitoring operator that runs
OpenSearch clusters. They use only the standard library.

## Installation

```
pip install .
pip install ".[test]"   # adds pytest for running the test suite
```

## Modules

### `vmoutil.memory`: JVM heap sizing

This module turns a pod memory request, written as a Kubernetes quantity, into
JVM heap options. The heap is 75% of the pod memory and is always a whole
number with the unit `k`, `m` or `g`. A value that does not divide evenly into
the chosen unit is rounded up.

```python
from vmoutil.memory import (
    format_jvm_heap_min_max,
    format_jvm_heap_size,
    parse_quantity,
    pod_mem_to_jvm_heap,
    pod_mem_to_jvm_heap_args,
)

format_jvm_heap_size(1024 * 1024)        # "1m"
format_jvm_heap_min_max("2g")            # "-Xms2g -Xmx2g"
pod_mem_to_jvm_heap(".5Gi")              # "384m"
pod_mem_to_jvm_heap_args("500Mi", "")    # "-Xms375m -Xmx375m"
pod_mem_to_jvm_heap_args("", "-Xms375m -Xmx375m")  # empty size: the default comes back
parse_quantity("1Ki")                    # 1024
```

`parse_quantity` reads the following quantities:

- binary suffixes: `Ki`, `Mi`, `Gi`, `Ti`, `Pi`, `Ei`
- decimal suffixes: `n`, `u`, `m`, `k`, `M`, `G`, `T`, `P`, `E`
- exponents, such as `1e3`

It returns a whole number and rounds any fraction up, away from zero. A string
that is not a valid quantity raises `ValueError`. The constants `UNIT_K`,
`UNIT_M` and `UNIT_G` are 1024, 1024² and 1024³.

### `vmoutil.logs`: structured JSON logging

`init_logs(development=False, level=None)` sets up the root logger so that it
writes one JSON object per record to standard error. Calling it again replaces
its handler and does not add a second one.

- Each object has the keys `level`, `@timestamp`, `caller` and `message`.
- A record from a named logger also gets `logger`.
- Structured fields attached to a record are added to the object.
- The level defaults to Info. It may be given as a `logging` level or as a
  name such as `"debug"` or `"error"`. An unknown name raises `ValueError`.
- In development mode, exception stack traces are included from Warning level
  up. Otherwise they are included from Error level up.

`JsonFormatter` is the formatter behind this, and you can attach it to any
handler.

`build_logger(caller_skip=0)` returns an Info-level JSON logger. It reports as
the caller the frame `caller_skip` levels above the logging call, which suits
helpers that wrap logging calls. Its `with_fields(**fields)` returns a logger
that adds those fields to every record.

The constants `FIELD_RESOURCE_NAMESPACE`, `FIELD_RESOURCE_NAME`,
`FIELD_CONTROLLER`, `FIELD_WEBHOOK` and `FIELD_AGENT` name the standard
structured fields.

### `vmoutil.vzlog`: "once" and "progress" logging

Reconcile loops run the same code again and again. A `VerrazzanoLogger`
throttles what they log:

- A message sent through `once` or `oncef` is written a single time.
- A message sent through `progress` or `progressf` is written at most once per
  period. The period is 60 seconds by default and is changed with
  `set_frequency(secs)`.
- When a different message is logged, the previous one is never written again.

Loggers belong to a `LogContext`, which is kept per key (usually a resource).
Each context holds one logger per component name.

```python
import logging
from vmoutil.vzlog import ensure_context, delete_log_context

sink = logging.getLogger("reconciler")
log = ensure_context("my-namespace/my-resource").ensure_logger("default", sink, sink)
log.set_frequency(30)
log.progress("Waiting for the secret")
log.oncef("Statefulset %s has changed", "es-master")
delete_log_context("my-namespace/my-resource")
```

Formatting methods take printf-style templates, and `%v` is accepted as
`%s`. The logger also has plain `debug`, `debugf`, `info`, `infof`, `error`
and `errorf`. `error_new_err` and `errorf_new_err` log an error and return it
as a `RuntimeError`, ready to raise. `set_base_logger` replaces the logger
that messages are written through.

`ensure_resource_logger(ResourceConfig(...))` gives one context per resource
id. The context is kept while the generation stays the same, so throttling
carries over between reconcile calls. A new generation starts a fresh
context. Its records carry the resource namespace, resource name and
controller as fields. `default_logger()` returns a logger that writes through
the `vmoutil` standard logger, which is handy in tests. The contexts live in
`LOG_CONTEXT_MAP`.

### `vmoutil.signals`: graceful shutdown

`setup_signal_handler()` installs handlers for SIGINT and SIGTERM (SIGINT
only on Windows). It returns a `threading.Event` that is set on the first
signal. A second signal ends the process at once with status 1. Calling the
function a second time raises `RuntimeError`.

### `vmoutil.statefulsets`: safe StatefulSet updates

The module works on a small model of a StatefulSet. The `StatefulSet` class
has these fields:

- name and namespace
- replicas and ready replicas
- volume claim template names
- selector
- containers, built from `Container` and `EnvVar`

`create_plan(log, existing_list, expected_list)` compares the StatefulSets
that exist with the ones that should exist and returns a `StatefulSetPlan`.

- The plan lists `create`, `update` and `delete`, and sets `existing_cluster`
  and `bounce_nodes`.
- `log` needs an `oncef` method, such as a `VerrazzanoLogger`. The plan uses
  it to report spec differences.
- A scale-down is allowed when the expected total replicas is at least three
  and greater than half the ready replicas now running.
- A scale-down is also allowed when the expected total is zero, and when a
  single-node cluster keeps its name.
- When changes are held back from a running cluster, `conflict` holds a
  `RuntimeError` that explains why.

`copy_from_existing(expected, existing)` carries over from `existing` the
fields that must not change:

- the volume claim templates
- the selector
- the `cluster.initial_master_nodes` setting of the `es-master` container

`get_pvc_names(stateful_set)` lists the PVC names a StatefulSet will claim,
such as `p1-foo-0` and `p1-foo-1`.

## What this package does not do

This is a library only. It has no command to run and no controller loop. It
does not talk to a Kubernetes API server, and it does not build full
Kubernetes objects. The StatefulSet model holds just the fields that planning
needs. Applying a plan to a cluster is left to the caller.