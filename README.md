# gcpclosecheck

Building blocks for a checker that finds Google Cloud client resources
(Spanner, Storage, Pub/Sub, Vision and others) that are created but never
released with `Close`, `Stop` or a similar method.

The package provides:

- **Configuration** (`gcpclosecheck.config`): service rules that name, for each
  service, its package path, the functions that create resources and the
  methods that release them. It also holds package exceptions: glob-like
  patterns such as `*/cmd/*` or `**/function/**` for code where a missing
  cleanup is acceptable.
- **Diagnostic control** (`gcpclosecheck.diagnostics`): level filtering,
  potential-false-positive detection and confidence thresholds for reported
  findings.
- **A small syntax tree** (`gcpclosecheck.syntax`): the Go nodes the analysis
  works on (`Ident`, `SelectorExpr`, `CallExpr`, `AssignStmt`, `ReturnStmt`,
  `FuncLit`, `FuncDecl`, `File` and others), a `TypeInfo` holding type facts
  keyed by node, and `walk` and `inspect` for traversal.
- **Resource model** (`gcpclosecheck.model`): `ResourceInfo`, `ContextInfo`,
  `DeferCancelInfo`, `EscapeInfo` and `SpannerEscapeInfo`, each with a
  `validate()` method that raises `ValidationError`.
- **Rule engine** (`gcpclosecheck.rules`): `ServiceRuleEngine`, which looks up
  cleanup methods, caches them, and answers package-exception questions.
- **Escape analysis** (`gcpclosecheck.escape`): `EscapeAnalyzer` decides whether
  a resource is returned from its function or stored in a struct field, and
  whether a Spanner transaction is a parameter of a `ReadWriteTransaction` or
  `ReadOnlyTransaction` closure.
- **Service knowledge** (`gcpclosecheck.gcp`): the known client import paths,
  resource type names and the variable names usually given to created
  resources.
- **Resource tracking** (`gcpclosecheck.tracker`): `ResourceTracker` finds
  resource-creating calls and records the variables they are assigned to.

## Configuration

A rules file is YAML:

```yaml
services:
  - service_name: "spanner"
    package_path: "cloud.google.com/go/spanner"
    creation_functions: ["NewClient", "ReadOnlyTransaction"]
    cleanup_methods:
      - method: "Close"
        required: true
        description: "Client connection close"

package_exceptions:
  - name: "cmd_short_lived"
    pattern: "*/cmd/*"
    condition:
      type: "short_lived"
      description: "Short-lived program exception"
      enabled: true
```

Valid condition types are `short_lived`, `cloud_function` and `test`.
`load_config` reads a file and `parse_config` parses YAML text; neither
validates. Both raise `ConfigError` when the file cannot be read or the YAML
cannot be parsed.

```python
from gcpclosecheck.config import load_config, ConfigError

config = load_config("rules.yaml")
try:
    config.validate()
except ConfigError as err:
    print(err)

config.has_service("spanner")                                        # True
config.should_exempt_package("github.com/example/project/cmd/server")
# (True, "Short-lived program exception")
```

## Using the rule engine

```python
from gcpclosecheck.config import load_config
from gcpclosecheck.rules import ServiceRuleEngine

engine = ServiceRuleEngine()
engine.use_config(load_config("rules.yaml"))   # or engine.load_rules("rules.yaml")

engine.cleanup_method("spanner.Client")        # "Close"
engine.is_cleanup_required("spanner.Client")   # True
engine.service_rule("spanner")                 # a copy of the "spanner" rule
```

`use_config` and `load_rules` validate the configuration and raise
`ConfigError` if it is invalid or cannot be loaded; the configuration in use
is then left unchanged.

## Tracking resources

The tracker works on a syntax tree built with `gcpclosecheck.syntax`, with the
import of each package recorded in a `TypeInfo`:

```python
from gcpclosecheck.syntax import (
    AssignStmt, BlockStmt, CallExpr, File, FuncDecl, Ident, PkgName,
    SelectorExpr, TypeInfo,
)
from gcpclosecheck.tracker import ResourceTracker

spanner = Ident("spanner")
call = CallExpr(SelectorExpr(spanner, Ident("NewClient")), [Ident("ctx")])
assign = AssignStmt([Ident("client"), Ident("err")], [call], define=True)
fn = FuncDecl(Ident("main"), body=BlockStmt([assign]))
file = File(Ident("main"), decls=[fn])

info = TypeInfo()
info.uses[spanner] = PkgName("spanner", "cloud.google.com/go/spanner")

tracker = ResourceTracker(info, engine)
[resource] = tracker.find_resource_creation([file])
resource.variable_name, resource.service_type, resource.cleanup_method
# ("client", "spanner", "Close")
```

`EscapeAnalyzer.analyze_escape(variable, fn)` reports whether the variable is
returned (`"returned from function"`) or assigned to a field
(`"assigned to struct field"`), and `should_skip_resource` turns that into a
decision; resources created by `Query` or `Read` are never skipped.

## Filtering diagnostics

```python
from gcpclosecheck.diagnostics import (
    Diagnostic,
    IntegratedDiagnosticProcessor,
    load_diagnostic_config,
)

config = load_diagnostic_config(b"""
diagnostics:
  level: "info"
  confidence_threshold: 0.8
  potential_false_positive_detection: true
""")
processor = IntegratedDiagnosticProcessor(config)

result = processor.process(Diagnostic("Resource leak: missing defer Close()"), 0.9)
result.should_report   # True
```

A diagnostic whose confidence is below the threshold, whose level is below
the configured level, or whose message hints at a possible false positive
("uncertain", "unclear", "might be" and the like) is not reported, and
`filter_reason` says why. When the level or threshold is missing,
`load_diagnostic_config` uses `"warning"` and `0.7`.

## What this package does not do

- It has no command-line program and does not report findings on its own;
  it supplies the rules, tracking and escape analysis a checker is built from.
- It does not parse Go source. Syntax trees and their `TypeInfo` must be built
  by the caller.
- It ships no built-in rules file. A configuration must be supplied with
  `load_config`, `parse_config` or a `Config` built in code.

## Running the tests

The test suite uses pytest; install the `test` extra to get it, then run
`pytest`.