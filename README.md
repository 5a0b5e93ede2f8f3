# magekit

Helpers for writing build scripts in Python. You can run external commands and choose what output reaches the terminal. You can copy and move files with glob support, and install Go command-line tools at an acceptable version. You can download release binaries, on their own or inside archives, and export variables to the CI system you are running on.

## Installing

    pip install magekit

To run the test suite:

    pip install "magekit[test]"
    pytest

## Running commands

`magekit.command.command(cmd, *args)` returns a `PreparedCommand`. You configure it with chained calls, then run it. The run method you pick decides what reaches your terminal:

| method       | stdout printed               | stderr printed       | returns stdout |
|--------------|------------------------------|----------------------|----------------|
| `run()`      | only in verbose mode         | yes                  | no             |
| `run_v()`    | always                       | yes                  | no             |
| `run_e()`    | only when the command fails  | only when it fails   | no             |
| `run_s()`    | never                        | never                | no             |
| `output()`   | only in verbose mode         | yes                  | yes            |
| `output_v()` | always                       | yes                  | yes            |
| `output_e()` | only when the command fails  | only when it fails   | yes            |
| `output_s()` | never                        | never                | yes            |

The `output*` methods return stdout with one trailing newline removed.

Verbose mode is on when the `MAGEFILE_VERBOSE` environment variable is set to a true value such as `1` or `true`. You can check it with `magekit.command.is_verbose()`. In verbose mode each command line is also echoed to stderr before it runs.

```python
from magekit.command import command

command("git", "status").run_v()

version = command("git", "describe", "--tags").output_s()

flag = "-v" if verbose else ""
command("pytest", flag, "tests").collapse_args().env("CI=1").in_dir("project").run()
```

Other settings:

- `args(...)` appends arguments.
- `collapse_args()` drops empty ones.
- `env("NAME=VALUE", ...)` adds to a copy of the current environment.
- `stdin(...)` accepts a `str`, `bytes` or a readable object.
- `stdout(...)` and `stderr(...)` redirect to a text writer, or pass `None` to discard.
- `silent()` discards both.
- `exec()` runs with the streams as configured and returns `(ran, exit_code)`.

A command that cannot be started, or that exits with a non-zero code, raises `magekit.command.CommandError`. The exception carries the exit `code` and a `ran` flag. When one of the `output*` methods fails, the exception also carries the captured `output`.

Calling `.must()` on a command marks it as fatal. It then raises `magekit.mgx.FatalError` with exit code 1, chained from the underlying `CommandError`. `CommandError` is itself a subclass of `FatalError`. `magekit.mgx.must(err)` raises a `FatalError` for any error or message you pass it, and does nothing for `None`.

### Shortcuts and shared settings

`magekit.builder` has module-level shortcuts for one-off commands: `run`, `run_v`, `run_e`, `run_s`, `output`, `output_v`, `output_e` and `output_s`. A `CommandBuilder` shares an error policy, extra environment variables and a working directory between many commands:

```python
from magekit.builder import CommandBuilder, output_s, run_v

run_v("make", "all")
sha = output_s("git", "rev-parse", "HEAD")

builder = CommandBuilder(stop_on_error=True, env=["GOFLAGS=-mod=mod"], directory="service")
builder.run("go", "build", "./...")
cmd = builder.command("go", "test")  # a PreparedCommand to configure further
```

## Capturing output

`magekit.capture` swaps `sys.stdout` or `sys.stderr` for a buffer until the capture is released:

```python
from magekit.capture import record_stdout

recording = record_stdout()
print("hello", end="")
assert recording.output() == "hello"   # releases and returns what was written
```

A `Capture` also works as a context manager that releases on exit.

## Copying and moving files

`magekit.fileops.copy` and `magekit.fileops.move` accept glob patterns as the source.

- When the destination is an existing directory, each item is placed inside it.
- The parent of the destination must already exist.
- A source that matches nothing raises `FileNotFoundError`.

```python
from magekit.fileops import CopyOption, MoveOption, copy, move

copy("a.txt", "/tmp")
copy("*.txt", "/tmp")
copy("a/*", "/tmp", CopyOption.NO_OVERWRITE)
copy("a", "/tmp", CopyOption.RECURSIVE)

move("build/*.tar.gz", "dist", MoveOption.NO_OVERWRITE)
```

Copying:

- Without `CopyOption.RECURSIVE`, a directory is created at the destination but its contents are not copied.
- With `NO_OVERWRITE`, existing files are left untouched.
- File modes are kept; owner and group are not.

Moving:

- Moving replaces an existing destination unless `MoveOption.NO_OVERWRITE` is given, in which case that item is skipped.
- Moving a file onto an existing directory raises `NotADirectoryError`.
- Moving uses `os.rename`, so source and destination must be on the same filesystem.

## Cross-platform helpers

```python
from magekit import xplat

xplat.detect_shell()          # MSYSTEM value, $SHELL's name, "powershell", "cmd" or "posix"
xplat.in_path("./bin")        # is it an entry of PATH?
xplat.ensure_in_path("./bin") # prepend to PATH if missing
xplat.file_ext()              # ".exe" on Windows, "" elsewhere
```

`prepend_path` changes `PATH` for the current process. On Azure Pipelines (where `TF_BUILD` is true) it also prints the pipeline command that prepends the path for later steps.

## CI build providers

`magekit.ci.detect_build_provider()` returns `(provider, detected)`. It detects Azure Pipelines from `TF_BUILD` and GitHub Actions from `GITHUB_ACTIONS`. Any providers you pass are checked first. When nothing matches it returns a `NoopBuildProvider` and `False`.

```python
from magekit.ci import detect_build_provider

provider, detected = detect_build_provider()
provider.set_env("LOG_LEVEL", "3")
provider.prepend_path("/go/bin")
```

How each provider exports values to later steps:

- `AzureBuildProvider` prints `##vso[...]` logging commands.
- `GitHubBuildProvider` appends lines to the files named by `GITHUB_ENV` and `GITHUB_PATH`.

These calls do not change the current process's environment.

To write your own provider, subclass `BuildProvider` and implement `set_env`, `prepend_path` and `is_detected`.

## GOPATH

`magekit.gopath` has the following functions:

- `gopath()` returns `$GOPATH`, or `~/go` when it is unset.
- `get_gopath_bin()` returns its `bin` directory.
- `ensure_gopath_bin()` creates that directory and makes sure it is on `PATH`.
- `use_temp_gopath()` is a context manager that points `GOPATH` at a temporary directory for the duration of a block, which is useful in tests.

## Installing tools

`magekit.install` checks whether a tool is on `PATH` at an acceptable version. If it is not, it installs it with `go install`:

```python
from magekit.install import EnsurePackageOptions, ensure_package_with

ensure_package_with(EnsurePackageOptions(
    name="example.com/tools/widget/v2",
    default_version="v2.0.2",
    allowed_version="2.x",
    version_command="--version",
    destination="bin",
))
```

Version handling:

- The command name is taken from the package path, skipping major-version suffixes such as `/v2`.
- When `allowed_version` is empty, it defaults to `^default_version`.
- A tool whose version output, or whose constraint, cannot be parsed is accepted as is.

Other functions:

- `install_package` and `install_package_with` install unconditionally.
- `ensure_mage` and `install_mage` handle mage itself.
- `get_command_version` returns the first semantic version found in a command's output.
- `check_command_version` and `is_command_available` compare that version against a constraint.

`magekit.versions` provides the `Version` and `Constraint` types behind this. Constraints support `^1.2.3`, `~1.4`, `2.x`, comparison operators, comma-separated terms, `a - b` ranges and `||` alternatives:

```python
from magekit.versions import Constraint, Version

Constraint.parse("^1.2.3").check(Version.parse("1.9.0"))   # True
```

### Downloading binaries

Release binaries can be downloaded straight into `GOPATH/bin`. The placeholders `{{.GOOS}}`, `{{.GOARCH}}`, `{{.EXT}}` and `{{.VERSION}}` are filled in from the current platform:

```python
from magekit.install import download_to_gopath_bin

download_to_gopath_bin(
    "https://downloads.example.com/{{.VERSION}}/{{.GOOS}}/{{.GOARCH}}/widget{{.EXT}}",
    "widget",
    "v1.0.0",
)
```

`magekit.downloads` gives finer control:

- `DownloadOptions` can remap OS and architecture names and add a post-download hook.
- `download(dest_dir, opts)` installs into any directory.
- `render_template` expands a template on its own.

HTTP error statuses raise `ConnectionError`.

For tools shipped inside archives, use `magekit.archive.download_to_gopath_bin` with a `DownloadArchiveOptions`:

- `archive_extensions` maps each OS name to its archive extension.
- `target_file_template` gives the path of the binary inside the archive.

Zip and tar archives (plain, gzip, bzip2 and xz) are supported.

## What it does not do

magekit is a library of helpers to call from your own Python build scripts. It has no command-line program of its own: it does not discover, list or run build targets for you.