# zlog

Building blocks for logging driven by *rules*. A rule names a category and a
level. It says where a matching message goes and which format lays it out.

## Rule lines

A rule is one line of this form:

    category.LEVEL  output, limits; format_name

Some examples:

    my_app.INFO     "logs/app.log", 20MB * 5 ~ "logs/app.#r.log"; simple
    my_app.=DEBUG   >stderr
    *.*             >syslog, LOG_LOCAL0
    audit.!WARN     | grep -v noise
    net_.ERROR      $my_record, "net/%c.log"

- **Category.** It may be:
  - `*`, which matches every category;
  - an exact name;
  - a name ending in `_`, which matches that name and its children. For example, `aa_` matches `aa` and `aa_xx` but not `aa1_xx`.

  The category `!` is the wastebin (`Rule.is_wastebin()`). Category names may use letters, digits and `_ - * !`.
- **Level prefix.** It selects which levels pass:
  - no prefix means "this level or higher";
  - `=` means "only this level";
  - `!` means "any level but this";
  - `*` means "all levels".

  Level names are looked up in the `levels` mapping you pass, case-insensitively.
- **Output.** One of the following:
  - a quoted file path; a leading `-` opens it with `O_SYNC`;
  - `|command`, which pipes to a shell command;
  - `>stdout` or `>stderr`;
  - `>syslog, FACILITY`;
  - `$name, "path"`, which sends to a user-defined record function.

  An unknown syslog facility name falls back to `LOG_AUTHPRIV`.
- **File paths.** A path may contain format specs such as `%c` or `%d(%Y%m%d)`, which make it dynamic: the path is rendered again for every message. `%E(NAME)` is replaced by the environment variable `NAME`.
- **Limits.** After the comma, `SIZE * COUNT ~ "archive path"` is parsed.
  - Sizes such as `10MB`, `512KB` or `1GB` are read by `zlog.util.parse_byte_size`. A `B` suffix means powers of 1024 and no `B` means powers of 1000.
  - The archive path must contain `#r` or `#s`.
- **Format.** The part after `;` names a format in the `formats` mapping. Without it, the default format is used.

## Example

```python
from zlog.rule import parse_rule
from zlog.spec import parse_pattern
from zlog.thread import LogThread

levels = {"DEBUG": 20, "INFO": 40, "NOTICE": 60, "WARN": 80, "ERROR": 100, "FATAL": 120}
counter = []                      # collects specs that print a time
simple = parse_pattern("%d %V [%c] %m%n", counter)

rule = parse_rule('my_app.INFO >stdout; simple', levels, simple,
                  {"simple": simple}, file_perms=0o600, fsync_period=0,
                  cache_counter=counter)

thread = LogThread(1, 1024, 2048, len(counter))
thread.event.set_fmt("my_app", __file__, "main", 10, 40, "INFO",
                     "hello %s", ("world",))

if rule.matches_category("my_app"):
    rule.output(thread)           # False when the level is filtered out
rule.close()
```

A format is either a sequence of specs from `parse_pattern` or any object
with a `render(thread)` method.

## Modules

- `zlog.rule`: `parse_rule` and `Rule`.
  - `allows(level)`
  - `output(thread)`
  - `matches_category(name)`
  - `is_wastebin()`
  - `set_record(records)`, which binds a record function by name from a mapping.
  - `close()`

  A `Rule` is also a context manager. Parse errors raise `RuleError`.
- `zlog.spec`: `parse_spec`, `parse_pattern`, `Spec` (`write`, `render`), `hex_dump` and `adjust`.
  - `hex_dump` is the 16-bytes-per-row view used for binary messages.
  - `adjust` applies `%-10.20x` style width and precision.

  Supported conversions are `d g D G ms us M c F f H k L m n r p U v V t T %`. Bad patterns raise `SpecError`.
- `zlog.outputs`: the destinations. Each has `write(message, thread)` and `close()`. Delivery failures raise `OutputError`.
  - `StaticFileOutput` reopens its file if the file was removed or replaced.
  - `DynamicFileOutput`
  - `PipeOutput`
  - `SyslogOutput`
  - `StreamOutput`
  - `RecordOutput`, whose function receives a `RecordMessage` with `buf`, `path` and `len`.

  `syslog_facility(name)` maps facility names to numbers.
- `zlog.thread`: `Event` (`set_fmt`, `set_hex`) and `LogThread`.
  - `LogThread` holds the current event, an MDC dictionary and buffer limits.
  - It offers `rebuild_msg_buf` and `rebuild_event`.
- `zlog.util`: `parse_byte_size(text)` and `replace_env(text, max_size)`.
- `zlog.arraylist`: `ArrayList`, a list with empty slots, a deleter callback and `sortadd`.
- `zlog.hashtable`: `HashTable`, a chained table with pluggable hash, equality and deleters, plus the djb2 `str_hash` and `str_equal`.

## Diagnostics

The library's own diagnostics go through `zlog.profile` (`debug`, `warn`,
`error`, `profile`, `ProfileFlag`). Nothing is written unless an environment
variable names a file to append to:

- `ZLOG_PROFILE_DEBUG` receives debug lines.
- `ZLOG_PROFILE_ERROR` receives warnings and errors.

## What is not included

- There is no configuration file reader.
- There are no global init, reload or shutdown functions.
- There is no category table and no command-line checker.

You parse rule lines yourself and call `Rule.output` for each event.

Rotation is not built in. The file outputs accept a `rotater` callable, and
call it with `(path, length, archive_path, max_size, max_count)` once a file
reaches its size limit. `parse_rule` does not pass a rotater, so the size
limits it reads never trigger a rotation.

## Tests

    pip install -e ".[test]"
    pytest