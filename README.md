# vxtools

A handful of small, independent helpers:

- `vxtools.sqltable`: builds parameterised SQL with `$n` placeholders. It fills
  `$Where$`, `*Where*`, `$Values$`, `$Set$`, `*Set*`, `$Excluded$` and related markers.
  Sub-statements nest, and their arguments are numbered on from the outer statement.
- `vxtools.db`: `Database` is a thin wrapper around any DB-API connection. It gives
  automatic transactions, row-to-dict queries, existence checks and debug logging. The
  module also has helpers that work on result lists.
- `vxtools.smtp`: `Smtp` sends HTML mail over one reusable SMTP connection. It uses
  STARTTLS and `AUTH PLAIN` when the server offers them.
- `vxtools.ticker`: `Ticker` is a periodic ticker. It either hands out tick times or calls
  a function on each tick.
- `vxtools.tcptest`: client/server harnesses for TCP tests.
- `vxtools.watch`: `Watch` watches paths for file-system events, using watchdog.
- `vxtools.header` and `vxtools.template`: read a page's `//` header settings and reflow
  template bodies.

## Install

```
pip install .
pip install ".[test]"   # with pytest
```

## Building SQL

```python
from vxtools.sqltable import prepare

sub = prepare('select * from "B" $Where$').ors('"G1"=?', 1, '"G2"=?', 2)
stmt = (
    prepare('select * from "A" $Where$')
    .and_('"B1"=?', 1)
    .and_('"B3"=?', 3)
    .where("and", "B4=?", sub)
)
stmt.args()  # [1, 3, 1, 2]
stmt.sql()
# select * from "A" where "B1"=$1 and "B3"=$2 and B4=(select * from "B" where "G1"=$3 or "G2"=$4)
```

Call `args()` before `sql()`. The arguments you pass to `args()` fill the template's
`?` marks, or its `$1`, `$2` … references. Once a statement is assembled, the result is
cached, so later calls return the same text. To get an unassembled statement, use
`copy()`, or `ext_args()`, which also adds leading arguments.

`values()`, `sets()`, `ands()` and `ors()` take column/value pairs. Column names that
contain capital letters are quoted with `"`, or with the mark set by `column_mark()`.
`to_types()` appends a cast, giving `$1::type`. `to_funcs()` wraps the placeholder in a
template such as `lower(?)`. `excluded()` names the columns written as
`col=excluded.col` into `$Excluded$`.

## Querying a database

```python
import sqlite3
from vxtools.db import Database, NoRowsError

db = Database().open(sqlite3.connect, ":memory:")
db.exec(None, "create table t (id integer, name text)")
db.exec(None, "insert into t values (?, ?)", 1, "a")
rows = db.query(None, "select id, name from t")   # [{'id': 1, 'name': 'a'}]
db.query_row(None, "select name from t where id = ?", 1).scan()   # ('a',)
db.has("select 1 from t where id = ?", 1)   # True
db.close()
```

How each call handles transactions:

- `exec` runs the statement in its own transaction unless you pass one. If no row was
  affected, it raises `NoRowsError`.
- `query` returns a list of dicts. For a write without `returning`, it hands the
  statement to `exec` and returns `[]`. If a query yields no rows, it raises
  `NoRowsError`.
- `has` raises `NoRowsError` when the query finds nothing.

When you are not connected, the calls raise `ConnectionDoneError`. For `query_row`, the
error comes when you call `scan()`.

Use `with db.transaction() as tx:` to group statements: pass `tx` as the first
argument. The block commits if it finishes, and rolls back if it raises.

Options on `Database`:

- `format_column_name` lowers leading capitals of column names with `key_to_lower`.
- `type_to` and `data_to` convert column values.
- `debug_print` logs each statement.
- `debug_result` may return a canned result instead of touching the database.

`column_filter`, `column_array` and `column_array_nil` work on the lists that `query`
returns.

## Sending mail

```python
from vxtools.smtp import Info, Smtp

password = "password"
with Smtp(Info(server="mail.example.com:587", user_name="me@example.com",
               password=password, from_email="me@example.com")) as mailer:
    mailer.send(["you@example.com"], "Hello", "<b>Hi</b>")
```

`open_config(path)` loads the settings from a JSON file. Its keys match the `Info`
fields without regard to case. If the server dropped the connection, `send` reconnects
once. After `close()`, sending raises `SmtpError`.

## Ticker

```python
from vxtools.ticker import Ticker

with Ticker(0.5) as ticker:
    when = ticker.get(timeout=2)   # datetime of the next tick
    ticker.func(lambda: print("tick"))   # call a function on each tick instead
```

## TCP test harnesses

```python
from vxtools.tcptest import c2s

def server(conn):
    conn.sendall(conn.recv(3))
    conn.close()

def client(conn):
    conn.sendall(b"abc")
    assert conn.recv(3) == b"abc"

c2s("127.0.0.1:0", server, client)
```

The harnesses differ in what they hand over:

- `c2s` and `c2l` connect the client for you.
- `d2s` and `d2l` give the client the listening address instead.
- The `*2s` forms hand each accepted connection to the server on its own thread.
- The `*2l` forms give the server the listener.

`sl` serves in the background and returns the listener; close the listener to stop it.
An exception raised by the client, or by a server handler, is raised again by the
harness.

## Watching files

```python
from vxtools.watch import Watch

with Watch() as watch:
    watch.monitor("/tmp", lambda event: print(event.event_type, event.src_path))
```

Each callback runs on its own thread. An event that repeats the previous one within the
same second is dropped.

## Page headers and templates

A page may begin with `//` lines holding settings:

- `entryName=...` sets the entry name.
- `file=...` names a file to include; it may repeat.
- `delimLeft=...` and `delimRight=...` set the template delimiters.

```python
from vxtools.header import entry_name, file_header_lines, template_header
from vxtools.template import Template

lines, body = file_header_lines("// file=a1.v\n// file=b1.v\nbody")
template_header(lines).file   # ['a1.v', 'b1.v']
entry_name("", "pages/hello.html")   # 'Hello'

page = Template()
page.format("{{", "}}", "{{\n.\n}}1234{{\n.\n}}")   # '{{.}}1234{{.}}'
page.set_path("site", "/template/page.tmpl")
page.parse_text("page.tmpl", "{{\n.\n}}")
page.sources()   # {'page.tmpl': '{{.}}'}
```

`TemplateHeader.open_file` reads the included files relative to the page's directory,
or relative to the root when the name starts with `/`. `Template.sources()` returns the
formatted page and its included files. Calling `sources()` before parsing raises
`TemplateNotParsedError`.

## What is not included

`vxtools.template` prepares template sources but does not render them: there is no
template engine, function map or script runner here, and no web server. Drivers are not
bundled either: `Database` works with whatever DB-API connection factory you pass to
`open()`.

## Running the tests

```
pytest
```