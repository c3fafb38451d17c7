"""Header lines of dynamic pages and the names derived from them.

A page may start with ``//`` comment lines holding ``key=value`` settings:
``entryName`` names the function to run, ``file`` names extra files to
load (repeatable) and ``delimLeft``/``delimRight`` change the template
delimiters.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field

__all__ = [
    "TemplateHeader",
    "TemplateNotParsedError",
    "entry_name",
    "file_header_lines",
    "header_map",
    "template_header",
]


class TemplateNotParsedError(RuntimeError):
    """The template was used before it was parsed."""

    def __init__(self, message: str = "the template has not been parsed yet") -> None:
        super().__init__(message)


def _join(*parts: str) -> str:
    """Join path elements, ignoring empty ones, and clean the result."""
    joined = "/".join(part for part in parts if part)
    return posixpath.normpath(joined) if joined else ""


def _base(path: str) -> str:
    """Return the last element of *path*, as a slash-separated path."""
    if not path:
        return "."
    path = path.rstrip("/")
    if not path:
        return "/"
    return path.rsplit("/", 1)[-1]


def _dir(path: str) -> str:
    return posixpath.normpath(posixpath.dirname(path)) if posixpath.dirname(path) else "."


@dataclass
class TemplateHeader:
    """Settings read from a page's header lines."""

    entry_name: str = ""
    file: list[str] = field(default_factory=list)
    delim_left: str = ""
    delim_right: str = ""

    def open_file(self, root_path: str, page_path: str) -> dict[str, str]:
        """Read every listed file and return its content keyed by base name.

        A name starting with ``/`` or ``\\`` is taken from *root_path*; any
        other name is relative to the directory of *page_path*.  Paths never
        leave *root_path*.  Raises :class:`OSError` if a file cannot be read.
        """
        dir_path = _dir(page_path)
        contents: dict[str, str] = {}
        for name in self.file:
            if name[:1] in ("/", "\\"):
                file_path = posixpath.normpath(name)
            else:
                file_path = _join(dir_path, name)
            file_path = _join(root_path, file_path)
            try:
                with open(file_path, encoding="utf-8") as handle:
                    text = handle.read()
            except OSError as exc:
                raise OSError(
                    f"vxtools: dynamically embedded template file read failed ({exc})"
                ) from exc
            contents[_base(file_path)] = text
        return contents


def header_map(lines: list[str]) -> dict[str, list[str]]:
    """Group ``key=value`` lines by key; lines without a key are skipped."""
    result: dict[str, list[str]] = {}
    for line in lines:
        index = line.find("=")
        if index <= 0:
            continue
        key = line[:index].strip("\t ")
        value = line[index + 1:].strip("\t ")
        result.setdefault(key, []).append(value)
    return result


def template_header(lines: list[str]) -> TemplateHeader:
    """Build a :class:`TemplateHeader` from header lines."""
    header = TemplateHeader()
    for key, values in header_map(lines).items():
        if key == "entryName":
            header.entry_name = values[0]
        elif key == "file":
            header.file.extend(value for value in values if value)
        elif key == "delimLeft":
            header.delim_left = values[0]
        elif key == "delimRight":
            header.delim_right = values[0]
    return header


def file_header_lines(text: str) -> tuple[list[str], str]:
    """Split the leading ``//`` comment lines off *text*.

    Returns the non-empty comment texts and the rest of *text*.  A line that
    starts with ``/`` but is not a comment ends the header and is dropped, as
    is a final comment line without a newline.
    """
    lines: list[str] = []
    pos = 0
    while pos < len(text) and text[pos] == "/":
        end = text.find("\n", pos)
        if end == -1:
            return lines, ""
        line = text[pos:end + 1]
        pos = end + 1
        if len(line) <= 2 or not line.startswith("//"):
            break
        content = line[2:].strip()
        if content:
            lines.append(content)
    return lines, text[pos:]


def entry_name(name1: str, name2: str) -> str:
    """Return *name1*, or an entry function name derived from path *name2*.

    The base name up to its first dot is capitalised; ``Main`` is returned
    for names without an extension, ``index``, empty names and names that
    are not plain ASCII letters and digits.
    """
    if name1:
        return name1
    base = _base(name2)
    dot = base.find(".")
    if dot == -1:
        return "Main"
    base = base[:dot]
    if base in ("", "index"):
        return "Main"
    if not all(char.isascii() and char.isalnum() for char in base):
        return "Main"
    return base[0].upper() + base[1:]