"""Dynamic page templates: header handling, included files and layout.

A page's header lines choose the delimiters and name files to include.
The body and the included files are reflowed so that a block opened with
the left delimiter at a line's end and closed with the right delimiter at
a later line's start may span several lines, one action per line.
"""

from __future__ import annotations

import os
from typing import IO, Optional, Union

from vxtools.header import (
    TemplateHeader,
    TemplateNotParsedError,
    file_header_lines,
    template_header,
)

__all__ = ["Template"]

_NEWLINES = ("\r\n", "\n", "\r")


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


class Template:
    """A dynamic page: parse it, then read its formatted sources."""

    def __init__(self) -> None:
        self.root_path = ""
        self.page_path = ""
        self.entry_name = ""
        self.file_name = ""
        self.header: Optional[TemplateHeader] = None
        self._sources: Optional[dict[str, str]] = None

    def set_path(self, root: str, page: str) -> None:
        """Set the site root and the page path inside it."""
        self.root_path = root
        self.page_path = page
        self.file_name = _base(page)

    def set_entry_name(self, name: str) -> None:
        """Set the entry name."""
        self.entry_name = name

    def parse_text(self, name: str, content: str) -> None:
        """Parse *content* as the page called *name*."""
        self.file_name = name
        self._parse_string(content)

    def parse_file(self, path: str) -> None:
        """Parse the page stored at *path*."""
        with open(path, encoding="utf-8") as handle:
            self.file_name = os.path.basename(path)
            self.parse(handle)

    def parse(self, stream: IO[Union[str, bytes]]) -> None:
        """Parse a page read from *stream*.

        Raises :class:`OSError` if an included file cannot be read.
        """
        data = stream.read()
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        self._parse_string(data)

    def _parse_string(self, text: str) -> None:
        lines, body = file_header_lines(text)
        header = template_header(lines)
        libs = header.open_file(self.root_path, self.page_path)
        left, right = header.delim_left, header.delim_right
        sources = {self.file_name: self.format(left, right, body)}
        for name, content in libs.items():
            sources[name] = self.format(left, right, content)
        self.header = header
        self._sources = sources

    def sources(self) -> dict[str, str]:
        """Return the formatted page and included files, keyed by name."""
        if self._sources is None:
            raise TemplateNotParsedError()
        return dict(self._sources)

    def format(self, delim_left: str, delim_right: str, content: str) -> str:
        """Reflow multi-line action blocks into one action per line.

        Inside a block, blank lines and ``//`` lines are dropped and each
        other line becomes an action of its own.
        """
        delim_left = delim_left or "{{"
        delim_right = delim_right or "}}"
        out: list[str] = []
        newline = next((sep for sep in _NEWLINES if sep in content), None)
        if newline is None:
            return content
        syntax = False
        pieces = content.split(newline)
        last = len(pieces) - 1
        for index, piece in enumerate(pieces):
            trimmed = piece.strip(" \t")
            left_has = trimmed.endswith(delim_left)
            right_has = trimmed.startswith(delim_right)
            if left_has and right_has:
                out.append(trimmed.removeprefix(delim_right).removesuffix(delim_left))
                syntax = True
                continue
            if left_has:
                out.append(piece.rstrip(" \t").removesuffix(delim_left))
                syntax = True
                continue
            if right_has:
                piece = piece.lstrip(" \t").removeprefix(delim_right)
                syntax = False
            if syntax:
                if not trimmed or trimmed.startswith("//"):
                    continue
                piece = delim_left + piece + delim_right
            elif index != last:
                piece += newline
            out.append(piece)
        result = "".join(out)
        return result or content