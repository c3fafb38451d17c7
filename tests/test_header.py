import pytest

from vxtools.header import (
    TemplateHeader,
    TemplateNotParsedError,
    entry_name,
    file_header_lines,
    header_map,
    template_header,
)


@pytest.fixture
def wwwroot(tmp_path):
    template = tmp_path / "template"
    template.mkdir()
    for name in ("2.tmpl", "3.tmpl", "5.tmpl", "t.bw", "a1.v", "b1.v"):
        (template / name).write_text(f"content of {name}", encoding="utf-8")
    return str(tmp_path)


def test_template_header_two_files():
    header = template_header(["file=a1.v", "file=b1.v"])
    assert header.file == ["a1.v", "b1.v"]


@pytest.mark.parametrize(
    "lines, length",
    [
        (["file=./2.tmpl", "file=./3.tmpl", "file=/template/5.tmpl"], 3),
        (["file=./2.tmpl", "file=/template/5.tmpl", "//File=./3.tmpl"], 2),
        (["file=./2.tmpl", "file=./3.tmpl", "file="], 2),
    ],
)
def test_template_header_lengths_and_open(wwwroot, lines, length):
    header = template_header(lines)
    assert len(header.file) == length
    contents = header.open_file(wwwroot, "/template/t.bw")
    assert len(contents) == length


def test_template_header_settings():
    header = template_header(
        ["entryName = abc", "delimLeft=#*", "delimRight=*#", "other=x"]
    )
    assert header == TemplateHeader(entry_name="abc", file=[], delim_left="#*", delim_right="*#")


def test_open_file_index_page(wwwroot):
    header = TemplateHeader(file=["a1.v", "b1.v"])
    contents = header.open_file(wwwroot, "/template/index.v")
    assert contents == {"a1.v": "content of a1.v", "b1.v": "content of b1.v"}


@pytest.mark.parametrize(
    "files, length",
    [
        (["./2.tmpl", "./3.tmpl", "/template/5.tmpl"], 3),
        (["./2.tmpl", "./../template/5.tmpl", "/template/5.tmpl"], 2),
        (["./2.tmpl", "../template/5.tmpl", "/template/5.tmpl"], 2),
        (["./2.tmpl", "3.tmpl", "t.bw"], 3),
    ],
)
def test_open_file_found(wwwroot, files, length):
    contents = TemplateHeader(file=files).open_file(wwwroot, "/template/1.tmpl")
    assert len(contents) == length


@pytest.mark.parametrize(
    "files",
    [
        ["./2.tmpl", "./3.tmpl", "/6.tmpl"],
        ["./2.tmpl", "/../3.tmpl", "/template/5.tmpl"],
        ["./2.tmpl", "../template/5.tmpl", "/"],
        ["./2.tmpl", "../template/5.tmpl", "../../"],
    ],
)
def test_open_file_fails(wwwroot, files):
    with pytest.raises(OSError):
        TemplateHeader(file=files).open_file(wwwroot, "/template/1.tmpl")


def test_header_map_groups_and_skips():
    result = header_map(["file=a", "file = b", "=x", "noequals", " key\t= v "])
    assert result == {"file": ["a", "b"], "key": ["v"]}


def test_file_header_lines_splits_body():
    text = "// igop\n// entryName=abc\n// file=y2.go\npackage main\n"
    assert file_header_lines(text) == (
        ["igop", "entryName=abc", "file=y2.go"],
        "package main\n",
    )


def test_file_header_lines_skips_empty_and_crlf():
    assert file_header_lines("//\r\n// a \r\nbody") == (["a"], "body")


def test_file_header_lines_drops_non_comment_slash_line():
    assert file_header_lines("/x\nbody") == ([], "body")


def test_file_header_lines_unterminated_comment():
    assert file_header_lines("// only") == ([], "")


def test_file_header_lines_no_header():
    assert file_header_lines("{{.}}") == ([], "{{.}}")


@pytest.mark.parametrize(
    "name, result",
    [
        ("index.html", "Main"),
        ("", "Main"),
        ("/", "Main"),
        (".", "Main"),
        ("_a", "Main"),
        ("@a", "Main"),
        ("A_", "Main"),
        ("a", "Main"),
        ("A.go", "A"),
        ("a.go", "A"),
        ("dir/page.tmpl", "Page"),
        ("A_.go", "Main"),
    ],
)
def test_entry_name(name, result):
    assert entry_name("", name) == result


def test_entry_name_prefers_first():
    assert entry_name("abc", "page.go") == "abc"


def test_not_parsed_error_message():
    assert str(TemplateNotParsedError()) == "the template has not been parsed yet"