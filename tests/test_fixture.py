"""
Unit tests for `pagecheck.fixture`.
"""

from pytest import raises

from pagecheck.fixture import FixtureUnavailable, Unavailable, load_fixture

from utils import page


def test_load(tmp_path):
    """Test loading a document and its derived properties."""
    path = tmp_path / "page.html"
    path.write_text(page(), encoding="utf-8")
    fixture = load_fixture(path)
    assert fixture.path == path
    assert fixture.text == page()
    assert fixture.data == page().encode("utf-8")
    assert fixture.size == len(page().encode("utf-8"))


def test_load_str_path(tmp_path):
    """Test that a path can be given as a string."""
    path = tmp_path / "page.html"
    path.write_bytes(b"<!DOCTYPE html>")
    assert load_fixture(str(path)).text == "<!DOCTYPE html>"


def test_size_counts_bytes(tmp_path):
    """Test that the size is in bytes, not characters."""
    path = tmp_path / "page.html"
    path.write_text("smile \U0001f603", encoding="utf-8")
    fixture = load_fixture(path)
    assert len(fixture.text) == 7
    assert fixture.size == 10


def test_missing(tmp_path):
    """Test loading a path that does not exist."""
    path = tmp_path / "missing.html"
    with raises(FixtureUnavailable) as excinfo:
        load_fixture(path)
    assert excinfo.value.reason is Unavailable.NOT_FOUND
    assert excinfo.value.path == path
    assert str(excinfo.value).startswith("Document not found at")


def test_directory(tmp_path):
    """Test loading a directory instead of a file."""
    with raises(FixtureUnavailable) as excinfo:
        load_fixture(tmp_path)
    assert excinfo.value.reason is Unavailable.NOT_FOUND


def test_not_utf8(tmp_path):
    """Test loading a file that is not valid UTF-8."""
    path = tmp_path / "latin1.html"
    path.write_bytes("caf\xe9".encode("iso-8859-1"))
    with raises(FixtureUnavailable) as excinfo:
        load_fixture(path)
    assert excinfo.value.reason is Unavailable.NOT_READABLE
    assert "not valid UTF-8" in str(excinfo.value)


def test_bom_is_kept(tmp_path):
    """Test that a byte order mark stays in the text for checks to find."""
    path = tmp_path / "bom.html"
    path.write_bytes(b"\xef\xbb\xbf<!DOCTYPE html>")
    assert load_fixture(path).text == "\ufeff<!DOCTYPE html>"


def test_parse_is_fresh(tmp_path):
    """Test that every parse returns an independent tree."""
    path = tmp_path / "page.html"
    path.write_text(page(), encoding="utf-8")
    fixture = load_fixture(path)
    first = fixture.parse()
    second = fixture.parse()
    assert first.root is not second.root
    first.find("h1").text = "Changed"
    assert second.find("h1").text == "Hello World"
    assert fixture.parse().find("h1").text == "Hello World"
    assert first.url == path.resolve().as_uri()
