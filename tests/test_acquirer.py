import asyncio
import hashlib

from conftest import FakeClipboard
from models.clipboarditem import FileContent, ImageContent, TextContent
from models.entry import FileOperation
from services.acquirer import ContentAcquirer, parse_file_list


def acquire(backend):
    return asyncio.run(ContentAcquirer(backend).acquire())


def test_sensitive_content_is_skipped():
    backend = FakeClipboard()
    backend.offer({"text/plain": b"hunter2", "x-kde-passwordManagerHint": b"secret"})
    assert acquire(backend) is None


def test_image_wins_over_text():
    backend = FakeClipboard()
    backend.offer({"text/plain": b"caption", "image/jpeg": b"jpeg", "image/png": b"png"})
    content = acquire(backend)
    assert isinstance(content, ImageContent)
    assert content.mimetype == "image/png"
    assert content.checksum == hashlib.md5(b"png").hexdigest()


def test_empty_image_is_none():
    backend = FakeClipboard()
    backend.offer({"image/png": b""})
    assert acquire(backend) is None


def test_gnome_file_list_with_marker():
    backend = FakeClipboard()
    backend.offer({
        "x-special/gnome-copied-files": b"cut\nfile:///a/b\nfile:///a/c\n",
        "text/plain": b"/a/b",
    })
    assert acquire(backend) == FileContent(
        paths=("file:///a/b", "file:///a/c"), operation=FileOperation.CUT)


def test_uri_list_without_marker():
    backend = FakeClipboard()
    backend.offer({"text/uri-list": b"file:///a/b\r\n"})
    assert acquire(backend) == FileContent(paths=("file:///a/b",))


def test_text():
    backend = FakeClipboard()
    backend.offer_text("  hello  ")
    assert acquire(backend) == TextContent("  hello  ")


def test_whitespace_text_is_none():
    backend = FakeClipboard()
    backend.offer_text(" \n\t ")
    assert acquire(backend) is None


def test_unknown_types_are_none():
    backend = FakeClipboard()
    backend.offer({"application/x-custom": b"data"})
    assert acquire(backend) is None


def test_parse_file_list_marker_is_case_insensitive():
    content = parse_file_list(b"Copy\n/a/b\n/a/c")
    assert content.operation == FileOperation.COPY
    assert content.paths == ("/a/b", "/a/c")


def test_parse_file_list_marker_only_is_none():
    assert parse_file_list(b"copy\n") is None
    assert parse_file_list(b"   ") is None
