import hashlib

from models.clipboarditem import ContentType, FileContent, ImageContent, TextContent
from models.entry import FileOperation
from services import dedup
from services.dedup import ClipboardStateTracker, fingerprint


def md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def test_text_fingerprint_is_md5_of_utf8():
    assert fingerprint(TextContent("héllo")) == md5("héllo")


def test_image_fingerprint_is_precomputed_checksum():
    content = ImageContent(mimetype="image/png", data=b"\x89PNG", checksum="abc")
    assert fingerprint(content) == "abc"


def test_file_fingerprint_ignores_operation_and_scheme():
    copied = FileContent(paths=("file:///tmp/a%20b", "/tmp/c"))
    cut = FileContent(paths=("/tmp/a b", "file:///tmp/c"), operation=FileOperation.CUT)
    assert fingerprint(copied) == fingerprint(cut) == md5("/tmp/a b\n/tmp/c")


def test_digest_failure_returns_none(monkeypatch):
    def broken_md5(data):
        raise ValueError("disabled for FIPS")

    monkeypatch.setattr(dedup.hashlib, "md5", broken_md5)
    tracker = ClipboardStateTracker()
    assert fingerprint(TextContent("x")) is None
    assert tracker.should_ingest(TextContent("x")) is False
    assert tracker.previous is None


def test_duplicate_is_suppressed():
    tracker = ClipboardStateTracker()
    assert tracker.should_ingest(TextContent("one")) is True
    assert tracker.should_ingest(TextContent("one")) is False
    assert tracker.should_ingest(TextContent("two")) is True
    assert tracker.should_ingest(TextContent("one")) is True


def test_slot_is_committed_on_ingest():
    tracker = ClipboardStateTracker()
    tracker.should_ingest(TextContent("one"))
    assert tracker.previous == (ContentType.TEXT, md5("one"))


def test_file_reoffered_as_text_is_suppressed():
    tracker = ClipboardStateTracker()
    assert tracker.should_ingest(FileContent(paths=("/a/b",))) is True
    assert tracker.should_ingest(TextContent("/a/b")) is False


def test_text_then_same_file_is_ingested():
    tracker = ClipboardStateTracker()
    assert tracker.should_ingest(TextContent("/a/b")) is True
    assert tracker.should_ingest(FileContent(paths=("/a/b",))) is True


def test_empty_image_checksum_skips_check():
    tracker = ClipboardStateTracker()
    content = ImageContent(mimetype="image/png", data=b"x", checksum="")
    assert tracker.should_ingest(content) is False
    assert tracker.record(content) is True
    assert tracker.previous is None


def test_record_updates_slot_for_outbound_content():
    tracker = ClipboardStateTracker()
    assert tracker.record(TextContent("pasted")) is True
    assert tracker.should_ingest(TextContent("pasted")) is False
