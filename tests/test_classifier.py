import asyncio
import hashlib

import pytest

from conftest import FakeDetector
from models.clipboarditem import FileContent, ImageContent, TextContent
from models.entry import FileOperation, ItemType
from services.classifier import (
    Classifier,
    has_at_most_graphemes,
    is_link,
    language_display_name,
    normalized_relevance,
)
from services.settings import Settings
from utils.file_manager import ImageStore


@pytest.fixture
def classifier(tmp_path):
    return Classifier(Settings(use_env=False), ImageStore(tmp_path / "images"))


def classify(classifier, content):
    return asyncio.run(classifier.classify(content))


@pytest.mark.parametrize("text", [
    "http://example.com",
    "https://example.com/path?q=1#frag",
    "https://user@example.com:8080/",
    "http://example.com/a%20b",
    "http:foo",
])
def test_links(text):
    assert is_link(text)


@pytest.mark.parametrize("text", [
    "httpexample",
    "http://exa mple.com",
    "http://example.com/%zz",
    "http://example.com/100%",
    "https://example.com:99999/",
    "ftp://example.com",
    "http://example.com/\x07",
])
def test_not_links(text):
    assert not is_link(text)


def test_link_content_keeps_original_text(classifier):
    entry = classify(classifier, TextContent("  https://example.com \n"))
    assert entry.type == ItemType.LINK
    assert entry.content == "  https://example.com \n"


@pytest.mark.parametrize("text", ["a", " é ", "e\u0301", "👨‍👩‍👧", "🇫🇷"])
def test_single_grapheme_is_character(classifier, text):
    assert classify(classifier, TextContent(text)).type == ItemType.CHARACTER


def test_character_limit_is_configurable(tmp_path):
    classifier = Classifier(
        Settings({"character-item.max-characters": 3}, use_env=False),
        ImageStore(tmp_path))
    assert classify(classifier, TextContent("abc")).type == ItemType.CHARACTER
    assert classify(classifier, TextContent("abcd")).type == ItemType.TEXT


def test_grapheme_counting():
    assert has_at_most_graphemes("👍🏽👍🏽", 2)
    assert not has_at_most_graphemes("👍🏽👍🏽", 1)


@pytest.mark.parametrize("text", ["#ff0000", "#abc", "rgb(1, 2, 3)", "hsl(120, 50%, 50%)", "cornflowerblue"])
def test_colors(classifier, text):
    assert classify(classifier, TextContent(text)).type == ItemType.COLOR


def test_plain_text_without_detector(classifier):
    entry = classify(classifier, TextContent("just some words"))
    assert entry.type == ItemType.TEXT
    assert entry.metadata is None


def test_code_at_relevance_threshold(classifier):
    classifier.detector = FakeDetector("python", relevance=3, name="Python")
    entry = classify(classifier, TextContent("print('hello world')"))
    assert entry.type == ItemType.CODE
    assert entry.metadata == {"language": {"id": "python", "name": "Python"}}


def test_text_just_below_threshold(classifier):
    classifier.detector = FakeDetector("python", relevance=2.99, name="Python")
    assert classify(classifier, TextContent("print('hello world')")).type == ItemType.TEXT


def test_relevance_is_normalized_by_sample_length(classifier):
    classifier.detector = FakeDetector("python", relevance=3, name="Python")
    text = "x = 1\n" * 50
    assert classify(classifier, TextContent(text)).type == ItemType.TEXT


def test_detector_sample_is_truncated(classifier):
    detector = FakeDetector()
    classifier.detector = detector
    classify(classifier, TextContent("word " * 5000))
    assert len(detector.samples[0]) == 10000


def test_normalized_relevance():
    assert normalized_relevance(3, 50) == 3
    assert normalized_relevance(30, 1000) == 3


@pytest.mark.parametrize("language, name, expected", [
    ("python", "Python", "Python"),
    ("cpp", "C++", "Cpp"),
    ("js", "JavaScript", "JavaScript"),
    ("rust", None, "Rust"),
])
def test_language_display_name(language, name, expected):
    assert language_display_name(language, name) == expected


def test_image_is_content_addressed(classifier, tmp_path):
    data = b"\x89PNG fake"
    checksum = hashlib.md5(data).hexdigest()
    content = ImageContent(mimetype="image/png", data=data, checksum=checksum)

    first = classify(classifier, content)
    second = classify(classifier, content)

    path = tmp_path / "images" / checksum
    assert first.type == ItemType.IMAGE
    assert first.content == second.content == path.as_uri()
    assert path.read_bytes() == data
    assert list((tmp_path / "images").iterdir()) == [path]


def test_image_write_failure_returns_none(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    classifier = Classifier(Settings(use_env=False), ImageStore(blocker / "images"))
    content = ImageContent(mimetype="image/png", data=b"x", checksum="abc")
    assert classify(classifier, content) is None


def test_single_file(classifier):
    entry = classify(classifier, FileContent(paths=("/a/b",)))
    assert entry.type == ItemType.FILE
    assert entry.content == "/a/b"
    assert entry.metadata == {"operation": "copy"}


def test_multiple_files(classifier):
    content = FileContent(paths=("/a/b", "/a/c"), operation=FileOperation.CUT)
    entry = classify(classifier, content)
    assert entry.type == ItemType.FILES
    assert entry.content == "/a/b\n/a/c"
    assert entry.metadata == {"operation": "cut"}
