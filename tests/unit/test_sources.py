"""Tests for URL list loading and per-worker rotation."""

from __future__ import annotations

import logging
import random
from pathlib import Path

import pytest

from downtraffic.engine.sources import (
    DEFAULT_URLS,
    SourceSelector,
    load_urls,
    parse_url_list,
)


def test_load_urls_from_file(urls_path: Path):
    assert load_urls(urls_path) == ("http://a", "http://b")


def test_parse_url_list_strips_whitespace():
    text = "  http://a  \n\t# indented comment\n\n http://b\n"
    assert parse_url_list(text) == ["http://a", "http://b"]


def test_load_urls_without_path_uses_defaults():
    assert load_urls(None) == DEFAULT_URLS
    assert load_urls("") == DEFAULT_URLS
    assert len(DEFAULT_URLS) > 0


def test_load_urls_missing_file_falls_back(tmp_path: Path, caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.WARNING):
        urls = load_urls(tmp_path / "nope.txt")
    assert urls == DEFAULT_URLS
    assert "Cannot read URL file" in caplog.text


def test_load_urls_empty_file_falls_back(tmp_path: Path, caplog: pytest.LogCaptureFixture):
    path = tmp_path / "urls.txt"
    path.write_text("# only comments\n\n   \n", encoding="utf-8")
    with caplog.at_level(logging.WARNING):
        urls = load_urls(path)
    assert urls == DEFAULT_URLS
    assert "is empty" in caplog.text


def test_selector_rejects_empty_list():
    with pytest.raises(ValueError):
        SourceSelector([])


def test_selector_advances_and_wraps():
    urls = ["u0", "u1", "u2"]
    selector = SourceSelector(urls, rng=random.Random(7))
    start = selector.cursor_for(1)
    got = [selector.next_for(1) for _ in range(7)]
    expected = [urls[(start + i) % 3] for i in range(7)]
    assert got == expected


def test_selector_cursors_are_per_worker():
    urls = [f"u{i}" for i in range(100)]
    selector = SourceSelector(urls, rng=random.Random(1))
    first_a = selector.next_for(1)
    first_b = selector.next_for(2)
    # advancing worker 1 does not move worker 2
    selector.next_for(1)
    assert selector.next_for(2) == urls[(urls.index(first_b) + 1) % 100]
    assert selector.next_for(1) == urls[(urls.index(first_a) + 2) % 100]


def test_selector_spreads_start_offsets():
    urls = [f"u{i}" for i in range(50)]
    selector = SourceSelector(urls, rng=random.Random(3))
    starts = {selector.cursor_for(worker_id) for worker_id in range(1, 11)}
    assert len(starts) > 1


def test_selector_single_url():
    selector = SourceSelector(["only"])
    assert [selector.next_for(1) for _ in range(3)] == ["only"] * 3
    assert len(selector) == 1
