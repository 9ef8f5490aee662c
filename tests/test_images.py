"""
Tests for image URL mapping.
"""

import pytest

from carcatalog.utils.images import optimize_image_url, resolve_image_url


@pytest.mark.parametrize("source, expected", [
    ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
    ("http://cdn.example.com/a.png", "http://cdn.example.com/a.png"),
    ("//cdn.example.com/a.png", "https://cdn.example.com/a.png"),
    ("wix:image://v1/11062b_abc~mv2.jpg/photo.jpg#originWidth=10", "https://static.wixstatic.com/media/11062b_abc~mv2.png"),
    ("wix:video://v1/clip", ""),
    ("data:image/png;base64,AAAA", ""),
    ("  ", ""),
    (None, ""),
    (42, ""),
    ("img/a.png", ""),
])
def test_resolve_image_url(source, expected):
    assert resolve_image_url(source) == expected


def test_relative_path_with_base():
    assert resolve_image_url("img/a.png", "https://cdn.example.com/media/") == "https://cdn.example.com/media/img/a.png"


class TestOptimize:
    def test_brand_preset(self):
        url = optimize_image_url("https://cdn.example.com/a.png", context="brand")
        assert url.startswith("https://cdn.example.com/a.png?w=120&h=80&q=85")

    def test_lazy_quality(self):
        url = optimize_image_url("https://cdn.example.com/a.png", context="detail", priority="lazy")
        assert "w=800&h=600&q=75" in url

    def test_non_http_untouched(self):
        assert optimize_image_url("") == ""
        assert optimize_image_url("ftp://host/a.png") == "ftp://host/a.png"
