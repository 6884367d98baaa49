"""Tests for fetch_articles.images module."""

from fetch_articles.images import (
    extract_image_url,
    guess_image_size,
    is_excluded_image,
    is_high_quality_image,
)


class TestImageHeuristics:
    def test_excluded_images(self) -> None:
        assert is_excluded_image("https://example.com/static/logo.png")
        assert is_excluded_image("https://example.com/pixel.gif")
        assert not is_excluded_image("https://example.com/photos/council.jpg")

    def test_high_quality(self) -> None:
        assert is_high_quality_image("https://example.com/photos/council.jpg")
        assert not is_high_quality_image("https://example.com/thumb/council.jpg")
        assert not is_high_quality_image("https://example.com/council.jpg?w=50")
        assert not is_high_quality_image("")

    def test_guess_image_size(self) -> None:
        assert guess_image_size("https://example.com/img-1200x630.jpg") == 1200 * 630
        assert guess_image_size("https://example.com/img.jpg?width=800") == 640_000
        assert guess_image_size("https://example.com/large/img.jpg") == 500_000
        assert guess_image_size("https://example.com/img.jpg") == 100_000


class TestExtractImageUrl:
    def test_open_graph_first(self) -> None:
        html = """
        <html><head>
          <meta property="og:image" content="https://example.com/og.jpg">
          <meta name="twitter:image" content="https://example.com/tw.jpg">
        </head><body><article><img src="/inline.jpg" width="800" height="600"></article></body></html>
        """
        assert extract_image_url(html) == "https://example.com/og.jpg"

    def test_low_quality_meta_is_skipped(self) -> None:
        html = """
        <html><head>
          <meta property="og:image" content="https://example.com/thumb.jpg">
          <meta name="twitter:image" content="https://example.com/tw.jpg">
        </head></html>
        """
        assert extract_image_url(html) == "https://example.com/tw.jpg"

    def test_largest_article_image_resolved_against_base(self) -> None:
        html = """
        <article>
          <img src="/small.jpg" width="100" height="100">
          <img src="/big.jpg" width="1200" height="800">
          <img src="/logo.png" width="2000" height="2000">
        </article>
        """
        assert extract_image_url(html, "https://example.com/news/a") == "https://example.com/big.jpg"

    def test_lazy_loaded_image(self) -> None:
        html = '<div><img src="data:image/gif;base64,AAAA" data-src="https://example.com/photo-800x600.jpg"></div>'
        assert extract_image_url(html) == "https://example.com/photo-800x600.jpg"

    def test_no_image(self) -> None:
        assert extract_image_url("<p>No images here</p>") is None
        assert extract_image_url(None) is None
