"""Unit tests for article body extraction."""

from unittest.mock import Mock

import pytest

from cartoon_news.api_client import ResilientClient
from cartoon_news.article import ArticleExtractor, extract_article_text, truncate
from cartoon_news.errors import UpstreamHTTPError

LONG_PARAGRAPH = "The council approved the budget after a long debate about parking fees. " * 4


class TestExtractArticleTextUnit:
    def test_article_element_preferred(self):
        html = f"""
        <html><body>
          <nav>Home | World | Sport</nav>
          <article><h1>Budget passes</h1><p>{LONG_PARAGRAPH}</p>
            <div class="social-share">Share on everything</div>
          </article>
          <footer>Copyright</footer>
        </body></html>"""

        text = extract_article_text(html)

        assert text.startswith("Budget passes The council approved")
        assert "Share on everything" not in text
        assert "Home | World" not in text

    def test_paragraph_fallback_skips_short_paragraphs(self):
        html = (
            "<div><p>Short bit.</p>"
            "<p>This paragraph is long enough to count as article content for sure.</p>"
            "<p>Another sufficiently long paragraph that readers would care about.</p></div>"
        )

        assert extract_article_text(html) == (
            "This paragraph is long enough to count as article content for sure. "
            "Another sufficiently long paragraph that readers would care about."
        )

    def test_whole_text_fallback(self):
        html = "<div>Just   a\n\nsnippet</div><script>var x = 1;</script>"

        assert extract_article_text(html) == "Just a snippet"

    def test_truncate(self):
        assert truncate("abcdef", 3) == "abc..."
        assert truncate("abc", 3) == "abc"


class TestArticleExtractorUnit:
    def test_fetch_content_follows_redirects_with_browser_agent(self):
        session = Mock()
        session.request.return_value = Mock(
            status_code=200,
            text=f"<article><p>{LONG_PARAGRAPH}</p></article>",
            url="https://publisher.example.com/final",
        )
        extractor = ArticleExtractor(ResilientClient(session=session), max_length=100)

        article = extractor.fetch_content("https://news.google.com/articles/abc")

        kwargs = session.request.call_args.kwargs
        assert kwargs["allow_redirects"] is True
        assert kwargs["headers"]["User-Agent"].startswith("Mozilla/5.0")
        assert len(article.content) == 103
        assert article.content.endswith("...")
        assert article.to_dict()["finalUrl"] == "https://publisher.example.com/final"
        assert article.to_dict()["length"] == 103

    def test_fetch_content_propagates_http_errors(self):
        session = Mock()
        session.request.return_value = Mock(status_code=403, reason="Forbidden")
        extractor = ArticleExtractor(ResilientClient(session=session))

        with pytest.raises(UpstreamHTTPError):
            extractor.fetch_content("https://paywalled.example.com/story")
