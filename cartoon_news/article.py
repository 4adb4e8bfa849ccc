"""Article body extraction for the content endpoint."""

from bs4 import BeautifulSoup

from .api_client import ResilientClient
from .logging_config import create_execution_logger
from .models import ArticleContent

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Elements that never carry article text
NOISE_SELECTORS = [
    "script",
    "style",
    "nav",
    "header",
    "footer",
    "iframe",
    ".ad",
    ".advertisement",
    ".social-share",
    ".related-articles",
]

CONTENT_SELECTORS = [
    "article",
    '[role="article"]',
    ".article-content",
    ".article-body",
    ".post-content",
    ".entry-content",
    ".story-body",
    "main",
    "#main-content",
    ".main-content",
]

MIN_SELECTOR_CONTENT = 200
MIN_PARAGRAPH_LENGTH = 50


def extract_article_text(html: str) -> str:
    """Pick the main text of an article page.

    Tries common article containers first, then substantial paragraphs, then
    the whole document text. Whitespace is collapsed.
    """
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.select(", ".join(NOISE_SELECTORS)):
        element.decompose()

    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = " ".join(element.get_text(separator=" ").split())
        if len(text) > MIN_SELECTOR_CONTENT:
            return text

    paragraphs = [
        " ".join(paragraph.get_text(separator=" ").split())
        for paragraph in soup.find_all("p")
    ]
    paragraphs = [text for text in paragraphs if len(text) > MIN_PARAGRAPH_LENGTH]
    if paragraphs:
        return " ".join(paragraphs)

    return " ".join(soup.get_text(separator=" ").split())


def truncate(text: str, max_length: int) -> str:
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


class ArticleExtractor:
    """Downloads article pages and returns their readable text."""

    def __init__(
        self,
        client: ResilientClient | None = None,
        max_length: int = 5000,
        execution_id: str | None = None,
    ):
        self.client = client or ResilientClient(execution_id=execution_id)
        self.max_length = max_length
        self.logger = create_execution_logger("article_extractor", execution_id)

    def fetch_content(self, url: str) -> ArticleContent:
        """Return the article text, at most ``max_length`` chars plus "...", and
        the URL the page was finally served from.

        Raises:
            UpstreamHTTPError: Article host answered with an error status
            TransportError: Article host unreachable
        """
        self.logger.info("Fetching article content", article_url=url)
        response = self.client.call(
            "GET",
            url,
            headers={
                "User-Agent": BROWSER_USER_AGENT,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
            allow_redirects=True,
        )
        content = truncate(extract_article_text(response.text), self.max_length)
        self.logger.info(
            f"Extracted {len(content)} characters",
            article_url=url,
            final_url=response.url,
            content_length=len(content),
        )
        return ArticleContent(content=content, url=url, final_url=response.url or url)
