import re
import warnings
from typing import Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from models.preview import ImageCandidate, Preview

DESCRIPTION_LIMIT = 500
ELLIPSIS = "..."

_META_TAG = re.compile(r"""<meta\b(?:[^>"']|"[^"]*"|'[^']*')*>""", re.IGNORECASE)
_ATTRIBUTE = re.compile(r"""([\w:-]+)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))""")
_OG_PROPERTY = re.compile(r"og:([a-z]+(?:_[a-z]+)*)")
_TITLE = re.compile(r"<title\b[^>]*>(.+?)</title>", re.IGNORECASE | re.DOTALL)
_PARAGRAPH = re.compile(r"<p(?:\s[^>]*)?>.+?</p>", re.IGNORECASE | re.DOTALL)
_IMG_SRC = re.compile(r"""<img\s[^>]*?(?<![\w-])src\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_ABSOLUTE_URL = re.compile(r"^https?://.+", re.IGNORECASE)


def strip_tags(value: str) -> str:
    """
    Remove tags from `value` and leave entities untouched, so `&lt;b&gt;`
    never turns into markup and `&not=` in a query string survives.
    """
    if not value:
        return ""
    if "<" not in value:
        return value.strip()
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        soup = BeautifulSoup(value.replace("&", "&amp;"), "html.parser")
    return soup.get_text().strip()


def _attributes(tag: str) -> Dict[str, str]:
    attrs = {}
    for match in _ATTRIBUTE.finditer(tag):
        name, double, single, bare = match.groups()
        value = double if double is not None else single if single is not None else bare
        attrs.setdefault(name.lower(), value)
    return attrs


def scan_opengraph(body: str) -> Dict[str, str]:
    """Collect `og:<name>` meta properties; later duplicates win."""
    found = {}
    for tag in _META_TAG.findall(body):
        attrs = _attributes(tag)
        match = _OG_PROPERTY.fullmatch(attrs.get("property", ""))
        if match and attrs.get("content"):
            found[match.group(1)] = attrs["content"]
    return found


def summarize_paragraph(html: str) -> Optional[str]:
    """
    First words of a paragraph: up to DESCRIPTION_LIMIT characters of text,
    minus the last (possibly cut) word, followed by an ellipsis.
    """
    words = strip_tags(html)[:DESCRIPTION_LIMIT].split()[:-1]
    if not words:
        return None
    return " ".join(words) + ELLIPSIS


def _origin(url: str) -> str:
    """scheme://host[:port] of `url`, without any credentials."""
    parsed = urlparse(url)
    host = parsed.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    if parsed.port:
        host = f"{host}:{parsed.port}"
    return f"{parsed.scheme}://{host}"


def base_directory(url: str) -> str:
    path = urlparse(url).path
    directory = path.rsplit("/", 1)[0] if "/" in path else ""
    return f"{_origin(url)}{directory}/"


def resolve_image_src(src: str, page_url: str) -> str:
    """Turn an <img> src into an absolute URL relative to `page_url`."""
    src = src.strip()
    if src.startswith("//"):
        return "https:" + src
    if src.startswith("/"):
        return _origin(page_url) + src
    if _ABSOLUTE_URL.match(src):
        return src
    return base_directory(page_url) + src


def _fallback_title(body: str) -> str:
    match = _TITLE.search(body)
    return match.group(1) if match else ""


def _fallback_description(body: str) -> Optional[str]:
    match = _PARAGRAPH.search(body)
    return summarize_paragraph(match.group(0)) if match else None


def _discover_images(body: str, page_url: str) -> List[ImageCandidate]:
    return [
        ImageCandidate(src=strip_tags(resolve_image_src(src, page_url)))
        for src in _IMG_SRC.findall(body)
    ]


def extract(resolved_url: str, body: str) -> Preview:
    """
    Build a Preview from an already-fetched document. OpenGraph metadata is
    preferred; title, description and images fall back to markup heuristics.
    """
    body = body or ""
    properties = scan_opengraph(body)

    title = properties.pop("title", "") or _fallback_title(body)
    title = strip_tags(title) or resolved_url

    # the paragraph summary is already plain text
    description = properties.pop("description", "")
    if description:
        description = strip_tags(description)
    else:
        description = _fallback_description(body)
    description = description or None

    properties = {name: strip_tags(value) for name, value in properties.items()}

    image = properties.pop("image", "")
    if image:
        images = [ImageCandidate(src=image)]
    else:
        images = _discover_images(body, resolved_url)

    return Preview(
        url=resolved_url,
        title=title,
        description=description,
        images=images,
        properties=properties,
    )
