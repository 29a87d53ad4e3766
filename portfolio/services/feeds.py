from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from html import unescape
from xml.etree import ElementTree as ET

import httpx

from portfolio.core.timestamps import parse_timestamp, to_iso, utc_now_iso
from portfolio.schemas.projects import Project
from portfolio.services.classification import contains_keyword
from portfolio.services.errors import FeedError

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; Portfolio-Bot/1.0)"
CONTENT_NS = "{http://purl.org/rss/1.0/modules/content/}"
ATOM_NS = "{http://www.w3.org/2005/Atom}"
XHTML_NS = "{http://www.w3.org/1999/xhtml}"

PLACEHOLDER_IMAGE = (
    "https://upload.wikimedia.org/wikipedia/commons/9/98/Microsoft_Project_%282019%E2%80%93present%29.svg"
)
MAX_TECHNOLOGIES = 6
MAX_HIGHLIGHTS = 3
DESCRIPTION_LIMIT = 200
SNIPPET_LIMIT = 1000
GENERIC_HIGHLIGHTS = (
    "Implemented cloud-native solutions",
    "Automated deployment processes",
    "Enhanced system reliability and performance",
)
DEFAULT_ICON = "Cpu"
DEFAULT_COLOR = "from-gray-500 to-gray-600"
ID_PREFIX = "syndicated-"


@dataclass(frozen=True, slots=True)
class TechTerm:
    name: str
    aliases: tuple[str, ...] = ()

    @property
    def keywords(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


# Scan order is declaration order. AWS service names fold into "AWS".
TECH_VOCABULARY: tuple[TechTerm, ...] = (
    TechTerm("AWS", ("amazon web services", "lambda", "ec2", "s3")),
    TechTerm("Azure", ("arm templates",)),
    TechTerm("GCP", ("google cloud",)),
    TechTerm("Docker"),
    TechTerm("Kubernetes", ("k8s",)),
    TechTerm("Jenkins"),
    TechTerm("Terraform"),
    TechTerm("Ansible"),
    TechTerm("CI/CD", ("ci-cd", "cicd")),
    TechTerm("DevOps"),
    TechTerm("Python"),
    TechTerm("Node.js", ("nodejs",)),
    TechTerm("React"),
    TechTerm("Angular"),
    TechTerm("Vue", ("vue.js", "vuejs")),
    TechTerm("PostgreSQL", ("postgres",)),
    TechTerm("MySQL"),
    TechTerm("MongoDB"),
    TechTerm("Redis"),
    TechTerm("Nginx"),
    TechTerm("Apache"),
    TechTerm("Linux"),
    TechTerm("Ubuntu"),
    TechTerm("CloudFormation"),
    TechTerm("Helm"),
    TechTerm("Prometheus"),
    TechTerm("Grafana"),
    TechTerm("ELK Stack"),
    TechTerm("Istio"),
    TechTerm("ArgoCD", ("argo cd",)),
    TechTerm("GitHub Actions"),
    TechTerm("GitLab CI"),
    TechTerm("Serverless"),
    TechTerm("Microservices"),
    TechTerm("API Gateway"),
    TechTerm("Load Balancer"),
    TechTerm("VPC"),
    TechTerm("Subnets", ("subnet",)),
)

ICON_MAP: tuple[tuple[str, str], ...] = (
    ("aws", "Cloud"),
    ("azure", "Cloud"),
    ("gcp", "Cloud"),
    ("docker", "Container"),
    ("kubernetes", "Container"),
    ("jenkins", "Layers"),
    ("terraform", "Layers"),
    ("ci/cd", "Layers"),
    ("ci-cd", "Layers"),
    ("devops", "Cpu"),
)

COLOR_MAP: tuple[tuple[str, str], ...] = (
    ("aws", "from-orange-500 to-orange-600"),
    ("azure", "from-blue-500 to-blue-600"),
    ("gcp", "from-blue-500 to-green-500"),
    ("docker", "from-blue-600 to-cyan-600"),
    ("kubernetes", "from-blue-500 to-purple-600"),
    ("jenkins", "from-blue-500 to-blue-600"),
    ("terraform", "from-purple-500 to-purple-600"),
)

IMG_SRC_RE = re.compile(r"<img[^>]+src=[\"']([^\"'>]+)[\"']", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]*>")
WHITESPACE_RE = re.compile(r"\s+")
SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
LIST_OPEN_RE = re.compile(r"<li[^>]*>", re.IGNORECASE)
BLOCK_BREAK_RE = re.compile(r"<br\s*/?>|</(?:p|li|h[1-6]|div|blockquote)>", re.IGNORECASE)
LIST_LINE_RE = re.compile(r"(?:^|\n)[ \t]*(?:\d+\.|\*|-|•)[ \t]*([^\n]+)")


@dataclass(slots=True)
class FeedItem:
    title: str | None = None
    link: str | None = None
    published: str | None = None
    content: str = ""
    categories: list[str] = field(default_factory=list)
    guid: str | None = None


class FeedClient:
    def __init__(self, *, timeout_seconds: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        self._client = client

    async def fetch(self, feed_url: str) -> bytes:
        if self._client is not None:
            response = await self._get(self._client, feed_url)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, follow_redirects=True) as client:
                response = await self._get(client, feed_url)

        if response.status_code != 200:
            raise FeedError(f"feed answered status={response.status_code}")
        return response.content

    async def _get(self, client: httpx.AsyncClient, feed_url: str) -> httpx.Response:
        try:
            return await client.get(
                feed_url,
                headers={"User-Agent": USER_AGENT, "Accept": "application/rss+xml, application/atom+xml, */*"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FeedError(f"feed unreachable: {exc.__class__.__name__}") from exc


def parse_feed(document: bytes | str) -> list[FeedItem]:
    """Read RSS 2.0 ``item`` or Atom ``entry`` elements into ``FeedItem`` records."""
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise FeedError(f"feed is not valid XML: {exc}") from exc

    if root.tag == f"{ATOM_NS}feed":
        return [_atom_entry(entry) for entry in root.iter(f"{ATOM_NS}entry")]
    if root.tag == "rss" or root.find("channel") is not None:
        return [_rss_item(item) for item in root.iter("item")]
    raise FeedError(f"unsupported feed root element: {root.tag}")


def _rss_item(item: ET.Element) -> FeedItem:
    content = _element_text(item.find(f"{CONTENT_NS}encoded")) or _element_text(item.find("description")) or ""
    return FeedItem(
        title=_element_text(item.find("title")),
        link=_element_text(item.find("link")),
        published=_element_text(item.find("pubDate")),
        content=content,
        categories=[text for text in (_element_text(node) for node in item.findall("category")) if text],
        guid=_element_text(item.find("guid")),
    )


def _atom_entry(entry: ET.Element) -> FeedItem:
    link = None
    for node in entry.findall(f"{ATOM_NS}link"):
        if node.get("rel", "alternate") == "alternate" and node.get("href"):
            link = node.get("href")
            break
    content = _atom_text(entry.find(f"{ATOM_NS}content")) or _atom_text(entry.find(f"{ATOM_NS}summary")) or ""
    return FeedItem(
        title=_element_text(entry.find(f"{ATOM_NS}title")),
        link=link,
        published=_element_text(entry.find(f"{ATOM_NS}published")) or _element_text(entry.find(f"{ATOM_NS}updated")),
        content=content,
        categories=[node.get("term", "").strip() for node in entry.findall(f"{ATOM_NS}category") if node.get("term")],
        guid=_element_text(entry.find(f"{ATOM_NS}id")),
    )


def _atom_text(node: ET.Element | None) -> str | None:
    """Atom text constructs; ``type="xhtml"`` wraps markup in a single ``div``."""
    if node is None or node.get("type") != "xhtml":
        return _element_text(node)
    wrapper = node.find(f"{XHTML_NS}div")
    if wrapper is None:
        wrapper = node
    for element in wrapper.iter():
        if element.tag.startswith(XHTML_NS):
            element.tag = element.tag[len(XHTML_NS) :]
    parts = [wrapper.text or ""]
    # tostring keeps each child's tail text.
    parts.extend(ET.tostring(child, encoding="unicode") for child in wrapper)
    markup = "".join(parts).strip()
    return markup or None


def _element_text(node: ET.Element | None) -> str | None:
    if node is None or node.text is None:
        return None
    stripped = node.text.strip()
    return stripped or None


def extract_image(content: str) -> str | None:
    match = IMG_SRC_RE.search(content)
    return match.group(1) if match else None


def extract_technologies(content: str, categories: list[str] | None = None) -> list[str]:
    found: list[str] = []

    def add(term: TechTerm) -> None:
        if term.name not in found:
            found.append(term.name)

    for category in categories or []:
        for term in TECH_VOCABULARY:
            if any(contains_keyword(category, keyword) for keyword in term.keywords):
                add(term)

    text = strip_html(content)
    for term in TECH_VOCABULARY:
        if any(contains_keyword(text, keyword) for keyword in term.keywords):
            add(term)

    return found[:MAX_TECHNOLOGIES]


def strip_html(content: str) -> str:
    return WHITESPACE_RE.sub(" ", unescape(TAG_RE.sub(" ", content))).strip()


def build_description(title: str, content: str) -> str:
    sentences = SENTENCE_SPLIT_RE.split(strip_html(content))
    description = sentences[0].strip() if sentences and sentences[0].strip() else title

    if len(description) < 100 and len(sentences) > 1 and sentences[1].strip():
        description = f"{description}. {sentences[1].strip()}"

    if len(description) > DESCRIPTION_LIMIT:
        description = description[:DESCRIPTION_LIMIT] + "..."
    return description


def extract_highlights(content: str) -> list[str]:
    lined = BLOCK_BREAK_RE.sub("\n", LIST_OPEN_RE.sub("\n- ", content))
    highlights: list[str] = []
    for match in LIST_LINE_RE.finditer(lined):
        highlight = WHITESPACE_RE.sub(" ", unescape(TAG_RE.sub("", match.group(1)))).strip()
        if 20 < len(highlight) < 150:
            highlights.append(highlight)
        if len(highlights) >= MAX_HIGHLIGHTS:
            break
    return highlights or list(GENERIC_HIGHLIGHTS)


def pick_icon(technologies: list[str], categories: list[str] | None = None) -> str:
    return _first_mapped(ICON_MAP, [*technologies, *(categories or [])], DEFAULT_ICON)


def pick_color(technologies: list[str], categories: list[str] | None = None) -> str:
    return _first_mapped(COLOR_MAP, [*technologies, *(categories or [])], DEFAULT_COLOR)


def _first_mapped(mapping: tuple[tuple[str, str], ...], terms: list[str], default: str) -> str:
    for key, value in mapping:
        if any(contains_keyword(term, key) for term in terms):
            return value
    return default


def build_project_id(guid: str | None, *, now_ms: int | None = None) -> str:
    """Derive a project id from the last path segment of the feed guid.

    Items without a guid get a timestamp id, which changes on every run.
    """
    if guid:
        segments = [segment for segment in guid.split("/") if segment]
        if segments:
            return f"{ID_PREFIX}{segments[-1]}"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{ID_PREFIX}{stamp}"


def item_to_project(item: FeedItem) -> Project | None:
    if not item.title or not item.link:
        return None

    technologies = extract_technologies(item.content, item.categories)
    published = parse_timestamp(item.published)
    return Project(
        id=build_project_id(item.guid),
        title=item.title,
        description=build_description(item.title, item.content),
        image=extract_image(item.content) or PLACEHOLDER_IMAGE,
        technologies=technologies,
        icon=pick_icon(technologies, item.categories),
        color=pick_color(technologies, item.categories),
        source_url=item.link,
        highlights=extract_highlights(item.content),
        type="syndicated",
        featured=False,
        published_date=to_iso(published) if published else (item.published or utc_now_iso()),
        categories=list(item.categories),
        content_snippet=item.content[:SNIPPET_LIMIT],
    )


async def fetch_articles(feed_url: str, client: FeedClient) -> list[Project]:
    items = parse_feed(await client.fetch(feed_url))
    projects: list[Project] = []
    for item in items:
        project = item_to_project(item)
        if project is None:
            logger.info("skipping feed item without title or link guid=%s", item.guid)
            continue
        projects.append(project)
    logger.info("feed ingestion complete url=%s items=%s projects=%s", feed_url, len(items), len(projects))
    return projects
