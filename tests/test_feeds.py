from __future__ import annotations

import asyncio

import httpx
import pytest

from portfolio.services.errors import FeedError
from portfolio.services.feeds import (
    DEFAULT_COLOR,
    DEFAULT_ICON,
    GENERIC_HIGHLIGHTS,
    PLACEHOLDER_IMAGE,
    FeedClient,
    build_description,
    build_project_id,
    extract_highlights,
    extract_image,
    extract_technologies,
    fetch_articles,
    parse_feed,
    pick_color,
    pick_icon,
)

RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Stories</title>
    <item>
      <title>Deploying a Serverless API</title>
      <link>https://medium.com/@someone/deploying-a-serverless-api-1a2b3c</link>
      <guid isPermaLink="false">https://medium.com/p/1a2b3c</guid>
      <category>aws</category>
      <category>terraform</category>
      <pubDate>Tue, 02 Jan 2024 10:00:00 GMT</pubDate>
      <content:encoded><![CDATA[<figure><img alt="cover" src="https://cdn-images.medium.com/cover.png"></figure>
<p>This walkthrough deploys an API with Terraform. It keeps costs low!</p>
<ul><li>Provisioned the whole stack with reusable Terraform modules</li><li>short</li></ul>]]></content:encoded>
    </item>
    <item>
      <title>Untitled link-less draft</title>
      <guid>https://medium.com/p/draft</guid>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Blog</title>
  <entry>
    <title>Kubernetes at home</title>
    <link rel="alternate" href="https://blog.example.org/k8s-at-home"/>
    <id>tag:blog.example.org,2024:k8s-at-home</id>
    <published>2024-03-01T08:30:00Z</published>
    <category term="kubernetes"/>
    <content type="html">&lt;p&gt;Running a cluster in the closet.&lt;/p&gt;</content>
  </entry>
</feed>
"""


def test_extract_technologies_orders_category_matches_first() -> None:
    technologies = extract_technologies("Built with AWS Lambda and Docker", ["Kubernetes"])

    assert set(technologies) == {"AWS", "Docker", "Kubernetes"}
    assert technologies == ["Kubernetes", "AWS", "Docker"]


def test_extract_technologies_dedupes_and_caps_at_six() -> None:
    content = "<p>Python, Redis, Nginx, Linux, Helm, Grafana, Prometheus and Istio with Python again</p>"

    technologies = extract_technologies(content, ["python", "devops"])
    assert len(technologies) == 6
    assert technologies[:2] == ["Python", "DevOps"]
    assert technologies.count("Python") == 1


def test_extract_technologies_ignores_markup() -> None:
    content = '<img src="https://s3.example.org/docker.png"><p>Plain text only</p>'

    assert extract_technologies(content) == []


def test_extract_image_uses_first_img_src() -> None:
    content = '<p>x</p><img class="a" src="https://img/1.png"><img src="https://img/2.png">'

    assert extract_image(content) == "https://img/1.png"
    assert extract_image("<p>no images</p>") is None


def test_build_description_appends_second_sentence_when_short() -> None:
    content = "<p>Short opener.</p><p>Second sentence adds context! Third is ignored.</p>"

    assert build_description("Title", content) == "Short opener. Second sentence adds context"


def test_build_description_truncates_long_text() -> None:
    content = "<p>" + "word " * 80 + "</p>"

    description = build_description("Title", content)
    assert len(description) == 203
    assert description.endswith("...")


def test_build_description_falls_back_to_title() -> None:
    assert build_description("Fallback Title", "") == "Fallback Title"


def test_extract_highlights_reads_list_lines_and_items() -> None:
    content = (
        "Intro\n"
        "1. Automated blue/green deployments for every service\n"
        "- too short\n"
        "* Cut infrastructure costs by right-sizing instances\n"
        "<ul><li>Added <b>alerting</b> with Prometheus and Grafana dashboards</li>"
        "<li>Another highlight that should be dropped by the cap</li></ul>"
    )

    assert extract_highlights(content) == [
        "Automated blue/green deployments for every service",
        "Cut infrastructure costs by right-sizing instances",
        "Added alerting with Prometheus and Grafana dashboards",
    ]


def test_extract_highlights_uses_generic_entries_when_none_found() -> None:
    assert extract_highlights("<p>No lists here.</p>") == list(GENERIC_HIGHLIGHTS)


def test_icon_and_color_follow_map_order() -> None:
    assert pick_icon(["Docker", "AWS"]) == "Cloud"
    assert pick_color(["Docker", "AWS"]) == "from-orange-500 to-orange-600"
    assert pick_icon([], ["ci-cd"]) == "Layers"
    assert pick_icon(["Python"]) == DEFAULT_ICON
    assert pick_color(["Python"]) == DEFAULT_COLOR


def test_build_project_id_uses_guid_suffix_or_timestamp() -> None:
    assert build_project_id("https://medium.com/p/1a2b3c") == "syndicated-1a2b3c"
    assert build_project_id("https://medium.com/p/1a2b3c/") == "syndicated-1a2b3c"
    assert build_project_id(None, now_ms=1700000000000) == "syndicated-1700000000000"


def test_parse_feed_reads_rss_items() -> None:
    items = parse_feed(RSS_FEED.encode("utf-8"))

    assert len(items) == 2
    first = items[0]
    assert first.title == "Deploying a Serverless API"
    assert first.categories == ["aws", "terraform"]
    assert first.guid == "https://medium.com/p/1a2b3c"
    assert "<img" in first.content
    assert items[1].link is None


def test_parse_feed_reads_atom_entries() -> None:
    items = parse_feed(ATOM_FEED)

    assert len(items) == 1
    assert items[0].link == "https://blog.example.org/k8s-at-home"
    assert items[0].categories == ["kubernetes"]
    assert items[0].content == "<p>Running a cluster in the closet.</p>"


@pytest.mark.parametrize("document", [b"not xml at all", b"<html><body>nope</body></html>"])
def test_parse_feed_rejects_non_feeds(document: bytes) -> None:
    with pytest.raises(FeedError):
        parse_feed(document)


def test_fetch_articles_builds_projects_and_skips_incomplete_items() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=RSS_FEED.encode("utf-8")))
    client = FeedClient(client=httpx.AsyncClient(transport=transport))

    projects = asyncio.run(fetch_articles("https://medium.com/feed/@someone", client))

    assert len(projects) == 1
    project = projects[0]
    assert project.id == "syndicated-1a2b3c"
    assert project.type == "syndicated"
    assert project.featured is False
    assert project.image == "https://cdn-images.medium.com/cover.png"
    assert project.technologies[:2] == ["AWS", "Terraform"]
    assert project.icon == "Cloud"
    assert project.color == "from-orange-500 to-orange-600"
    assert project.source_url == "https://medium.com/@someone/deploying-a-serverless-api-1a2b3c"
    assert project.published_date == "2024-01-02T10:00:00Z"
    assert project.highlights == ["Provisioned the whole stack with reusable Terraform modules"]
    assert project.description.startswith("This walkthrough deploys an API with Terraform")


def test_fetch_articles_uses_placeholder_image() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=ATOM_FEED.encode("utf-8")))
    client = FeedClient(client=httpx.AsyncClient(transport=transport))

    projects = asyncio.run(fetch_articles("https://blog.example.org/atom.xml", client))
    assert projects[0].image == PLACEHOLDER_IMAGE
    assert projects[0].technologies == ["Kubernetes"]


def test_fetch_articles_raises_feed_error_on_http_failure() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(404, text="missing"))
    client = FeedClient(client=httpx.AsyncClient(transport=transport))

    with pytest.raises(FeedError):
        asyncio.run(fetch_articles("https://medium.com/feed/@missing", client))


def test_parse_feed_serializes_xhtml_atom_content() -> None:
    document = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <entry>
    <title>Inline markup</title>
    <link href="https://blog.example.org/inline"/>
    <content type="xhtml">
      <div xmlns="http://www.w3.org/1999/xhtml"><p>Running <b>Docker</b> on a Pi.</p> Then more.</div>
    </content>
  </entry>
</feed>
"""

    items = parse_feed(document)

    assert items[0].content == "<p>Running <b>Docker</b> on a Pi.</p> Then more."
    assert extract_technologies(items[0].content) == ["Docker"]


def test_fetch_articles_maps_malformed_url_to_feed_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=RSS_FEED.encode("utf-8")))
    client = FeedClient(client=httpx.AsyncClient(transport=transport))

    with pytest.raises(FeedError):
        asyncio.run(fetch_articles("http://[::1/feed", client))
