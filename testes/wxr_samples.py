"""Builders for small WXR documents and a fake HTTP session used by the tests."""

import io
import struct
import threading
import zlib

import requests
from PIL import Image

HEADER = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
    xmlns:excerpt="http://wordpress.org/export/1.2/excerpt/"
    xmlns:content="http://purl.org/rss/1.0/modules/content/"
    xmlns:wfw="http://wellformedweb.org/CommentAPI/"
    xmlns:dc="http://purl.org/dc/elements/1.1/"
    xmlns:wp="http://wordpress.org/export/1.2/">
<channel>
  <title>Herbivore Kitchen</title>
  <link>https://blog.example.com</link>
  <description>Recipes and notes</description>
  <wp:wxr_version>1.2</wp:wxr_version>
"""

FOOTER = """</channel>
</rss>
"""


def author(login, email="", display_name="", author_id="1"):
    return f"""  <wp:author>
    <wp:author_id>{author_id}</wp:author_id>
    <wp:author_login><![CDATA[{login}]]></wp:author_login>
    <wp:author_email><![CDATA[{email}]]></wp:author_email>
    <wp:author_display_name><![CDATA[{display_name or login}]]></wp:author_display_name>
    <wp:author_first_name><![CDATA[]]></wp:author_first_name>
    <wp:author_last_name><![CDATA[]]></wp:author_last_name>
  </wp:author>
"""


def category(nicename, name, parent=""):
    return f"""  <wp:category>
    <wp:term_id>7</wp:term_id>
    <wp:category_nicename><![CDATA[{nicename}]]></wp:category_nicename>
    <wp:category_parent><![CDATA[{parent}]]></wp:category_parent>
    <wp:cat_name><![CDATA[{name}]]></wp:cat_name>
  </wp:category>
"""


def tag(slug, name):
    return f"""  <wp:tag>
    <wp:term_id>9</wp:term_id>
    <wp:tag_slug><![CDATA[{slug}]]></wp:tag_slug>
    <wp:tag_name><![CDATA[{name}]]></wp:tag_name>
  </wp:tag>
"""


def comment(comment_id, parent="0", approved="1", content="Nice post"):
    return f"""    <wp:comment>
      <wp:comment_id>{comment_id}</wp:comment_id>
      <wp:comment_author><![CDATA[Reader {comment_id}]]></wp:comment_author>
      <wp:comment_author_email><![CDATA[reader{comment_id}@example.com]]></wp:comment_author_email>
      <wp:comment_author_url>https://reader.example.com</wp:comment_author_url>
      <wp:comment_date><![CDATA[2020-01-02 10:00:00]]></wp:comment_date>
      <wp:comment_content><![CDATA[{content}]]></wp:comment_content>
      <wp:comment_approved><![CDATA[{approved}]]></wp:comment_approved>
      <wp:comment_parent>{parent}</wp:comment_parent>
    </wp:comment>
"""


def item(post_id, post_type="post", title="Untitled", status="publish", creator="admin",
         content="<p>Hello <b>world</b></p>", excerpt="", terms=(), meta=None,
         attachment_url="", mime_type=None, comments=()):
    terms_xml = "".join(
        f'    <category domain="{domain}" nicename="{nicename}"><![CDATA[{nicename.title()}]]></category>\n'
        for domain, nicename in terms
    )
    meta_xml = "".join(
        f"""    <wp:postmeta>
      <wp:meta_key><![CDATA[{key}]]></wp:meta_key>
      <wp:meta_value><![CDATA[{value}]]></wp:meta_value>
    </wp:postmeta>
"""
        for key, value in (meta or {}).items()
    )
    extra = ""
    if attachment_url:
        extra += f"    <wp:attachment_url><![CDATA[{attachment_url}]]></wp:attachment_url>\n"
    if mime_type is not None:
        extra += f"    <wp:post_mime_type><![CDATA[{mime_type}]]></wp:post_mime_type>\n"
    return f"""  <item>
    <title>{title}</title>
    <link>https://blog.example.com/?p={post_id}</link>
    <pubDate>Thu, 02 Jan 2020 09:30:00 +0000</pubDate>
    <dc:creator><![CDATA[{creator}]]></dc:creator>
    <content:encoded><![CDATA[{content}]]></content:encoded>
    <excerpt:encoded><![CDATA[{excerpt}]]></excerpt:encoded>
    <wp:post_id>{post_id}</wp:post_id>
    <wp:post_date><![CDATA[2020-01-02 09:30:00]]></wp:post_date>
    <wp:post_date_gmt><![CDATA[2020-01-02 09:30:00]]></wp:post_date_gmt>
    <wp:status><![CDATA[{status}]]></wp:status>
    <wp:post_type><![CDATA[{post_type}]]></wp:post_type>
{extra}{terms_xml}{meta_xml}{"".join(comments)}  </item>
"""


def wxr(*parts):
    return HEADER + "".join(parts) + FOOTER


HERO_URL = "https://blog.example.com/wp-content/uploads/2020/01/hero.png"
MISSING_URL = "https://gone.example.com/wp-content/uploads/missing.png"
PDF_URL = "https://blog.example.com/wp-content/uploads/menu.pdf"


def scenario_wxr():
    """2 authors, 3 categories, 2 tags, 3 attachments, 5 posts, 1 page and 10 comments.

    Comments 90 and 91 hang off a menu item that is never imported; the
    replies 7 and 8 point at them and must stay top-level.
    """
    return wxr(
        author("alice", "alice@example.com", "Alice", author_id="1"),
        author("bob", "", "Bob", author_id="2"),
        category("news", "News"),
        category("travel-notes", "Travel Notes", parent="news"),
        category("recipes", "Recipes"),
        tag("python", "Python"),
        tag("tips", "Tips &amp; Tricks"),
        item(101, "attachment", "Hero", attachment_url=HERO_URL, mime_type="image/png"),
        item(102, "attachment", "Missing", attachment_url=MISSING_URL, mime_type="image/png"),
        item(103, "attachment", "Menu", attachment_url=PDF_URL, mime_type="application/pdf"),
        item(1, title="First post", creator="alice", terms=[("category", "news"), ("post_tag", "python")],
             meta={"_thumbnail_id": "101"}, comments=[comment(1), comment(2, parent="1"), comment(3)]),
        item(2, title="Second post", creator="bob", terms=[("category", "travel-notes")],
             meta={"_thumbnail_id": "102"}, comments=[comment(4), comment(5, parent="4", approved="0")]),
        item(3, title="Third post", status="draft", creator="ghost", comments=[comment(6)]),
        item(4, title="Fourth post", status="future", comments=[comment(7, parent="90")]),
        item(5, title="Fifth post", status="private", terms=[("post_tag", "tips")], comments=[comment(8, parent="91")]),
        item(10, "page", "About"),
        item(20, "nav_menu_item", "Menu entry", comments=[comment(90), comment(91)]),
    )


def png_bytes(width=1600, height=800, color="red"):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buffer, format="PNG")
    return buffer.getvalue()


def _png_chunk(kind, data):
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)


def png_header_only(width, height):
    """A PNG that declares ``width x height`` pixels but carries no image data."""
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + _png_chunk(b"IHDR", header) + _png_chunk(b"IEND", b"")


class FakeResponse:
    def __init__(self, body=b"", status_code=200, json_data=None, headers=None, fail_after=None):
        self.body = body
        self.status_code = status_code
        self._json = json_data
        self.headers = headers or {}
        self.text = str(json_data) if json_data is not None else ""
        self.fail_after = fail_after
        self.closed = False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        return self._json

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.body), chunk_size):
            if self.fail_after is not None and start >= self.fail_after:
                raise requests.exceptions.ChunkedEncodingError("connection reset")
            yield self.body[start:start + chunk_size]

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class FakeSession:
    """Serves ``routes`` by URL; a route may be bytes, a FakeResponse or an exception."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        route = self.routes.get(url)
        if route is None:
            raise requests.ConnectionError(f"cannot reach {url}")
        if isinstance(route, Exception):
            raise route
        if isinstance(route, FakeResponse):
            return route
        return FakeResponse(route)


class GatedSession(FakeSession):
    """Holds the first request until ``release`` is set; later requests pass through."""

    def __init__(self, routes=None):
        super().__init__(routes)
        self.entered = threading.Event()
        self.release = threading.Event()

    def get(self, url, **kwargs):
        if not self.entered.is_set():
            self.entered.set()
            assert self.release.wait(5)
        return super().get(url, **kwargs)
