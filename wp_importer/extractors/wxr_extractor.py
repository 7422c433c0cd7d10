import mimetypes
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from email.utils import parsedate_to_datetime

from pydantic import TypeAdapter

from ..models.records import SourceRecord
from ..utils.errors import ParseError

CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
DC_NS = "http://purl.org/dc/elements/1.1/"
DEFAULT_WP_NS = "http://wordpress.org/export/1.2/"

_WP_NS_RE = re.compile(r"^\{(http://wordpress\.org/export/[\d.]+/)\}")

# Builds the record variant named by "kind"
_SOURCE_RECORD = TypeAdapter(SourceRecord)


def record(kind, **fields):
    """Validate ``fields`` into the record type registered for ``kind``."""
    return _SOURCE_RECORD.validate_python({"kind": kind, **fields})


def text(node):
    """Return the text of a leaf element (CDATA included), ``""`` if absent."""
    if node is None or node.text is None:
        return ""
    return node.text.strip()


def parse_wp_date(value):
    """Parse ``wp:post_date`` style values, ``None`` for empty or zero dates."""
    if not value or value.startswith("0000-00-00"):
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None


def parse_rfc822_date(value):
    """Parse an RSS ``pubDate``, ``None`` when it is missing or unreadable."""
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None


def _detect_wp_namespace(channel):
    for element in channel.iter():
        match = _WP_NS_RE.match(element.tag)
        if match:
            return match.group(1)
    return DEFAULT_WP_NS


def load_document(file_path):
    """Parse ``file_path`` into a :class:`WXRDocument`.

    Raises:
        ParseError: If the file cannot be read, is not well-formed XML or
            has no RSS ``<channel>``.
    """
    try:
        tree = ET.parse(file_path)
    except ET.ParseError as e:
        raise ParseError(f"Malformed WordPress export {file_path}: {e}") from e
    except OSError as e:
        raise ParseError(f"Could not read WordPress export {file_path}: {e}") from e

    channel = tree.getroot().find("channel")
    if channel is None:
        raise ParseError(f"{file_path} has no RSS channel; is it a WordPress export?")
    return WXRDocument(channel)


class WXRDocument:
    """Typed access to the entities of a parsed WXR ``<channel>``."""

    def __init__(self, channel):
        self.channel = channel
        self.wp_ns = _detect_wp_namespace(channel)
        self.excerpt_ns = self.wp_ns + "excerpt/"

    def wp(self, name):
        return f"{{{self.wp_ns}}}{name}"

    def wp_text(self, node, name):
        return text(node.find(self.wp(name)))

    def meta(self, item):
        """Flatten the ``wp:postmeta`` pairs of ``item``; the last duplicate key wins."""
        result = {}
        for pair in item.findall(self.wp("postmeta")):
            key = self.wp_text(pair, "meta_key")
            value = self.wp_text(pair, "meta_value")
            if key and value:
                result[key] = value
        return result

    def items(self):
        return self.channel.findall("item")

    def _items_of_type(self, post_type):
        return [item for item in self.items() if self.wp_text(item, "post_type") == post_type]

    def authors(self):
        return [
            record(
                "author",
                author_id=self.wp_text(node, "author_id"),
                login=self.wp_text(node, "author_login"),
                email=self.wp_text(node, "author_email"),
                display_name=self.wp_text(node, "author_display_name"),
                first_name=self.wp_text(node, "author_first_name"),
                last_name=self.wp_text(node, "author_last_name"),
                description=self.wp_text(node, "author_description"),
            )
            for node in self.channel.findall(self.wp("author"))
        ]

    def categories(self):
        return [
            record(
                "category",
                term_id=self.wp_text(node, "term_id"),
                nicename=self.wp_text(node, "category_nicename"),
                name=self.wp_text(node, "cat_name"),
                parent=self.wp_text(node, "category_parent"),
                description=self.wp_text(node, "category_description"),
            )
            for node in self.channel.findall(self.wp("category"))
        ]

    def tags(self):
        return [
            record(
                "tag",
                term_id=self.wp_text(node, "term_id"),
                slug=self.wp_text(node, "tag_slug"),
                name=self.wp_text(node, "tag_name"),
            )
            for node in self.channel.findall(self.wp("tag"))
        ]

    def attachments(self):
        """Attachment items that carry a source URL."""
        records = []
        for item in self._items_of_type("attachment"):
            url = self.wp_text(item, "attachment_url")
            if not url:
                continue
            mime_type = self.wp_text(item, "post_mime_type") or (mimetypes.guess_type(url)[0] or "")
            records.append(
                record(
                    "attachment",
                    post_id=self.wp_text(item, "post_id"),
                    title=text(item.find("title")),
                    url=url,
                    mime_type=mime_type,
                    excerpt=text(item.find(f"{{{self.excerpt_ns}}}encoded")),
                    content=text(item.find(f"{{{CONTENT_NS}}}encoded")),
                )
            )
        return records

    def _content_record(self, kind, item, stable_keys):
        categories, tags = [], []
        for term in item.findall("category"):
            nicename = term.get("nicename")
            if not nicename:
                continue
            if term.get("domain") == "category":
                categories.append(nicename)
            elif term.get("domain") == "post_tag":
                tags.append(nicename)
        return record(
            kind,
            post_id=self.wp_text(item, "post_id"),
            title=text(item.find("title")),
            content=text(item.find(f"{{{CONTENT_NS}}}encoded")),
            excerpt=text(item.find(f"{{{self.excerpt_ns}}}encoded")),
            status=self.wp_text(item, "status"),
            creator=text(item.find(f"{{{DC_NS}}}creator")),
            pub_date=parse_rfc822_date(text(item.find("pubDate"))),
            post_date=parse_wp_date(self.wp_text(item, "post_date")),
            post_date_gmt=parse_wp_date(self.wp_text(item, "post_date_gmt")),
            categories=categories,
            tags=tags,
            meta=self.meta(item),
            stable_key=stable_keys,
        )

    def posts(self, stable_keys=False):
        return [self._content_record("post", item, stable_keys) for item in self._items_of_type("post")]

    def pages(self, stable_keys=False):
        return [self._content_record("page", item, stable_keys) for item in self._items_of_type("page")]

    def comments(self):
        """Every ``wp:comment`` of every item, in document order."""
        records = []
        for item in self.items():
            post_id = self.wp_text(item, "post_id")
            for node in item.findall(self.wp("comment")):
                records.append(
                    record(
                        "comment",
                        comment_id=self.wp_text(node, "comment_id"),
                        post_id=post_id,
                        author=self.wp_text(node, "comment_author"),
                        author_email=self.wp_text(node, "comment_author_email"),
                        author_url=self.wp_text(node, "comment_author_url"),
                        content=self.wp_text(node, "comment_content"),
                        date=parse_wp_date(self.wp_text(node, "comment_date")),
                        approved=self.wp_text(node, "comment_approved"),
                        parent=self.wp_text(node, "comment_parent"),
                    )
                )
        return records

    def preview(self):
        """Site information and per-kind counts, without building records."""
        items = self.items()
        post_types = [self.wp_text(item, "post_type") for item in items]
        return {
            "site": {
                "title": text(self.channel.find("title")),
                "description": text(self.channel.find("description")),
                "link": text(self.channel.find("link")),
            },
            "counts": {
                "authors": len(self.channel.findall(self.wp("author"))),
                "categories": len(self.channel.findall(self.wp("category"))),
                "tags": len(self.channel.findall(self.wp("tag"))),
                "posts": post_types.count("post"),
                "pages": post_types.count("page"),
                "media": sum(
                    1
                    for item, post_type in zip(items, post_types)
                    if post_type == "attachment" and self.wp_text(item, "attachment_url")
                ),
                "comments": sum(len(item.findall(self.wp("comment"))) for item in items),
            },
        }
