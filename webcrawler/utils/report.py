"""
Sitemap report rendering.
"""

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from ..crawler.content import Content


@dataclass
class SitemapEntry:
    """One stored page: its address, content type and children."""
    url: str
    content_type: str
    children: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'url': self.url,
            'contentType': self.content_type,
            'children': self.children
        }


def build_sitemap(contents: Iterable[Content]) -> List[SitemapEntry]:
    """Snapshot stored content as sitemap entries ordered by address."""
    return [
        SitemapEntry(url=c.address, content_type=c.content_type, children=c.children_list())
        for c in sorted(contents, key=lambda c: c.address)
    ]


def render_report(sitemap: List[SitemapEntry], fmt: str = 'json') -> str:
    """
    Render a sitemap.

    Formats:
        json: compact JSON list
        json-formatted: JSON list indented with 4 spaces
        raw: one address per line, each child below it as "  |- child"
    """
    if fmt == 'json':
        return json.dumps([entry.to_dict() for entry in sitemap])
    if fmt == 'json-formatted':
        return json.dumps([entry.to_dict() for entry in sitemap], indent=4)
    if fmt == 'raw':
        lines = []
        for entry in sitemap:
            lines.append(entry.url)
            lines.extend(f"  |- {child}" for child in entry.children)
        return ''.join(f"{line}\n" for line in lines)
    raise ValueError(f"Unknown report format: {fmt}")


def write_report(sitemap: List[SitemapEntry], fmt: str = 'json',
                 output: Optional[str] = None, stream: Optional[TextIO] = None):
    """Write a rendered sitemap to a file, or to stream (stdout by default)."""
    rendered = render_report(sitemap, fmt)
    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(rendered, encoding='utf-8')
        return
    stream = stream or sys.stdout
    stream.write(rendered)
    if not rendered.endswith('\n'):
        stream.write('\n')
