from __future__ import annotations

import gzip
import re
import sys
import threading
from html.parser import HTMLParser
from pathlib import Path
from typing import Optional

import requests

ESTIMATED_EXTERNAL_IMAGE_SIZE = 300 * 1024
DEFAULT_PROBE_TIMEOUT = 3.0
SIZE_RE = re.compile(r'<p class="size">.*?</p>', re.DOTALL)
ICON_RELS = {"icon", "apple-touch-icon", "manifest", "shortcut icon"}
HINT_RELS = {"preload", "prefetch", "dns-prefetch", "preconnect"}


class ResourceParser(HTMLParser):
    """Collects ``(kind, url, compressible)`` for every resource a page loads."""

    def __init__(self) -> None:
        super().__init__()
        self.resources: list[tuple[str, str, bool]] = []

    def handle_starttag(self, tag, attrs):
        values = {name.lower(): (value or "") for name, value in attrs if name}
        tag = tag.lower()
        if tag == "link":
            rel = values.get("rel", "").strip().lower()
            href = values.get("href", "")
            if rel == "stylesheet":
                self.resources.append(("css", href, True))
            elif rel in ICON_RELS:
                self.resources.append(("icon", href, False))
            elif rel in HINT_RELS and not is_external(href):
                self.resources.append(("hint", href, False))
        elif tag == "script" and values.get("src"):
            self.resources.append(("js", values["src"], True))
        elif tag == "img" and values.get("src"):
            self.resources.append(("image", values["src"], False))
        elif tag == "meta":
            key = values.get("property") or values.get("name") or ""
            content = values.get("content", "")
            if (key.startswith("og:image") or key == "twitter:image") and content.startswith("/"):
                self.resources.append(("meta", content, False))

    def handle_startendtag(self, tag, attrs):
        self.handle_starttag(tag, attrs)


def is_external(src: str) -> bool:
    return src.startswith(("http://", "https://", "//"))


def compressed_size(data: bytes) -> int:
    return len(gzip.compress(data))


class SizeProbe:
    """HEAD-probes external resources, caching sizes across pages."""

    def __init__(self, timeout: float = DEFAULT_PROBE_TIMEOUT, fallback: int = ESTIMATED_EXTERNAL_IMAGE_SIZE):
        self.timeout = timeout
        self.fallback = fallback
        self._cache: dict[str, int] = {}
        self._lock = threading.Lock()

    def __call__(self, url: str) -> int:
        with self._lock:
            if url in self._cache:
                return self._cache[url]
        size = self.fetch(url)
        with self._lock:
            self._cache[url] = size
        return size

    def fetch(self, url: str) -> int:
        if url.startswith("//"):
            url = f"https:{url}"
        try:
            response = requests.head(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException:
            return self.fallback
        length = response.headers.get("Content-Length")
        if not length:
            return self.fallback
        try:
            return int(length)
        except ValueError:
            return self.fallback


def resolve_resource(src: str, page_dir: Path, output_dir: Path) -> Optional[Path]:
    src = src.split("#", 1)[0].split("?", 1)[0]
    if not src:
        return None
    if src.startswith("/"):
        candidates = [output_dir / src.lstrip("/"), page_dir.parent / src.lstrip("/")]
    else:
        candidates = [page_dir / src]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def page_size(text: str, page_dir: Path, output_dir: Path, probe) -> tuple[int, int, int]:
    """Return ``(total_bytes, external_image_count, external_image_bytes)``."""
    parser = ResourceParser()
    parser.feed(text)
    parser.close()
    total = compressed_size(text.encode("utf-8"))
    external_count = 0
    external_bytes = 0
    for kind, src, compressible in parser.resources:
        if is_external(src):
            if kind == "image":
                size = probe(src)
                external_count += 1
                external_bytes += size
                total += size
            continue
        path = resolve_resource(src, page_dir, output_dir)
        if path is None:
            continue
        if compressible:
            total += compressed_size(path.read_bytes())
        else:
            total += path.stat().st_size
    return total, external_count, external_bytes


def measure_page_size(page_path: Path, output_dir: Path, probe=None) -> Optional[float]:
    """Write the page's estimated transfer size into its ``<p class="size">`` element."""
    probe = probe or SizeProbe()
    try:
        text = page_path.read_text(encoding="utf-8")
        total, external_count, external_bytes = page_size(text, page_path.parent, output_dir, probe)
        size_kb = total / 1024
        replacement = f'<p class="size">{size_kb:.1f} KB</p>'
        if external_count:
            replacement += (
                f" <!-- Includes {external_count} external images"
                f" ({external_bytes / 1024:.1f} KB) -->"
            )
        page_path.write_text(SIZE_RE.sub(lambda _: replacement, text, count=1), encoding="utf-8")
        return size_kb
    except OSError as exc:
        print(f"Error measuring page size for {page_path}: {exc}", file=sys.stderr)
        return None
