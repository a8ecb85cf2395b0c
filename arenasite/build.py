from __future__ import annotations

import datetime as dt
import functools
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .arena import ArenaClient
from .config import Settings
from .markup import highlight_css
from .models import Channel, ContentItem
from .pages import build_rss, render_404, render_home, render_item
from .render import copy_static, write_text
from .size import SizeProbe, measure_page_size
from .slugmap import build_slug_map, save_slug_mappings
from .utils import clear_output_dir

ASSETS_DIR = "assets"
DEFAULT_SITE_DESCRIPTION = "A site built from an Are.na channel."

Measure = Optional[Callable[[Path], object]]


class BuildError(Exception):
    pass


@dataclass
class SiteOptions:
    source_dir: Path = Path(".")
    slug_map_file: Path = Path("slug-mappings.json")
    site_url: str = ""
    site_description: str = DEFAULT_SITE_DESCRIPTION
    build_workers: int = 1
    measure_size: bool = True
    size_timeout: float = 3.0
    enable_rss: bool = True

    @property
    def templates_dir(self) -> Path:
        return self.source_dir / "views"

    @property
    def static_dir(self) -> Path:
        return self.source_dir / "public"


def prepare_output_dir(output_dir: Path, project_root: Optional[Path] = None) -> None:
    project_root = project_root or Path.cwd()
    try:
        if output_dir.exists():
            clear_output_dir(output_dir, project_root)
        else:
            output_dir.mkdir(parents=True)
        assets_dir = output_dir / ASSETS_DIR
        assets_dir.mkdir(parents=True, exist_ok=True)
        write_text(assets_dir / "codehilite.css", highlight_css())
    except (OSError, ValueError) as exc:
        raise BuildError(f"Could not prepare output directory {output_dir}: {exc}") from exc


def copy_static_assets(static_dir: Path, output_dir: Path) -> None:
    if not static_dir.is_dir():
        raise BuildError(f"Static assets directory not found: {static_dir}")
    copy_static(static_dir, output_dir)


def write_page(path: Path, html_doc: str, measure: Measure) -> Path:
    write_text(path, html_doc)
    if measure is not None:
        measure(path)
    return path


def generate_home_page(
    channel: Channel,
    slug_map: dict[str, ContentItem],
    templates_dir: Path,
    output_dir: Path,
    measure: Measure = None,
) -> Path:
    html_doc = render_home(channel, slug_map, templates_dir)
    return write_page(output_dir / "index.html", html_doc, measure)


def generate_item_pages(
    channel: Channel,
    slug_map: dict[str, ContentItem],
    templates_dir: Path,
    output_dir: Path,
    measure: Measure = None,
    workers: int = 1,
) -> list[Path]:
    def render_page(entry: tuple[str, ContentItem]) -> Path:
        slug, item = entry
        html_doc = render_item(channel, item, slug_map, templates_dir)
        return write_page(output_dir / slug / "index.html", html_doc, measure)

    entries = list(slug_map.items())
    workers = max(1, int(workers or 1))
    if workers <= 1 or len(entries) <= 1:
        return [render_page(entry) for entry in entries]
    with ThreadPoolExecutor(max_workers=min(workers, len(entries))) as executor:
        return list(executor.map(render_page, entries))


def generate_404_page(
    channel: Channel,
    slug_map: dict[str, ContentItem],
    templates_dir: Path,
    output_dir: Path,
    measure: Measure = None,
) -> Path:
    html_doc = render_404(channel, slug_map, templates_dir)
    return write_page(output_dir / "404.html", html_doc, measure)


def generate_static_pages(
    channel: Channel,
    slug_map: dict[str, ContentItem],
    output_dir: Path,
    options: SiteOptions,
) -> None:
    measure: Measure = None
    if options.measure_size:
        probe = SizeProbe(timeout=options.size_timeout)
        measure = functools.partial(measure_page_size, output_dir=output_dir, probe=probe)

    prepare_output_dir(output_dir)
    copy_static_assets(options.static_dir, output_dir)
    templates_dir = options.templates_dir
    generate_home_page(channel, slug_map, templates_dir, output_dir, measure)
    generate_item_pages(
        channel, slug_map, templates_dir, output_dir, measure, workers=options.build_workers
    )
    generate_404_page(channel, slug_map, templates_dir, output_dir, measure)
    if options.enable_rss and options.site_url:
        build_rss(channel, output_dir, options.slug_map_file, options.site_url, options.site_description)
    print(f"Page generation completed at: {dt.datetime.now(dt.timezone.utc).isoformat()}")


def build_static_site(
    settings: Settings, options: SiteOptions, client: Optional[ArenaClient] = None
) -> dict[str, ContentItem]:
    if settings.output_dir is None:
        raise BuildError("No output directory configured.")
    print("Starting static site build process...")
    if options.slug_map_file.exists():
        options.slug_map_file.unlink()
        print(f"Deleted existing {options.slug_map_file.name} file")

    client = client or ArenaClient(settings)
    print("Fetching latest data from Are.na API...")
    channel = client.fetch_channel()

    slug_map = build_slug_map(channel.contents)
    save_slug_mappings(channel, options.slug_map_file)

    print(f"Channel data fetched successfully ({len(channel.contents)} blocks), generating pages...")
    generate_static_pages(channel, slug_map, settings.output_dir, options)
    print("Static site built successfully!")
    return slug_map
