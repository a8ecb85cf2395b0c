from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .arena import ArenaClient, FetchError
from .build import DEFAULT_SITE_DESCRIPTION, BuildError, SiteOptions, build_static_site
from .config import ConfigError, Settings, load_config
from .pages import build_rss
from .render import TemplateError
from .utils import parse_bool, parse_float, parse_int

FATAL_ERRORS = (BuildError, ConfigError, FetchError, TemplateError, OSError)


def build_parser(config: dict, config_path: str) -> argparse.ArgumentParser:
    def cfg_value(key: str, default: object) -> object:
        value = config.get(key)
        return default if value is None else value

    def cfg_str(key: str, default: str) -> str:
        value = cfg_value(key, default)
        return default if value is None else str(value)

    def cfg_bool(key: str, default: bool) -> bool:
        value = cfg_value(key, default)
        return parse_bool(value) if value is not None else default

    def cfg_int(key: str, default: int) -> int:
        return parse_int(cfg_value(key, default), default)

    parser = argparse.ArgumentParser(description="Build a static site from an Are.na channel.")
    parser.add_argument("--config", default=config_path, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument(
        "--source",
        default=cfg_str("source", "."),
        help="Directory holding views/ templates and public/ assets.",
    )
    parser.add_argument(
        "--output",
        default=config.get("output"),
        help="Output directory for the site (defaults to OUTPUT_DIR).",
    )
    parser.add_argument(
        "--slug-map",
        default=cfg_str("slug_map_file", "slug-mappings.json"),
        help="Path of the persisted slug mapping JSON file.",
    )
    parser.add_argument(
        "--site-url",
        default=cfg_str("site_url", ""),
        help="Public site URL used for RSS links.",
    )
    parser.add_argument(
        "--site-description",
        default=cfg_str("site_description", DEFAULT_SITE_DESCRIPTION),
        help="Channel description used in the RSS feed.",
    )
    parser.add_argument(
        "--build-workers",
        default=cfg_int("build_workers", 0),
        type=int,
        help="Number of worker threads for item pages (0 = auto).",
    )
    parser.add_argument(
        "--measure-size",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("measure_size", True),
        help="Annotate every page with its estimated download size.",
    )
    parser.add_argument(
        "--size-timeout",
        default=parse_float(config.get("size_timeout"), 3.0),
        type=float,
        help="Timeout in seconds for HEAD requests on external images.",
    )
    parser.add_argument(
        "--enable-rss",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_rss", True),
        help="Generate rss.xml (requires --site-url).",
    )
    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(
        "--config",
        default="site.toml",
        help="Path to site config file (TOML/YAML/JSON).",
    )
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config))
    return build_parser(config, pre_args.config).parse_args(argv)


def site_options(args: argparse.Namespace) -> SiteOptions:
    build_workers = int(args.build_workers or 0)
    if build_workers <= 0:
        build_workers = os.cpu_count() or 1
    # external HEAD probes run per page; keep the pool modest
    build_workers = max(1, min(build_workers, 8))
    return SiteOptions(
        source_dir=Path(args.source),
        slug_map_file=Path(args.slug_map),
        site_url=(args.site_url or "").strip(),
        site_description=args.site_description,
        build_workers=build_workers,
        measure_size=args.measure_size,
        size_timeout=args.size_timeout,
        enable_rss=args.enable_rss,
    )


def main(argv: Optional[list[str]] = None) -> None:
    load_dotenv()
    try:
        args = parse_args(argv)
        settings = Settings.from_env(output_dir=args.output)
        start = time.perf_counter()
        build_static_site(settings, site_options(args))
    except FATAL_ERRORS as exc:
        print(f"Failed to build static site: {exc}", file=sys.stderr)
        sys.exit(1)
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
    print(f"Site generated in: {settings.output_dir}")


def feed_main(argv: Optional[list[str]] = None) -> None:
    """Write rss.xml for the current channel using the last build's slug map."""
    load_dotenv()
    try:
        args = parse_args(argv)
        settings = Settings.from_env(output_dir=args.output)
        options = site_options(args)
        if not options.site_url:
            raise ConfigError("A site URL is required to generate the RSS feed (--site-url).")
        channel = ArenaClient(settings).fetch_channel()
        path = build_rss(
            channel, settings.output_dir, options.slug_map_file, options.site_url, options.site_description
        )
    except FATAL_ERRORS as exc:
        print(f"Failed to generate RSS feed: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"RSS feed written to: {path}")


if __name__ == "__main__":
    main()
