"""
Fiscal Dashboard Report Tool

Load one dataset from the REST source and print its rollup table, the line
items for one group, or the chat-context text for a group.

Usage:
    python dashboard_report.py capital
    python dashboard_report.py revenue --top 5
    python dashboard_report.py discretionary --group "Department of Health"
    python dashboard_report.py capital --group "Department of Transportation" --context
    python dashboard_report.py capital --json

The source is configured with APP_SOURCE_URL and APP_SOURCE_KEY (or --source-url
and --source-key); paging follows APP_PAGE_SIZE, APP_PAGE_TIMEOUT and
APP_PAGE_RETRIES, or a JSON file of LoaderConfig settings given with
--loader-config:

    python dashboard_report.py capital --loader-config loader.json
    # loader.json: {"page_size": 500, "max_retries": 3}
"""

import argparse
import json
import logging
import sys

from engine.context import DEFAULT_TOP_N
from engine.dashboard import DashboardEngine
from engine.datasets import DATASETS, detail_to_dict, get_dataset
from engine.source import PostgrestSource, TabularSource
from utils.config import AppConfig, LoaderConfig
from utils.formatting import (
    TableFormatter,
    format_amount,
    format_compact,
    format_count,
    format_percent,
    truncate_text,
)

logger = logging.getLogger("dashboard_report")


def print_rollup(engine: DashboardEngine, top: int | None = None) -> None:
    """Print the rollup table with a grand-total footer."""
    groups = engine.aggregates()
    shown = groups if top is None else groups[:top]
    table = TableFormatter(["Group", "Items", "Total", "Share"])
    for g in shown:
        table.add_row([
            truncate_text(g.name, 60),
            format_count(g.count),
            format_compact(g.total_amount),
            format_percent(engine.share_of_total(g.name)),
        ])
    print(f"\n{engine.dataset.title}")
    print("=" * len(engine.dataset.title))
    table.print_table()
    if top is not None and len(groups) > top:
        print(f"  ... {len(groups) - top} more groups")
    print(f"\nTotal: {format_compact(engine.grand_total())} "
          f"across {format_count(engine.total_item_count())} items")


def print_group(engine: DashboardEngine, group: str, top: int | None = None) -> int:
    """Print one group's line items; returns a process exit code."""
    aggregate = engine.group(group)
    if aggregate is None:
        print(f"ERROR: no group named {group!r} in {engine.dataset.name}")
        return 1
    items = engine.drill_down(group)
    shown = items if top is None else items[:top]
    primary = engine.dataset.primary_amount
    table = TableFormatter(["Item", "Amount"])
    for item in shown:
        label = engine.dataset.item_bullet(item).rsplit(": ", 1)[0]
        table.add_row([truncate_text(label, 70), format_amount(getattr(item, primary))])
    print(f"\n{engine.dataset.group_label}: {group}")
    print(f"{format_count(aggregate.count)} items, "
          f"{format_compact(aggregate.total_amount)} "
          f"({format_percent(engine.share_of_total(group))} of total)\n")
    table.print_table()
    return 0


def dump_json(engine: DashboardEngine, group: str | None) -> None:
    if group is None:
        payload = {
            "dataset": engine.dataset.name,
            "grand_total": engine.grand_total(),
            "total_items": engine.total_item_count(),
            "groups": [g.to_dict() for g in engine.aggregates()],
            "load": engine.report.to_dict(),
        }
    else:
        payload = {
            "dataset": engine.dataset.name,
            "group": group,
            "items": [detail_to_dict(i) for i in engine.drill_down(group)],
        }
    print(json.dumps(payload, indent=2, default=str))


def resolve_loader_config(path: str | None, cfg: AppConfig) -> LoaderConfig:
    """LoaderConfig from the JSON file at *path*, else from the APP_PAGE_* settings."""
    if path:
        return LoaderConfig.load_json(path)
    return cfg.loader_config()


def run(args: argparse.Namespace, source: TabularSource,
        loader_config: LoaderConfig) -> int:
    """Load the dataset and print the requested view; returns an exit code."""
    dataset = get_dataset(args.dataset)
    with DashboardEngine(dataset, source, loader_config) as engine:
        state = engine.load()
        if state.is_failed:
            print(f"ERROR: could not load {dataset.title}: {state.error}")
            return 1
        logger.info("%s: %s", dataset.name, engine.report.console_summary())

        if args.json:
            dump_json(engine, args.group)
            return 0
        if args.context:
            if args.group is None:
                print("ERROR: --context requires --group")
                return 2
            try:
                top_n = DEFAULT_TOP_N if args.top is None else args.top
                print(engine.build_chat_context(args.group, top_n=top_n))
            except ValueError as exc:
                print(f"ERROR: {exc}")
                return 1
            return 0
        if args.group is not None:
            return print_group(engine, args.group, args.top)
        print_rollup(engine, args.top)
        return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Print fiscal dashboard rollups and drill-downs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("dataset", choices=sorted(DATASETS),
                        help="Dataset to load")
    parser.add_argument("--group", default=None,
                        help="Show line items for this agency / fund group")
    parser.add_argument("--context", action="store_true",
                        help="Print chat-context text for --group")
    parser.add_argument("--top", type=int, default=None,
                        help="Limit rows shown (context default: 10)")
    parser.add_argument("--json", action="store_true",
                        help="Emit JSON instead of a table")
    parser.add_argument("--source-url", default=None,
                        help="Supabase/PostgREST base URL (default: APP_SOURCE_URL)")
    parser.add_argument("--source-key", default=None,
                        help="API key (default: APP_SOURCE_KEY)")
    parser.add_argument("--loader-config", default=None, metavar="FILE",
                        help="JSON file of loader settings (overrides APP_PAGE_*)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log each page request")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    cfg = AppConfig.from_env()
    if args.source_url:
        cfg.source_url = args.source_url
    if args.source_key:
        cfg.source_key = args.source_key
    if not cfg.source_url:
        print("ERROR: no data source configured.")
        print("Set APP_SOURCE_URL (and APP_SOURCE_KEY) or pass --source-url.")
        sys.exit(1)

    try:
        loader_config = resolve_loader_config(args.loader_config, cfg)
    except (OSError, ValueError) as exc:
        print(f"ERROR: bad loader config {args.loader_config}: {exc}")
        sys.exit(2)

    with PostgrestSource(cfg.source_config()) as source:
        sys.exit(run(args, source, loader_config))


if __name__ == "__main__":
    main()
