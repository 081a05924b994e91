"""CLI entry point for the deal search engine."""

import argparse
import asyncio
import logging
import sys

from src.core.config import Settings
from src.pipeline.orchestrator import export_results_json, run_all_searches
from src.platforms.catalog.adapter import CatalogDatastore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Deal search engine - find, score and rank marketplace listings",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- search subcommand (default) ---
    search_parser = subparsers.add_parser("search", help="Run configured deal searches")
    search_parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    search_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the configured searches without loading the catalog",
    )
    search_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export results to format (json)",
    )
    search_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # --- suggest subcommand ---
    suggest_parser = subparsers.add_parser(
        "suggest",
        help="Suggest opening negotiation messages for one listing",
    )
    suggest_parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    suggest_parser.add_argument(
        "--listing-id",
        required=True,
        help="Catalog listing id",
    )
    suggest_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # --- backward compat: top-level flags for search ---
    parser.add_argument("--config", default="config/settings.yaml", help=argparse.SUPPRESS)
    parser.add_argument("--dry-run", action="store_true", help=argparse.SUPPRESS)
    parser.add_argument("--export", choices=["json"], help=argparse.SUPPRESS)
    parser.add_argument("--verbose", "-v", action="store_true", help=argparse.SUPPRESS)

    args = parser.parse_args(argv)

    # Default to search when no subcommand given
    if args.command is None:
        args.command = "search"

    return args


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def dry_run(settings: Settings) -> None:
    """Print what would happen without actually searching."""
    prefs = settings.preferences
    print(f"[DRY RUN] {len(settings.searches)} searches configured")
    print(f"[DRY RUN] Catalog: {settings.catalog.path}")
    print(
        f"[DRY RUN] Max distance: {prefs.max_distance_km} km, "
        f"avoid cash-only: {prefs.avoid_cash_only}, "
        f"avoid off-platform: {prefs.avoid_off_platform}"
    )

    for search in settings.searches:
        print(f"[DRY RUN] '{search.query}'")
        print(f"  Budget: {search.budget_min} - {search.budget_max}")
        print(f"  Target price: {search.target_price}")
        print(f"  Urgency: {search.urgency or 'unspecified'}")
        print(f"  Deal breakers: {search.deal_breakers}")
        print(f"  Hard constraints: {search.hard_constraints}")


async def run(settings: Settings, export_format: str | None) -> None:
    """Run every configured search against the catalog."""
    datastore = CatalogDatastore.from_yaml(settings.catalog.path)
    results = await run_all_searches(settings, datastore)

    for r in results:
        print(f"\n'{r.query}': {r.raw_count} raw, {r.filtered_count} after filters")
        for rank, deal in enumerate(r.deals, start=1):
            s = deal.scores
            print(
                f"  {rank}. [{s.deal_score:3d}] {deal.listing.title} - ${deal.listing.price:g} "
                f"(fit {s.fit_score}, price {s.price_score}, risk {s.risk_score}, "
                f"leverage {s.leverage_score}) open at ${deal.opening_offer}"
            )

    if export_format == "json" and results:
        output = export_results_json(results)
        print(f"\n{output}")


async def cmd_suggest(settings: Settings, listing_id: str) -> None:
    """Handle suggest subcommand."""
    from src.pipeline.negotiation import generate_suggestions

    datastore = CatalogDatastore.from_yaml(settings.catalog.path)
    listing = await datastore.get_by_id(listing_id)
    if listing is None:
        msg = f"Unknown listing id: {listing_id}"
        raise ValueError(msg)

    print(f"{listing.title} - ${listing.price:g}")
    for s in generate_suggestions(listing, settings.preferences, config=settings.negotiation):
        print(f"  [{s.style}] {s.label}: {s.message}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "suggest":
        try:
            asyncio.run(cmd_suggest(settings, args.listing_id))
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    elif args.dry_run:
        dry_run(settings)
    else:
        try:
            asyncio.run(run(settings, args.export))
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
