"""Command-line interface for the article QA harness."""

import json
import sys

from siteqa.checks import default_registry
from siteqa.config import QAConfig, settings
from siteqa.constants import DEFAULT_CRAWL_MAX_PAGES, DEFAULT_TUTORIALS_REPO_URL
from siteqa.exceptions import AggregateFailureError, SiteQAError
from siteqa.link_crawler import IncorrectlyLinkedUrlsRule, LinkCrawlController
from siteqa.logging_config import setup_logging
from siteqa.scenarios import (
    SCENARIOS,
    run_all_technical_checks,
    run_check_scenario,
    run_eu_vat_pricing_scenario,
    run_incorrectly_linked_urls_crawl,
)


def _load_config(args) -> QAConfig:
    if getattr(args, "config", None):
        return QAConfig.from_file(args.config)
    return QAConfig.from_env()


def print_report(report, output: str = "text"):
    """Print a run report.

    Args:
        report: RunReport object
        output: "text" or "json"
    """
    if output == "json":
        print(json.dumps(report.to_dict(), indent=2))
        return

    status = "PASSED" if report.passed else "FAILED"
    print(f"\n{'=' * 60}")
    print(f"{report.name}: {status}")
    print(f"{'=' * 60}")
    print(f"  URLs served: {report.urls_served}")
    print(f"  URLs skipped: {report.urls_skipped}")
    print(f"  Load errors: {report.load_errors}")

    if report.metrics:
        print("\nChecks:")
        for key, m in report.metrics.items():
            print(
                f"  • {key}: {m.executions} run, {m.passed} passed, "
                f"{m.failed} failed, {m.errors} errors, {m.skipped} skipped"
            )

    if not report.passed:
        print()
        print(report.render())

    print(f"\n{'=' * 60}\n")


def checks_command(args):
    """List registered checks."""
    registry = default_registry()
    for check in registry:
        flags = []
        if not check.compare_age:
            flags.append("runs on new articles")
        if check.excluded_categories:
            flags.append(f"skips: {', '.join(check.excluded_categories)}")
        suffix = f"  [{'; '.join(flags)}]" if flags else ""
        print(f"{check.key:<32} {check.description}{suffix}")


def run_command(args):
    """Run article checks over the corpus."""
    config = _load_config(args)
    if args.corpus_file:
        config.corpus_file = args.corpus_file
    if args.rate is not None:
        config.rate_limit_per_second = args.rate

    options = dict(config=config, workers=args.workers, sequential=args.sequential)

    try:
        if not args.checks:
            report = run_all_technical_checks(**options)
        elif len(args.checks) == 1 and args.checks[0] in SCENARIOS:
            report = SCENARIOS[args.checks[0]](**options)
        else:
            report = run_check_scenario("selected checks", args.checks, **options)
    except AggregateFailureError as e:
        print_report(e.report, args.output)
        sys.exit(1)
    except KeyError as e:
        print(f"Error: unknown check {e}. Use 'siteqa checks' to list them.")
        sys.exit(2)
    except SiteQAError as e:
        print(f"Error: {e}")
        sys.exit(2)

    print_report(report, args.output)


def vat_pricing_command(args):
    """Check VAT prices on the course page through the EU proxy."""
    config = _load_config(args)

    try:
        report = run_eu_vat_pricing_scenario(config=config)
    except AggregateFailureError as e:
        print_report(e.report, args.output)
        sys.exit(1)
    except SiteQAError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print_report(report, args.output)


def crawl_links_command(args):
    """Crawl the tutorials repository for incorrectly linked URLs."""
    rule = IncorrectlyLinkedUrlsRule(repo_url=args.repo_url, branch=args.branch)
    controller = LinkCrawlController(max_pages=args.max_pages)

    try:
        result = run_incorrectly_linked_urls_crawl(
            parallelism=args.parallelism,
            rule=rule,
            controller=controller,
        )
    except AggregateFailureError as e:
        print_report(e.report, args.output)
        sys.exit(1)

    print(f"\n✅ {result.pages_crawled} pages crawled, no incorrectly linked URLs\n")


def main(argv=None):
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Site QA - Validate published articles with concurrent browser sessions"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL.upper(),
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to file in addition to console",
    )
    parser.add_argument(
        "--config",
        help="JSON configuration file (default: SITEQA_ environment variables)",
    )
    parser.add_argument(
        "--output",
        "-o",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    checks_parser = subparsers.add_parser("checks", help="List available checks.")
    checks_parser.set_defaults(func=checks_command)

    run_parser = subparsers.add_parser(
        "run", help="Run checks over every article in the corpus."
    )
    run_parser.add_argument(
        "checks", nargs="*", help="Check keys to run (default: all article checks)"
    )
    run_parser.add_argument(
        "--workers",
        "-w",
        type=int,
        help="Number of worker threads (default: CPU count)",
    )
    run_parser.add_argument(
        "--sequential",
        action="store_true",
        help="Traverse the corpus on one thread with rate-limited page loads",
    )
    run_parser.add_argument(
        "--rate",
        type=float,
        help="Page loads per second in sequential mode (default: 2)",
    )
    run_parser.add_argument(
        "--corpus-file",
        help="Text file of article paths, one per line",
    )
    run_parser.set_defaults(func=run_command)

    vat_parser = subparsers.add_parser(
        "vat-pricing", help="Check VAT prices on the course page from the EU."
    )
    vat_parser.set_defaults(func=vat_pricing_command)

    crawl_parser = subparsers.add_parser(
        "crawl-links", help="Find incorrectly linked URLs in the tutorials repository."
    )
    crawl_parser.add_argument(
        "--repo-url",
        default=DEFAULT_TUTORIALS_REPO_URL,
        help="Repository to crawl",
    )
    crawl_parser.add_argument(
        "--branch",
        default="master",
        help="Canonical branch (default: master)",
    )
    crawl_parser.add_argument(
        "--parallelism",
        type=int,
        help="Number of fetch threads (default: CPU count)",
    )
    crawl_parser.add_argument(
        "--max-pages",
        type=int,
        default=DEFAULT_CRAWL_MAX_PAGES,
        help="Maximum pages to crawl (default: 500)",
    )
    crawl_parser.set_defaults(func=crawl_links_command)

    args = parser.parse_args(argv)

    # Configure logging based on flags
    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
