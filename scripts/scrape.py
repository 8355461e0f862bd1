#!/usr/bin/env python3
"""
Scrape DeBank total-asset values for wallet addresses through Tor.

Each address is fetched in a fresh headless browser behind the Tor SOCKS
proxy. The exit IP is rotated before every address and before every retry.
Results are saved as one JSON document (see scripts/export_csv.py for CSV).

Usage:
    python scripts/scrape.py 0xabc... 0xdef...
    python scripts/scrape.py --file addresses.txt
    python scripts/scrape.py --file addresses.txt --config run.yaml --output out.json
    python scripts/scrape.py --file addresses.txt --max-attempts 5 --no-headless
"""

import argparse
import sys
from pathlib import Path

# Add parent dir to path for project packages
sys.path.insert(0, str(Path(__file__).parent.parent))

from fetch.fetcher import PageFetcher
from network.tor import TorIdentityProvider
from orchestrate.config import (
    EXEC_LOG_FILE,
    OUTPUT_FILE,
    build_settings,
    load_run_config,
    load_targets,
    normalize_targets,
)
from orchestrate.orchestrator import ScrapeOrchestrator
from orchestrate.presenter import append_execution_log, print_summary, write_artifact
from orchestrate.runner import BatchRunner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scrape wallet portfolio values through Tor with IP rotation",
    )
    parser.add_argument('addresses', nargs='*', help='Wallet addresses to scrape')
    parser.add_argument('--file', '-f', help='Addresses file (text, JSON or YAML)')
    parser.add_argument('--config', help='Run config (JSON or YAML)')
    parser.add_argument('--output', '-o', default=str(OUTPUT_FILE), help='JSON output path')
    parser.add_argument('--max-attempts', type=int, help='Attempts per address (default 3)')
    parser.add_argument('--no-headless', action='store_true', help='Show the browser window')
    parser.add_argument('--profile-url', help='Profile URL template containing {target}')
    parser.add_argument('--tor-host', help='Tor host (default 127.0.0.1)')
    parser.add_argument('--socks-port', type=int, help='Tor SOCKS port (default 9050)')
    parser.add_argument('--control-port', type=int, help='Tor control port (default 9051)')
    parser.add_argument('--control-password', help='Tor control port password')
    parser.add_argument('--debug-dir', help='Directory for failure screenshots/HTML')
    parser.add_argument('--no-debug', action='store_true', help='Skip failure screenshots/HTML')
    parser.add_argument('--no-log', action='store_true', help='Skip the execution log')
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict:
    """Translate CLI flags into settings overrides (only flags actually given)."""
    overrides: dict = {"run": {}, "scrape": {}, "fetch": {}, "tor": {}}

    if args.max_attempts is not None:
        overrides["run"]["max_attempts"] = args.max_attempts
    if args.no_headless:
        overrides["fetch"]["headless"] = False
    if args.profile_url:
        overrides["fetch"]["profile_url_template"] = args.profile_url
    if args.tor_host:
        overrides["tor"]["host"] = args.tor_host
    if args.socks_port is not None:
        overrides["tor"]["socks_port"] = args.socks_port
    if args.control_port is not None:
        overrides["tor"]["control_port"] = args.control_port
    if args.control_password is not None:
        overrides["tor"]["control_password"] = args.control_password
    if args.debug_dir:
        overrides["scrape"]["debug_dir"] = args.debug_dir
    if args.no_debug:
        overrides["scrape"]["capture_debug"] = False

    return {k: v for k, v in overrides.items() if v}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    raw_targets = list(args.addresses)
    try:
        if args.file:
            raw_targets.extend(load_targets(args.file))
        cfg = load_run_config(args.config) if args.config else {}
        settings = build_settings(cfg, overrides_from_args(args))
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    targets = normalize_targets(raw_targets)
    if not targets:
        print("Error: no addresses given (pass addresses or --file)", file=sys.stderr)
        return 1

    identity = TorIdentityProvider(settings.tor)
    fetcher = PageFetcher(settings.fetch)
    orchestrator = ScrapeOrchestrator(fetcher, settings.scrape)
    runner = BatchRunner(orchestrator, identity, settings.run)

    result = runner.run(targets)
    print_summary(result)

    output_path = write_artifact(result, Path(args.output))
    print(f"\nResults saved to {output_path}")

    if not args.no_log:
        append_execution_log(
            result,
            EXEC_LOG_FILE,
            command=" ".join(sys.argv),
            config={
                "targets": len(targets),
                "max_attempts": settings.run.max_attempts,
                "headless": settings.fetch.headless,
                "tor": f"{settings.tor.host}:{settings.tor.socks_port}",
                "run_config": args.config,
            },
            output_path=output_path,
        )

    return 1 if result.fatal_error else 0


if __name__ == "__main__":
    sys.exit(main())
