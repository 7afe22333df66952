#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SearchFlux Unified CLI Entry Point

Usage:
    python cli.py search -c config.yaml -i products -q phone   # Run a search query
    python cli.py task -c config.yaml -i products -t 42 --wait # Check / wait for a task
    python cli.py hosts -c config.yaml                         # Show configured hosts
    python cli.py version                                      # Show version info
    python cli.py check                                        # Check library status
"""

import argparse
import asyncio
import importlib.util
import json
import sys

# Fix Windows console encoding
if sys.platform == 'win32':
    sys.stdout.reconfigure(encoding='utf-8', errors='replace')
    sys.stderr.reconfigure(encoding='utf-8', errors='replace')


REQUIRED_LIBRARIES = {
    "aiohttp": "aiohttp",
    "pyyaml": "yaml",
    "pydantic": "pydantic",
}


def _load_search_config(path):
    from searchflux.config import (
        build_search_config,
        init_logging,
        load_config,
        merge_config,
        DEFAULT_CONFIG,
    )

    config = merge_config(DEFAULT_CONFIG, load_config(path))
    init_logging(config.get("global", {}).get("log"))
    return build_search_config(config)


def cmd_search(args):
    """Run a search query"""
    from searchflux.clients import SearchClient

    search_config = _load_search_config(args.config)

    async def run():
        async with SearchClient(search_config) as client:
            index = client.init_index(args.index)
            return await index.search({"query": args.query, "hitsPerPage": args.hits})

    result = asyncio.run(run())
    print(f"[OK] {result.nb_hits} hits in {result.processing_time_ms}ms")
    for hit in result.hits:
        print(json.dumps(hit, ensure_ascii=False))
    return 0


def cmd_task(args):
    """Show or wait for a task status"""
    from searchflux.clients import SearchClient
    from searchflux.models import PollState

    search_config = _load_search_config(args.config)

    async def run():
        async with SearchClient(search_config) as client:
            index = client.init_index(args.index)
            if args.wait:
                return await index.wait_task(args.task_id)
            return await index.get_task(args.task_id)

    result = asyncio.run(run())
    if args.wait:
        print(f"Task {args.task_id}: {result}")
        return 0 if result == PollState.DONE else 1

    print(f"Task {args.task_id}: {result.status}")
    return 0


def cmd_hosts(args):
    """Show configured hosts"""
    search_config = _load_search_config(args.config)

    print(f"SearchFlux hosts for {search_config.application_id}\n")
    print("=" * 50)
    for priority, host in enumerate(search_config.hosts, start=1):
        accept = ",".join(sorted(c.value for c in host.accept))
        print(f"{priority}. {host.url} [{accept}]")
    print("=" * 50)
    return 0


def cmd_version(args):
    """Show version info"""
    from searchflux import __version__
    print(f"SearchFlux v{__version__}")
    return 0


def cmd_check(args):
    """Check library status"""
    print("SearchFlux Library Status\n")
    print("=" * 40)

    missing = []
    for name, module in REQUIRED_LIBRARIES.items():
        available = importlib.util.find_spec(module) is not None
        status = "[OK]" if available else "[--]"
        state = "installed" if available else "not installed"
        print(f"{status} {name}: {state}")
        if not available:
            missing.append(name)

    print("=" * 40)

    if missing:
        print(f"\nTip: Install required libraries:")
        print(f"   pip install {' '.join(missing)}")
        return 1

    print(f"\n[OK] All required libraries installed!")
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="searchflux",
        description="SearchFlux: Multi-region search API client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # search subcommand
    p_search = subparsers.add_parser("search", help="Run a search query")
    p_search.add_argument("-c", "--config", default="config.yaml", help="Config file path")
    p_search.add_argument("-i", "--index", required=True, help="Index name")
    p_search.add_argument("-q", "--query", default="", help="Query text")
    p_search.add_argument("--hits", type=int, default=20, help="Hits per page")
    p_search.set_defaults(func=cmd_search)

    # task subcommand
    p_task = subparsers.add_parser("task", help="Show or wait for a task status")
    p_task.add_argument("-c", "--config", default="config.yaml", help="Config file path")
    p_task.add_argument("-i", "--index", required=True, help="Index name")
    p_task.add_argument("-t", "--task-id", type=int, required=True, help="Task ID")
    p_task.add_argument("--wait", action="store_true", help="Wait until published")
    p_task.set_defaults(func=cmd_task)

    # hosts subcommand
    p_hosts = subparsers.add_parser("hosts", help="Show configured hosts")
    p_hosts.add_argument("-c", "--config", default="config.yaml", help="Config file path")
    p_hosts.set_defaults(func=cmd_hosts)

    # version subcommand
    p_version = subparsers.add_parser("version", help="Show version info")
    p_version.set_defaults(func=cmd_version)

    # check subcommand
    p_check = subparsers.add_parser("check", help="Check library status")
    p_check.set_defaults(func=cmd_check)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1
    except Exception as e:
        print(f"\n[ERROR] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
