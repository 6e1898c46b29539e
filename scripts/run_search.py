"""
CLI Entry Point: Run a Lead Search

Usage:
    python scripts/run_search.py --query "dental clinics in Valencia" --max-results 10
    python scripts/run_search.py --query "SaaS founders" --source linkedin --mode deep
    python scripts/run_search.py --query "yoga studios" --exclude-file seen.txt --output leads.json

Ctrl+C stops the search; leads accepted so far are still written.
"""

import argparse
import json
import sys
import threading
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from leadgen.common.config import Config, PipelinePolicy
from leadgen.common.dedupe import ExclusionSet
from leadgen.common.errors import SetupError
from leadgen.common.logger import set_global_debug_mode, setup_logging
from leadgen.common.types import PlatformSource, RunStatus, SearchConfig, SearchMode
from leadgen.orchestrator import SearchOrchestrator


def load_exclusions(path: str) -> ExclusionSet:
    """One company name, website or profile URL per line. Blank lines and # comments ignored."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Exclusion file not found: {path}")

    with open(file_path, "r", encoding="utf-8") as f:
        values = [line.strip() for line in f if line.strip() and not line.startswith("#")]
    return ExclusionSet.from_values(values)


def main():
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Find qualified leads for a free-text target profile"
    )
    parser.add_argument("--query", required=True, help="Target profile, e.g. \"dental clinics in Valencia\"")
    parser.add_argument(
        "--source",
        default=PlatformSource.GMAPS.value,
        choices=[p.value for p in PlatformSource],
        help="Discovery platform",
    )
    parser.add_argument(
        "--mode",
        default=SearchMode.FAST.value,
        choices=[m.value for m in SearchMode],
        help="fast, or deep (adds the decision-maker finder)",
    )
    parser.add_argument("--max-results", type=int, default=10, help="Number of leads wanted")
    parser.add_argument("--exclude-file", help="File of names/URLs seen in previous searches")
    parser.add_argument("--output", help="Write leads as JSON to this file (default: stdout)")
    parser.add_argument("--log-level", default="WARNING", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--debug", action="store_true", help="Enable verbose debug logging")

    args = parser.parse_args()

    setup_logging(args.log_level)
    if args.debug:
        set_global_debug_mode(True)

    try:
        policy = PipelinePolicy.from_env()
        exclusions = load_exclusions(args.exclude_file) if args.exclude_file else ExclusionSet()
    except (SetupError, FileNotFoundError) as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(2)

    print(Config.summary(), file=sys.stderr)

    config = SearchConfig(
        query=args.query,
        source=PlatformSource(args.source),
        mode=SearchMode(args.mode),
        max_results=args.max_results,
    )
    orchestrator = SearchOrchestrator(policy=policy)
    result = {}

    def on_progress(line: str) -> None:
        print(line, file=sys.stderr, flush=True)

    def on_complete(leads) -> None:
        result["leads"] = leads

    worker = threading.Thread(
        target=lambda: result.update(
            session=orchestrator.start_search(config, on_progress, on_complete, exclusions)
        ),
        daemon=True,
    )
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.5)
    except KeyboardInterrupt:
        print("\n⏹️  Stopping search, keeping leads found so far...", file=sys.stderr)
        orchestrator.stop()
        worker.join()

    leads = result.get("leads", [])
    payload = json.dumps([lead.to_dict() for lead in leads], indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(payload)
        print(f"✓ Wrote {len(leads)} leads to {args.output}", file=sys.stderr)
    else:
        print(payload)

    session = result.get("session")
    if session is None or session.status == RunStatus.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    main()
