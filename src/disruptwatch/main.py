"""CLI entrypoint for running a single workflow."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from dotenv import load_dotenv

from .config import Settings
from .log import configure_logging
from .orchestrator import WorkflowOrchestrator
from .runtime import Runtime


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Supply chain disruption workflows")
    parser.add_argument(
        "workflow",
        nargs="?",
        help="Workflow name, e.g. full_risk_assessment",
    )
    parser.add_argument(
        "--input",
        default="{}",
        help="Workflow input as a JSON object, or @path to a JSON file",
    )
    parser.add_argument("--list", action="store_true", help="List available workflows and exit")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Use the in-memory store instead of PostgreSQL",
    )
    return parser


def load_input(raw: str) -> dict:
    if raw.startswith("@"):
        raw = Path(raw[1:]).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Workflow input must be a JSON object")
    return data


async def run(settings: Settings, workflow: str, input_data: dict, dry_run: bool) -> int:
    async with Runtime(settings, dry_run=dry_run) as runtime:
        response = await runtime.orchestrator.process({"workflow": workflow, "input_data": input_data})
        print(response.model_dump_json(indent=2))
        return 0 if response.confidence > runtime.orchestrator.failure_confidence else 1


def main() -> None:
    args = build_parser().parse_args()
    if args.list:
        print("\n".join(WorkflowOrchestrator({}).get_available_workflows()))
        return
    if not args.workflow:
        raise SystemExit("A workflow name is required (see --list).")

    load_dotenv(Path(__file__).resolve().parents[2] / ".env")
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_format)
    if not args.dry_run and not settings.database_url:
        raise SystemExit("Missing DATABASE_URL in environment. Use --dry-run for the in-memory store.")

    try:
        input_data = load_input(args.input)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"[ERROR] {exc}")

    raise SystemExit(asyncio.run(run(settings, args.workflow, input_data, dry_run=args.dry_run)))


if __name__ == "__main__":
    main()
