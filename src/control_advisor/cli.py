from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

import structlog
from dotenv import load_dotenv
from pydantic import ValidationError

from control_advisor.batch import BatchRunner
from control_advisor.config.loader import ConfigLoader
from control_advisor.config.settings import SuggestionSettings
from control_advisor.generation.orchestrator import ProviderOrchestrator
from control_advisor.generation.providers import check_availability
from control_advisor.generation.telemetry import JsonlTelemetrySink
from control_advisor.models.controls import Control, ExistingControl
from control_advisor.strategies.selector import SuggestionSelector
from control_advisor.utils.error_handler import APIError, ProviderError, exit_with_error
from control_advisor.utils.llm_client import cloud_converse_available

logger = structlog.get_logger(__name__)

COMMANDS = ("suggest", "suggest-batch", "check-provider")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        dest="config_path",
        default=os.getenv("CONTROL_ADVISOR_CONFIG", ""),
        help="Path to the YAML configuration file (default: packaged suggestion_config.yaml)",
    )
    parser.add_argument(
        "--dotenv",
        dest="dotenv_path",
        default=".env",
        help="Path to .env file to load (default: .env in the working directory)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=os.getenv("CONTROL_ADVISOR_LOG_LEVEL", "INFO"),
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )


def build_suggest_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="control-advisor suggest",
        description="Suggest implementation metadata for one control",
    )
    parser.add_argument(
        "--control",
        dest="control_path",
        required=True,
        help="JSON file holding one control",
    )
    parser.add_argument(
        "--existing",
        dest="existing_path",
        default="",
        help="Optional JSON file holding a list of documented controls to learn from",
    )
    parser.add_argument(
        "--output",
        dest="output_path",
        default="",
        help="Optional output JSON file path. If not set, prints to stdout.",
    )
    _add_common_arguments(parser)
    return parser


def build_batch_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="control-advisor suggest-batch",
        description="Suggest implementation metadata for a list of controls",
    )
    parser.add_argument(
        "--controls",
        dest="controls_path",
        required=True,
        help="JSON file holding a list of controls",
    )
    parser.add_argument(
        "--existing",
        dest="existing_path",
        default="",
        help="Optional JSON file holding a list of documented controls to learn from",
    )
    parser.add_argument(
        "--output",
        dest="output_path",
        default="",
        help="Optional output JSON file path. If not set, prints to stdout.",
    )
    _add_common_arguments(parser)
    return parser


def build_check_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="control-advisor check-provider",
        description="Check whether the configured text generation provider is usable",
    )
    _add_common_arguments(parser)
    return parser


def configure_logging(log_level: str) -> None:
    """Send stdlib and structlog output to stderr; stdout carries results."""
    logging.basicConfig(
        level=getattr(logging, str(log_level).upper(), logging.INFO),
        stream=sys.stderr,
        format="%(message)s",
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    # Reduce noisy transport logs; keep app milestone logs readable.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)


def _read_json(path: str) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _load_existing(path: str) -> list[ExistingControl]:
    if not path:
        return []
    return [ExistingControl.model_validate(item) for item in _read_json(path)]


def _write_output(payload: Any, output_path: str) -> None:
    text = json.dumps(payload, indent=2)
    if not output_path:
        print(text)
        return
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(text, encoding="utf-8")
    logger.info("output_written", path=str(output_file))


def build_selector(settings: SuggestionSettings) -> SuggestionSelector:
    orchestrator = ProviderOrchestrator(
        cloud_converse_available=cloud_converse_available(),
        telemetry=JsonlTelemetrySink.from_config(settings.telemetry),
    )
    return SuggestionSelector(orchestrator)


def _invalid_input(error: Exception) -> APIError:
    return APIError("INVALID_INPUT", "Input file could not be read as controls", str(error)[:200])


def run_suggest(control_path: str, existing_path: str, output_path: str, config_path: str) -> int:
    settings = ConfigLoader(Path(config_path) if config_path else None).load()
    try:
        control = Control.model_validate(_read_json(control_path))
        existing = _load_existing(existing_path)
    except (OSError, ValueError, ValidationError) as e:
        return exit_with_error(_invalid_input(e), context="suggest")

    try:
        suggestion = build_selector(settings).suggest(control, existing, settings)
    except ProviderError as e:
        return exit_with_error(e, context=f"suggest {control.id}")

    _write_output(suggestion.to_dict(), output_path)
    return 0


def run_suggest_batch(controls_path: str, existing_path: str, output_path: str, config_path: str) -> int:
    settings = ConfigLoader(Path(config_path) if config_path else None).load()
    try:
        controls = [Control.model_validate(item) for item in _read_json(controls_path)]
        existing = _load_existing(existing_path)
    except (OSError, ValueError, ValidationError) as e:
        return exit_with_error(_invalid_input(e), context="suggest-batch")

    results = BatchRunner(build_selector(settings)).run(controls, existing, settings)
    _write_output({control_id: s.to_dict() for control_id, s in results.items()}, output_path)
    return 0


def run_check_provider(config_path: str) -> int:
    settings = ConfigLoader(Path(config_path) if config_path else None).load()
    status = check_availability(settings.provider, cloud_converse_available())
    _write_output(status, "")
    return 0 if status["available"] else 1


def main(argv: Optional[list[str]] = None) -> int:
    argv_list = list(argv) if argv is not None else sys.argv[1:]

    if not argv_list or argv_list[0] not in COMMANDS:
        print(f"usage: control-advisor {{{','.join(COMMANDS)}}} [options]", file=sys.stderr)
        return 2

    command, rest = argv_list[0], argv_list[1:]
    if command == "suggest":
        args = build_suggest_parser().parse_args(rest)
    elif command == "suggest-batch":
        args = build_batch_parser().parse_args(rest)
    else:
        args = build_check_parser().parse_args(rest)

    configure_logging(args.log_level)
    load_dotenv(args.dotenv_path)

    if command == "suggest":
        return run_suggest(
            control_path=args.control_path,
            existing_path=args.existing_path,
            output_path=args.output_path,
            config_path=args.config_path,
        )
    if command == "suggest-batch":
        return run_suggest_batch(
            controls_path=args.controls_path,
            existing_path=args.existing_path,
            output_path=args.output_path,
            config_path=args.config_path,
        )
    return run_check_provider(config_path=args.config_path)


if __name__ == "__main__":
    raise SystemExit(main())
