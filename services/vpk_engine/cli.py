import argparse
import json
import logging
import sys
from typing import List, Optional

from services.vpk_engine.config import vpk_settings
from services.vpk_engine.engine import VPKEngine
from services.vpk_engine.logging_config import setup_logging
from services.vpk_engine.models import InvalidLengthError, InvalidValueError, TemplateLoadError
from services.vpk_engine.results_generator import generate_human_readable_report

logger = logging.getLogger(__name__)

EXIT_INPUT_ERROR = 2


def parse_answers(raw: str) -> List[int]:
    """Parses "1,2,3,..." (commas and/or whitespace) into a list of ints."""
    tokens = raw.replace(",", " ").split()
    try:
        return [int(token) for token in tokens]
    except ValueError as e:
        raise ValueError(f"Answers must be integers: {e}")


def load_answers_file(path: str) -> list:
    """Reads answers from a JSON file holding either a list or {"answers": [...]}."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ValueError(f"Answers file not found: {path}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in answers file {path}: {e}")

    if isinstance(data, dict):
        data = data.get("answers")
    if not isinstance(data, list):
        raise ValueError(f"Answers file {path} must contain a list or an object with an 'answers' list")
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vpk-score",
        description="Score a 36-question VPK assessment and render its report.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--answers", type=str, help="36 answers in {1,2,3}, comma or space separated.")
    source.add_argument("--answers-file", type=str, help="JSON file with a list of 36 answers.")
    parser.add_argument(
        "--templates",
        type=str,
        default=None,
        help=f"Path to the report template asset (default: {vpk_settings.templates_path}).",
    )
    parser.add_argument("--format", choices=("json", "text"), default="json", help="Output format.")
    parser.add_argument("--log-level", type=str, default=vpk_settings.log_level, help="Logging level.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        answers = load_answers_file(args.answers_file) if args.answers_file else parse_answers(args.answers)
        engine = VPKEngine(templates_path=args.templates)
        snapshot = engine.classify(answers)

        if args.format == "text":
            sys.stdout.write(generate_human_readable_report(snapshot))
            return 0

        merged = engine.merge(snapshot)
    except (InvalidLengthError, InvalidValueError, TemplateLoadError) as e:
        logger.error(f"VPK scoring failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except ValueError as e:
        # Malformed --answers / --answers-file input
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    output = {
        "snapshot": snapshot.model_dump(mode="json", by_alias=True),
        "report": merged.model_dump(mode="json", by_alias=True),
    }
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
