"""Command-line interface for the facerank scoring engine.

Usage:
    facerank score user-42 embedding.json
    facerank leaderboard --limit 10
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from facerank.core.engine import ScoringEngine
from facerank.domain.entities.subject import SubjectRecord
from facerank.utils import get_config, get_logger, log_execution_time, set_package_log_level
from facerank.utils.exceptions import AppException

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    Returns:
        Configured parser with one sub-command per engine operation
    """
    parser = argparse.ArgumentParser(
        prog="facerank",
        description="Population-relative percentile scoring for face embeddings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Score a subject from a JSON file holding {"embedding": [...], "quality": {...}}
  facerank score user-42 embedding.json

  # Show the top 10 with a custom config
  facerank --config config/custom.yaml leaderboard --limit 10

  # Back up and restore the whole population
  facerank export backup.json --include-history
  facerank import backup.json
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help='Path to configuration file (default: auto-detect)'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=None,
        help='Override log level'
    )

    commands = parser.add_subparsers(dest='command', required=True)

    score = commands.add_parser('score', help='Score a subject from an embedding JSON file')
    score.add_argument('subject_id', help='Stable subject identifier')
    score.add_argument('embedding_file', type=Path, help='JSON file with "embedding" and "quality"')

    show = commands.add_parser('show', help='Show the current result of a subject')
    show.add_argument('subject_id')

    leaderboard = commands.add_parser('leaderboard', help='Print the leaderboard')
    leaderboard.add_argument('--limit', type=int, default=50, help='Number of rows (1-100, default: 50)')

    commands.add_parser('stats', help='Print population statistics')

    similar = commands.add_parser('similar', help='List the most similar subjects')
    similar.add_argument('subject_id')
    similar.add_argument('--limit', type=int, default=10, help='Number of neighbours (default: 10)')

    export = commands.add_parser('export', help='Write all records to a JSON file')
    export.add_argument('output', type=Path)
    export.add_argument('--include-history', action='store_true', help='Also export superseded records')

    load = commands.add_parser('import', help='Replace the population with records from a JSON file')
    load.add_argument('input', type=Path)

    return parser


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _read_embedding_file(path: Path) -> dict:
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict) or 'embedding' not in data or 'quality' not in data:
        raise ValueError(f"{path} must hold an object with 'embedding' and 'quality'")
    return data


def run_command(engine: ScoringEngine, args: argparse.Namespace) -> None:
    """Execute one parsed sub-command against ``engine``."""
    if args.command == 'score':
        data = _read_embedding_file(args.embedding_file)
        result = engine.score(args.subject_id, data['embedding'], data['quality'])
        _print_json(result.model_dump(mode='json'))

    elif args.command == 'show':
        _print_json(engine.get_score(args.subject_id).model_dump(mode='json'))

    elif args.command == 'leaderboard':
        rows = engine.leaderboard(args.limit)
        print("=" * 60)
        print(f"{'RANK':>4}  {'SCORE':>6}  {'SUBJECT':<24} TAGS")
        print("=" * 60)
        for row in rows:
            print(f"{row.rank:>4}  {row.display_score:>6.1f}  {row.subject_id:<24} {', '.join(row.tags)}")

    elif args.command == 'stats':
        _print_json(engine.stats().model_dump(mode='json'))

    elif args.command == 'similar':
        neighbours = engine.similar(args.subject_id, limit=args.limit)
        _print_json([n.model_dump(mode='json') for n in neighbours])

    elif args.command == 'export':
        records = engine.store.export_all(include_history=args.include_history)
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump([r.model_dump(mode='json') for r in records], f)
        print(f"Exported {len(records)} records to {args.output}")

    elif args.command == 'import':
        with open(args.input, 'r', encoding='utf-8') as f:
            records = [SubjectRecord.model_validate(item) for item in json.load(f)]
        with log_execution_time(logger, f"import of {len(records)} records"):
            total = engine.store.import_all(records)
        print(f"Imported {total} subjects from {args.input}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Arguments without the program name (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = build_parser().parse_args(argv)

    try:
        config = get_config(args.config, reload=True)
        set_package_log_level(args.log_level or config.log_level)

        engine = ScoringEngine(config)
        run_command(engine, args)
        return 0

    except AppException as e:
        logger.error(f"{args.command} failed: {e}")
        _print_json({"error": e.to_dict()})
        return 1

    except (OSError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        print(f"\n✗ {args.command} failed: {e}")
        return 1


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == '__main__':
    run()
