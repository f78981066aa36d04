"""CLI entry point for the BD Scoring & Valuation Engine."""

import argparse
import asyncio
import csv
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from bdscore.batch import BatchEvaluator, BatchItem, SlotStatus
from bdscore.comparables import ComparablesMatcher, ComparablesRepository
from bdscore.config import settings
from bdscore.config_store import ConfigStore
from bdscore.errors import BDScoreError, InputError
from bdscore.history import HistoricalScoreSink
from bdscore.models import CompanyData, EvaluationError, MarketContext, ScoringResult, ValuationResult
from bdscore.score import ScoringEngine
from bdscore.valuation import ValuationEngine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def load_company(path: Path) -> CompanyData:
    """Load company data from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return CompanyData(**data)


def load_repository(path: Optional[Path]) -> ComparablesRepository:
    path = path or settings.comparables_path
    if path:
        repository = ComparablesRepository.from_json(path)
        logger.info(f"Loaded {len(repository)} comparables from {path}")
        return repository
    logger.info("Using built-in sample comparables")
    return ComparablesRepository.sample()


def run_evaluation(
    company: CompanyData,
    config_name: str,
    comparables_path: Optional[Path] = None,
    as_of: Optional[date] = None,
    persist: bool = False,
) -> tuple[ScoringResult, ValuationResult]:
    """Run the complete scoring and valuation pipeline for one company."""
    store = ConfigStore()
    store.load()
    config = store.get(config_name)
    context = MarketContext(as_of=as_of) if as_of else MarketContext()

    matcher = ComparablesMatcher(load_repository(comparables_path))

    logger.info("Phase 1: Searching comparables...")
    search = matcher.find_comparables_for_company(company, as_of=context.as_of)
    logger.info(f"Found {search.total_found} comparable transactions")

    logger.info("Phase 2: Scoring pillars...")
    result = ScoringEngine().evaluate_company(company, config, context, comparables=search)
    if isinstance(result, EvaluationError):
        raise InputError(f"Evaluation rejected: {result.message}", errors=result.errors)

    logger.info("Phase 3: Valuing...")
    valuation = ValuationEngine(matcher=matcher).calculate_valuation(
        company,
        search.matches,
        scoring=result,
        parameters=config.parameters,
        as_of=context.as_of,
    )

    if persist:
        sink = HistoricalScoreSink()
        sink.record_score(result, config)
        sink.record_valuation(valuation)
        logger.info(f"Results recorded to {settings.database_url}")

    return result, valuation


def export_to_csv(result: ScoringResult, output_path: Path):
    """Export one row per pillar to a CSV file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow([
            "Company",
            "Pillar",
            "Raw Score",
            "Weighted Contribution",
            "Confidence",
            "Warnings",
        ])
        for pillar, score in result.pillar_scores.as_dict().items():
            writer.writerow([
                result.company_name,
                pillar.label,
                f"{score.raw_score:.2f}",
                f"{result.weighted_scores.contributions[pillar]:.3f}",
                f"{score.confidence:.2f}",
                "; ".join(score.warnings),
            ])


def export_batch_to_csv(items: list[BatchItem], output_path: Path):
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["Company", "Status", "Score", "Recommendation", "Risk", "Base Valuation ($M)", "Error"])
        for item in items:
            scoring = item.scoring
            base = item.valuation.base_valuation if item.valuation else None
            writer.writerow([
                item.company_name,
                item.status.value,
                f"{scoring.overall_score:.2f}" if scoring else "",
                scoring.recommendation.value if scoring else "",
                scoring.risk_level.value if scoring else "",
                f"{base:.1f}" if base is not None else "",
                item.error or "",
            ])


def print_summary(result: ScoringResult, valuation: ValuationResult):
    """Print an evaluation summary to console."""
    print("\n" + "=" * 60)
    print(f"BD EVALUATION - {result.company_name.upper()}")
    print("=" * 60)

    print(f"\nOverall score: {result.overall_score:.2f} / 5")
    print(f"Recommendation: {result.recommendation.value}")
    print(f"Risk level: {result.risk_level.value}")
    print(f"Confidence: {result.confidence.overall:.2f}")
    print(f"Configuration: {result.config_name}")

    print("\n" + "-" * 60)
    print("PILLARS")
    print("-" * 60)
    for pillar, score in result.pillar_scores.as_dict().items():
        contribution = result.weighted_scores.contributions[pillar]
        print(f"   {pillar.label:<22} {score.raw_score:.2f}  (+{contribution:.2f})  conf {score.confidence:.2f}")

    print("\n" + "-" * 60)
    print("VALUATION")
    print("-" * 60)
    if valuation.range is None:
        print("   Insufficient comparables - no valuation produced")
    else:
        print(f"   Base: ${valuation.base_valuation:,.0f}M")
        print(f"   Range: ${valuation.range.low:,.0f}M - ${valuation.range.high:,.0f}M")
        for scenario in valuation.scenarios:
            print(f"   {scenario.name.value:<5} ${scenario.valuation:,.0f}M  (p={scenario.probability:.2f})")
        print(f"   Comparables used: {', '.join(m.comparable.company_name for m in valuation.comparables_used)}")
        for row in sorted(valuation.sensitivity, key=lambda r: r.swing, reverse=True):
            print(f"   +/-20% {row.assumption:<20} {row.low_delta:+,.0f}M / {row.high_delta:+,.0f}M")
    for risk in sorted(valuation.risks, key=lambda r: r.expected_loss, reverse=True):
        print(f"   {risk.name:<18} p={risk.probability:.2f}  expected loss {risk.expected_loss:.0%}")
    for warning in valuation.warnings:
        print(f"   ! {warning}")

    if result.recommendations:
        print("\n" + "-" * 60)
        print("NOTES")
        print("-" * 60)
        for note in result.recommendations:
            print(f"   - {note}")

    print("\n" + "=" * 60)


def print_batch_summary(items: list[BatchItem]):
    print("\n" + "=" * 60)
    print("BD EVALUATION - BATCH SUMMARY")
    print("=" * 60)
    completed = [i for i in items if i.status == SlotStatus.COMPLETED]
    print(f"\nCompanies: {len(items)} | Completed: {len(completed)}")
    for item in items:
        if item.scoring:
            print(f"   {item.company_name:<30} {item.scoring.overall_score:.2f}  {item.scoring.recommendation.value}")
        else:
            print(f"   {item.company_name:<30} {item.status.value}: {item.error}")
    print("\n" + "=" * 60)


def cmd_evaluate(args) -> int:
    if not args.company.exists():
        logger.error(f"Company file not found: {args.company}")
        return 1
    try:
        company = load_company(args.company)
        logger.info(f"Loaded company data from {args.company}")
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Failed to load company data: {e}")
        return 1

    result, valuation = run_evaluation(
        company,
        args.config,
        comparables_path=args.comparables,
        as_of=args.as_of,
        persist=args.persist,
    )
    print_summary(result, valuation)

    if args.output:
        export_to_csv(result, args.output)
        logger.info(f"Pillar scores exported to {args.output}")
    return 0


def cmd_configs(args) -> int:
    store = ConfigStore()
    store.load()
    for name in store.list_names():
        config = store.get(name)
        weights = ", ".join(f"{p.value}={w:.2f}" for p, w in config.weights.as_dict().items())
        print(f"{name}: {weights}")
    return 0


def cmd_batch(args) -> int:
    if not args.directory.is_dir():
        logger.error(f"Not a directory: {args.directory}")
        return 1

    companies = []
    for path in sorted(args.directory.glob("*.json")):
        try:
            companies.append(load_company(path))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Skipping {path.name}: {e}")
    if not companies:
        logger.error(f"No company files found in {args.directory}")
        return 1

    store = ConfigStore()
    store.load()
    config = store.get(args.config)
    evaluator = BatchEvaluator(matcher=ComparablesMatcher(load_repository(args.comparables)))
    items = asyncio.run(evaluator.run(companies, config))
    print_batch_summary(items)

    if args.output:
        export_batch_to_csv(items, args.output)
        logger.info(f"Batch results exported to {args.output}")
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="BD Scoring & Valuation Engine - score and value biotech companies"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    evaluate = subparsers.add_parser("evaluate", help="Score and value one company")
    evaluate.add_argument("company", type=Path, help="Path to company JSON file")
    evaluate.add_argument("--as-of", type=date.fromisoformat, default=None, help="Evaluation date (YYYY-MM-DD)")
    evaluate.add_argument("--persist", action="store_true", help="Record results in the history database")
    evaluate.set_defaults(handler=cmd_evaluate)

    batch = subparsers.add_parser("batch", help="Score and value every company JSON in a directory")
    batch.add_argument("directory", type=Path, help="Directory of company JSON files")
    batch.set_defaults(handler=cmd_batch)

    for sub in (evaluate, batch):
        sub.add_argument(
            "--config", "-c",
            default="Default",
            help="Scoring configuration name (default: Default)",
        )
        sub.add_argument(
            "--comparables",
            type=Path,
            default=None,
            help="Path to comparables JSON pool (default: built-in sample)",
        )
        sub.add_argument(
            "--output", "-o",
            type=Path,
            default=None,
            help="Optional CSV output path",
        )

    configs = subparsers.add_parser("configs", help="List scoring configurations")
    configs.set_defaults(handler=cmd_configs)

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        sys.exit(args.handler(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    except BDScoreError as e:
        logger.error(f"{e.code}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
