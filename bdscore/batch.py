"""Concurrent evaluation of many companies."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from bdscore.comparables.matcher import ComparablesMatcher
from bdscore.config import settings
from bdscore.errors import InputError
from bdscore.models.company import CompanyData
from bdscore.models.scoring import EvaluationError, MarketContext, ScoringConfig, ScoringResult
from bdscore.models.valuation import ValuationResult
from bdscore.score.engine import ScoringEngine, default_config
from bdscore.valuation.engine import ValuationEngine

logger = logging.getLogger(__name__)


class SlotStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class BatchItem:
    """Outcome for one company. Slots are returned in input order."""

    company_name: str
    status: SlotStatus = SlotStatus.PENDING
    scoring: Optional[ScoringResult] = None
    valuation: Optional[ValuationResult] = None
    error: Optional[str] = None


@dataclass
class _BatchRun:
    """Task registry for one call to run. Overlapping runs never share one."""

    names: list[str]
    cancelled: set[str]
    tasks: list[asyncio.Task] = field(default_factory=list)

    def cancel(self, company_name: str) -> bool:
        self.cancelled.add(company_name)
        found = False
        for name, task in zip(self.names, self.tasks):
            if name == company_name and not task.done():
                task.cancel()
                found = True
        return found


class BatchEvaluator:
    """Score, match and value companies concurrently, one worker thread per company."""

    def __init__(
        self,
        scoring_engine: Optional[ScoringEngine] = None,
        matcher: Optional[ComparablesMatcher] = None,
        valuation_engine: Optional[ValuationEngine] = None,
        concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.scoring_engine = scoring_engine or ScoringEngine()
        self.matcher = matcher or ComparablesMatcher()
        self.valuation_engine = valuation_engine or ValuationEngine(matcher=self.matcher)
        self.concurrency = concurrency or settings.batch_concurrency
        self.timeout = timeout or settings.batch_timeout_seconds
        self._runs: list[_BatchRun] = []
        self._pending_cancels: set[str] = set()

    async def run(
        self,
        companies: list[CompanyData],
        config: Optional[ScoringConfig] = None,
        context: Optional[MarketContext] = None,
    ) -> list[BatchItem]:
        config = config or default_config()
        context = context or MarketContext()
        semaphore = asyncio.Semaphore(self.concurrency)
        items = [BatchItem(company_name=c.name) for c in companies]

        batch = _BatchRun(names=[c.name for c in companies], cancelled=self._pending_cancels)
        self._pending_cancels = set()

        logger.info(f"Batch evaluation of {len(companies)} companies (concurrency {self.concurrency})")
        for company in companies:
            batch.tasks.append(asyncio.create_task(
                self._evaluate(semaphore, company, config, context, batch.cancelled),
            ))

        self._runs.append(batch)
        try:
            outcomes = await asyncio.gather(*batch.tasks, return_exceptions=True)
        finally:
            self._runs.remove(batch)

        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                item.status = SlotStatus.CANCELLED
                item.error = "Cancelled"
            elif isinstance(outcome, asyncio.TimeoutError):
                item.status = SlotStatus.FAILED
                item.error = f"Timed out after {self.timeout:.0f}s"
            elif isinstance(outcome, Exception):
                item.status = SlotStatus.FAILED
                item.error = str(outcome)
            else:
                item.scoring, item.valuation = outcome
                item.status = SlotStatus.COMPLETED

        completed = sum(1 for i in items if i.status == SlotStatus.COMPLETED)
        logger.info(f"Batch finished: {completed}/{len(items)} completed")
        return items

    def cancel(self, company_name: str) -> bool:
        """Cancel every unfinished slot for this company across active runs.

        Other slots keep running. A name that matches no active run is held
        and cancelled in the next run instead.
        """
        found = False
        for batch in self._runs:
            found = batch.cancel(company_name) or found
        if found:
            logger.info(f"Cancelled batch evaluation of {company_name}")
        else:
            self._pending_cancels.add(company_name)
        return found

    async def _evaluate(
        self,
        semaphore: asyncio.Semaphore,
        company: CompanyData,
        config: ScoringConfig,
        context: MarketContext,
        cancelled: set[str],
    ) -> tuple[ScoringResult, ValuationResult]:
        async with semaphore:
            if company.name in cancelled:
                raise asyncio.CancelledError()
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(self.evaluate_one, company, config, context),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(f"Evaluation of {company.name} timed out")
                raise
            except Exception as e:
                logger.warning(f"Evaluation of {company.name} failed: {e}")
                raise

    def evaluate_one(
        self,
        company: CompanyData,
        config: ScoringConfig,
        context: MarketContext,
    ) -> tuple[ScoringResult, ValuationResult]:
        """Synchronous pipeline for a single company: comparables, scoring, valuation."""
        search = self.matcher.find_comparables_for_company(company, as_of=context.as_of)
        result = self.scoring_engine.evaluate_company(company, config, context, comparables=search)
        if isinstance(result, EvaluationError):
            raise InputError(result.message, errors=result.errors)
        valuation = self.valuation_engine.calculate_valuation(
            company,
            search.matches,
            scoring=result,
            parameters=config.parameters,
            as_of=context.as_of,
        )
        return result, valuation
