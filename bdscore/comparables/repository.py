"""Access to the comparable transaction pool."""

import json
import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import sessionmaker

from bdscore.errors import PersistenceError
from bdscore.models.comparables import (
    Comparable,
    ComparableFinancials,
    ComparableProgram,
    DealStructure,
    TransactionType,
)
from bdscore.models.company import CompetitivePosition, DevelopmentStage
from bdscore.models.database import DBComparable

logger = logging.getLogger(__name__)


class ComparablesRepository:
    """Holds an immutable snapshot of the pool; refresh swaps the snapshot."""

    def __init__(self, comparables: Optional[Iterable[Comparable]] = None):
        self._snapshot: tuple[Comparable, ...] = tuple(comparables or ())
        self._lock = threading.Lock()
        self._listeners: list[Callable[[], None]] = []

    def snapshot(self) -> tuple[Comparable, ...]:
        """The current pool. In-flight searches keep the tuple they were given."""
        return self._snapshot

    def refresh(self, comparables: Iterable[Comparable]):
        new_snapshot = tuple(comparables)
        with self._lock:
            self._snapshot = new_snapshot
        logger.info(f"Comparables pool refreshed with {len(new_snapshot)} record(s)")
        for listener in list(self._listeners):
            listener()

    def on_refresh(self, listener: Callable[[], None]):
        self._listeners.append(listener)

    def get(self, comparable_id: str) -> Optional[Comparable]:
        return next((c for c in self._snapshot if c.id == comparable_id), None)

    def __len__(self) -> int:
        return len(self._snapshot)

    @classmethod
    def from_json(cls, path: Path) -> "ComparablesRepository":
        """Load a pool from a JSON array of comparable records."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to load comparables from {path}: {e}") from e
        return cls(Comparable(**item) for item in data)

    @classmethod
    def from_database(cls, session_factory: sessionmaker) -> "ComparablesRepository":
        session = session_factory()
        try:
            rows = session.query(DBComparable).all()
            return cls(Comparable.model_validate_json(row.payload) for row in rows)
        finally:
            session.close()

    def save_to_database(self, session_factory: sessionmaker):
        session = session_factory()
        try:
            for comparable in self._snapshot:
                session.merge(DBComparable(
                    id=comparable.id,
                    company_name=comparable.company_name,
                    transaction_type=comparable.transaction_type.value,
                    transaction_date=comparable.date,
                    valuation=comparable.valuation,
                    stage=comparable.stage.value,
                    confidence=comparable.confidence,
                    payload=comparable.model_dump_json(),
                    updated_at=datetime.utcnow(),
                ))
            session.commit()
        except Exception as e:
            session.rollback()
            raise PersistenceError(f"Failed to save comparables: {e}") from e
        finally:
            session.close()

    @classmethod
    def sample(cls) -> "ComparablesRepository":
        return cls(sample_comparables())


def sample_comparables() -> list[Comparable]:
    """A small reference pool of biotech transactions."""
    return [
        Comparable(
            id="comp-001",
            company_name="BioTech Alpha",
            transaction_type=TransactionType.ACQUISITION,
            date=date(2023, 6, 15),
            valuation=850.0,
            stage=DevelopmentStage.PHASE_2,
            therapeutic_areas=["Oncology", "Immunology"],
            lead_program=ComparableProgram(
                name="BTA-101",
                indication="Non-small cell lung cancer",
                mechanism="PD-1 inhibitor",
                stage=DevelopmentStage.PHASE_2,
                differentiators=["Improved safety profile", "Oral formulation"],
                competitive_position=CompetitivePosition.BEST_IN_CLASS,
            ),
            market_size=15.2,
            financials=ComparableFinancials(cash_at_transaction=120.0, burn_rate=8.5, runway=14.1, employees=85),
            deal_structure=DealStructure(upfront=350.0, milestones=500.0, royalties=0.12),
            confidence=0.85,
        ),
        Comparable(
            id="comp-002",
            company_name="Neuro Innovations",
            transaction_type=TransactionType.LICENSING,
            date=date(2023, 3, 20),
            valuation=450.0,
            stage=DevelopmentStage.PHASE_1,
            therapeutic_areas=["Neurology", "CNS"],
            lead_program=ComparableProgram(
                name="NI-201",
                indication="Alzheimer's disease",
                mechanism="Amyloid beta targeting",
                stage=DevelopmentStage.PHASE_1,
                differentiators=["Novel binding site"],
                competitive_position=CompetitivePosition.FIRST_IN_CLASS,
            ),
            market_size=8.7,
            financials=ComparableFinancials(cash_at_transaction=45.0, burn_rate=3.2, runway=14.0),
            deal_structure=DealStructure(upfront=75.0, milestones=375.0, royalties=0.10),
            confidence=0.78,
        ),
        Comparable(
            id="comp-003",
            company_name="CardioVascular Solutions",
            transaction_type=TransactionType.IPO,
            date=date(2022, 11, 8),
            valuation=1250.0,
            stage=DevelopmentStage.PHASE_3,
            therapeutic_areas=["Cardiology"],
            lead_program=ComparableProgram(
                name="CVS-301",
                indication="Heart failure",
                mechanism="ACE inhibitor",
                stage=DevelopmentStage.PHASE_3,
                differentiators=["Once-daily dosing"],
                competitive_position=CompetitivePosition.BEST_IN_CLASS,
            ),
            market_size=22.1,
            financials=ComparableFinancials(cash_at_transaction=210.0, burn_rate=12.0, runway=17.5, employees=160),
            confidence=0.92,
        ),
        Comparable(
            id="comp-004",
            company_name="ImmunoGenix",
            transaction_type=TransactionType.ACQUISITION,
            date=date(2024, 2, 1),
            valuation=1100.0,
            stage=DevelopmentStage.PHASE_2,
            therapeutic_areas=["Oncology"],
            lead_program=ComparableProgram(
                name="IGX-12",
                indication="Melanoma",
                mechanism="PD-1 bispecific antibody",
                stage=DevelopmentStage.PHASE_2,
                differentiators=["Bispecific format"],
                competitive_position=CompetitivePosition.FAST_FOLLOWER,
            ),
            market_size=12.0,
            financials=ComparableFinancials(cash_at_transaction=150.0, burn_rate=10.0, runway=15.0),
            deal_structure=DealStructure(upfront=600.0, milestones=500.0),
            confidence=0.80,
        ),
        Comparable(
            id="comp-005",
            company_name="RareGene Therapeutics",
            transaction_type=TransactionType.PARTNERSHIP,
            date=date(2023, 9, 12),
            valuation=320.0,
            stage=DevelopmentStage.PHASE_1,
            therapeutic_areas=["Rare Diseases", "Gene Therapy"],
            lead_program=ComparableProgram(
                name="RG-7",
                indication="Spinal muscular atrophy",
                mechanism="AAV gene therapy",
                stage=DevelopmentStage.PHASE_1,
                competitive_position=CompetitivePosition.FIRST_IN_CLASS,
            ),
            market_size=2.4,
            financials=ComparableFinancials(cash_at_transaction=60.0, burn_rate=4.0, runway=15.0),
            deal_structure=DealStructure(upfront=50.0, milestones=270.0, royalties=0.08),
            confidence=0.70,
        ),
        Comparable(
            id="comp-006",
            company_name="OncoPath Biosciences",
            transaction_type=TransactionType.LICENSING,
            date=date(2021, 4, 30),
            valuation=600.0,
            stage=DevelopmentStage.PHASE_2,
            therapeutic_areas=["Oncology"],
            lead_program=ComparableProgram(
                name="OP-44",
                indication="Breast cancer",
                mechanism="CDK4/6 inhibitor",
                stage=DevelopmentStage.PHASE_2,
                competitive_position=CompetitivePosition.ME_TOO,
            ),
            market_size=18.5,
            confidence=0.65,
        ),
        Comparable(
            id="comp-007",
            company_name="DermaCure",
            transaction_type=TransactionType.MERGER,
            date=date(2020, 1, 15),
            valuation=210.0,
            stage=DevelopmentStage.PRECLINICAL,
            therapeutic_areas=["Dermatology"],
            lead_program=ComparableProgram(
                name="DC-1",
                indication="Atopic dermatitis",
                mechanism="Topical JAK inhibitor",
                stage=DevelopmentStage.PRECLINICAL,
            ),
            market_size=6.0,
            confidence=0.55,
        ),
        Comparable(
            id="comp-008",
            company_name="Immunova",
            transaction_type=TransactionType.ACQUISITION,
            date=date(2024, 8, 22),
            valuation=1900.0,
            stage=DevelopmentStage.PHASE_3,
            therapeutic_areas=["Immunology"],
            lead_program=ComparableProgram(
                name="IMN-9",
                indication="Rheumatoid arthritis",
                mechanism="IL-23 antibody",
                stage=DevelopmentStage.PHASE_3,
                competitive_position=CompetitivePosition.BEST_IN_CLASS,
            ),
            market_size=25.0,
            financials=ComparableFinancials(cash_at_transaction=300.0, burn_rate=20.0, runway=15.0),
            confidence=0.88,
        ),
    ]
