"""Write-only sink for historical scoring and valuation records."""

import json
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from bdscore.errors import PersistenceError
from bdscore.models.database import DBScoringRecord, DBValuationRecord, init_db
from bdscore.models.scoring import ScoringConfig, ScoringResult
from bdscore.models.valuation import ValuationResult

logger = logging.getLogger(__name__)


class HistoricalScoreSink:
    """Persist results as they are produced. Records are never read back by the engine."""

    def __init__(self, session_factory: Optional[sessionmaker] = None, db_url: Optional[str] = None):
        self.session_factory = session_factory or init_db(db_url)

    def record_score(self, result: ScoringResult, config: Optional[ScoringConfig] = None) -> int:
        record = DBScoringRecord(
            company_name=result.company_name,
            config_name=result.config_name or (config.name if config else None),
            overall_score=result.overall_score,
            recommendation=result.recommendation.value,
            risk_level=result.risk_level.value,
            confidence=result.confidence.overall,
            data_completeness=result.confidence.data_completeness,
            warnings=json.dumps(result.warnings),
            scored_at=result.timestamp,
        )
        record.set_pillar_scores({p.value: s for p, s in result.pillar_scores.raw_scores().items()})
        if config is not None:
            record.set_weights({p.value: w for p, w in config.weights.as_dict().items()})
        return self._write(record, f"score for {result.company_name}")

    def record_valuation(self, result: ValuationResult) -> int:
        record = DBValuationRecord(
            company_name=result.company_name,
            base_valuation=result.base_valuation,
            low_valuation=result.range.low if result.range else None,
            high_valuation=result.range.high if result.range else None,
            confidence=result.confidence,
            flags=json.dumps([f.value for f in result.flags]),
            scenarios=json.dumps([s.model_dump(mode="json") for s in result.scenarios]),
            comparable_ids=json.dumps([m.comparable.id for m in result.comparables_used]),
            created_at=result.timestamp,
        )
        return self._write(record, f"valuation for {result.company_name}")

    def _write(self, record, label: str) -> int:
        session = self.session_factory()
        try:
            session.add(record)
            session.commit()
            record_id = record.id
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Failed to record {label}: {e}") from e
        finally:
            session.close()
        logger.debug(f"Recorded {label} (id={record_id})")
        return record_id
