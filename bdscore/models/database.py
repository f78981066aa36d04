"""SQLAlchemy database models and setup."""

import json
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Date,
    DateTime,
    Text,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker

from bdscore.config import settings

Base = declarative_base()


class DBScoringRecord(Base):
    """Historical scoring result, written once per evaluation."""

    __tablename__ = "scoring_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_name = Column(String(500), nullable=False)
    config_name = Column(String(200))
    overall_score = Column(Float, nullable=False)
    recommendation = Column(String(50), nullable=False)
    risk_level = Column(String(50), nullable=False)
    confidence = Column(Float, nullable=False)
    data_completeness = Column(Float)

    pillar_scores = Column(Text)  # JSON dict pillar -> raw score
    weights = Column(Text)  # JSON dict pillar -> weight
    warnings = Column(Text)  # JSON array

    scored_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_scoring_company", "company_name"),
        Index("idx_scoring_score", "overall_score"),
    )

    def get_pillar_scores(self) -> dict[str, float]:
        return json.loads(self.pillar_scores) if self.pillar_scores else {}

    def set_pillar_scores(self, scores: dict[str, float]):
        self.pillar_scores = json.dumps(scores)

    def get_weights(self) -> dict[str, float]:
        return json.loads(self.weights) if self.weights else {}

    def set_weights(self, weights: dict[str, float]):
        self.weights = json.dumps(weights)


class DBValuationRecord(Base):
    """Historical valuation result."""

    __tablename__ = "valuation_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_name = Column(String(500), nullable=False)
    base_valuation = Column(Float)
    low_valuation = Column(Float)
    high_valuation = Column(Float)
    confidence = Column(Float, default=0.0)
    flags = Column(Text)  # JSON array
    scenarios = Column(Text)  # JSON array of scenario dicts
    comparable_ids = Column(Text)  # JSON array

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (Index("idx_valuation_company", "company_name"),)

    def get_scenarios(self) -> list[dict]:
        return json.loads(self.scenarios) if self.scenarios else []

    def get_comparable_ids(self) -> list[str]:
        return json.loads(self.comparable_ids) if self.comparable_ids else []


class DBComparable(Base):
    """Stored comparable transaction; the full record lives in `payload`."""

    __tablename__ = "comparables"

    id = Column(String(100), primary_key=True)
    company_name = Column(String(500), nullable=False)
    transaction_type = Column(String(50), nullable=False)
    transaction_date = Column(Date, nullable=False)
    valuation = Column(Float, nullable=False)
    stage = Column(String(50), nullable=False)
    confidence = Column(Float, default=0.5)
    payload = Column(Text, nullable=False)  # JSON of the Comparable model
    updated_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_comparable_stage", "stage"),
        Index("idx_comparable_date", "transaction_date"),
    )


# Database initialization
def init_db(db_url: Optional[str] = None) -> sessionmaker:
    """Initialize database and return session maker."""
    url = db_url or settings.database_url
    engine = create_engine(url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
