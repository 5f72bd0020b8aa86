"""
CryptoScore: Composite Scorer

Combines the sub-scores of one asset into a single 0..100 score:

  final = clamp( Σ w_axis · axis  (quality, asymmetry, liquidity, setup)
                 + narrative boost
                 − w_risk · risk,  0, 100 )

Weights come from the ScanConfiguration and need not sum to 1.0. Overflow
is handled by the final clamp, never by renormalization. Without narrative
data the boost is 0 and the formula reduces to the weighted axes minus risk.
"""
from typing import Optional

from common.logger import get_logger
from common.models import (AssetRecord, AxisWeights, DerivedMetrics,
                           ScanConfiguration, ScoredAsset, SubScores)
from scoring.asymmetry import AsymmetryScorer
from scoring.base import clamp
from scoring.liquidity import LiquidityScorer
from scoring.narrative import NarrativeScorer
from scoring.quality import QualityScorer
from scoring.risk import RiskScorer
from scoring.timing import SetupScorer

logger = get_logger("aggregator")

AXIS_SCORERS = {
    "quality":   QualityScorer(),
    "asymmetry": AsymmetryScorer(),
    "liquidity": LiquidityScorer(),
    "setup":     SetupScorer(),
    "risk":      RiskScorer(),
}

POSITIVE_AXES = ("quality", "asymmetry", "liquidity", "setup")


def composite_score(scores: SubScores, boost: float, weights: AxisWeights) -> float:
    weighted = sum(getattr(weights, axis) * getattr(scores, axis) for axis in POSITIVE_AXES)
    penalty = weights.risk * scores.risk
    return clamp(weighted + boost - penalty, 0.0, 100.0)


def score_asset(record: AssetRecord, metrics: DerivedMetrics,
                config: ScanConfiguration,
                narratives: Optional[NarrativeScorer] = None) -> ScoredAsset:
    """Run every axis scorer over one asset and combine the results."""
    axis_scores = {}
    for axis, scorer in AXIS_SCORERS.items():
        try:
            axis_scores[axis] = scorer.score(record, metrics, config)
        except Exception as e:
            logger.error(f"{axis} failed for {record.id}: {e}")
            axis_scores[axis] = 0.0

    tags: list[str] = []
    heat = 0.0
    if narratives is not None:
        try:
            tags = narratives.tags_for(record.id, config)
            heat = narratives.heat_for_tags(tags)
        except Exception as e:
            logger.error(f"narrative failed for {record.id}: {e}")
            tags, heat = [], 0.0

    scores = SubScores(narrative_heat=heat, **axis_scores)
    boost = NarrativeScorer.boost_points(heat, config)
    final = composite_score(scores, boost, config.weights)

    logger.debug(f"{record.symbol} scores: "
                 f"{', '.join(f'{k}={v:.1f}' for k, v in axis_scores.items())} "
                 f"heat={heat:.0f} → {final:.1f}")

    return ScoredAsset(
        record=record,
        metrics=metrics,
        scores=scores,
        final_score=final,
        narrative_tags=tags,
        narrative_boost=boost,
        # Weighted heat, reported alongside the boost; not part of the final score
        narrative_term=config.weights.narrative * heat,
    )
