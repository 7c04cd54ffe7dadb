"""Deployer reputation from the fate of the tokens a wallet deployed.

score = 100 − 80·rug_ratio − 20·dead_ratio, clamped to 0..100.
"""

from decimal import ROUND_HALF_UP, Decimal

from loguru import logger

from src.models.token import DeployedToken, DeployedTokenStatus
from src.models.trade import DeployerGrade, DeployerScore, RiskLevel

RUG_PENALTY = Decimal(80)
DEAD_PENALTY = Decimal(20)

GRADE_THRESHOLDS: list[tuple[int, DeployerGrade]] = [
    (80, DeployerGrade.A),
    (60, DeployerGrade.B),
    (40, DeployerGrade.C),
    (20, DeployerGrade.D),
]


def _grade(score: int) -> DeployerGrade:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return DeployerGrade.F


def _risk(rug_ratio: Decimal) -> RiskLevel:
    if rug_ratio == 0:
        return RiskLevel.LOW
    if rug_ratio <= Decimal("0.2"):
        return RiskLevel.MEDIUM
    if rug_ratio < Decimal("0.5"):
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def score_deployer(deployed: list[DeployedToken]) -> DeployerScore:
    total = len(deployed)
    active = sum(1 for t in deployed if t.status == DeployedTokenStatus.ACTIVE)
    rugged = sum(1 for t in deployed if t.status == DeployedTokenStatus.RUGGED)
    dead = sum(1 for t in deployed if t.status == DeployedTokenStatus.DEAD)

    denominator = Decimal(max(total, 1))
    rug_ratio = Decimal(rugged) / denominator
    dead_ratio = Decimal(dead) / denominator

    raw = Decimal(100) - rug_ratio * RUG_PENALTY - dead_ratio * DEAD_PENALTY
    score = int(min(Decimal(100), max(Decimal(0), raw)).quantize(Decimal(1), rounding=ROUND_HALF_UP))

    result = DeployerScore(
        total_deployed=total,
        active_count=active,
        rugged_count=rugged,
        dead_count=dead,
        score=score,
        grade=_grade(score),
        risk_level=_risk(rug_ratio),
    )
    if result.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
        logger.info(f"[DEPLOYER] {rugged}/{total} deployed tokens rugged, score={score} ({result.risk_level})")
    return result
