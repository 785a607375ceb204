"""Strategy module: estimation, route selection and profit calculation."""

from triarb.strategy.calculator import ProfitCalculator, compute_profit, profit_percentage
from triarb.strategy.estimator import compute_output, compute_rate
from triarb.strategy.fees import PoolFeeEstimator
from triarb.strategy.route import RouteSelector


__all__ = [
    "PoolFeeEstimator",
    "ProfitCalculator",
    "RouteSelector",
    "compute_output",
    "compute_profit",
    "compute_rate",
    "profit_percentage",
]
