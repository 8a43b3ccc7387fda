"""Prometheus telemetry for jobs, bots and scoring."""

from scoreleague.telemetry.metrics import (
    bet_results_total,
    bot_bets_placed_total,
    bot_prediction_errors_total,
    ensemble_degraded_total,
    get_metrics_text,
    job_duration_ms,
    job_runs_total,
    record_bet_result,
    record_bot_bet,
    record_bot_prediction_error,
    record_degraded_prediction,
    record_fallback,
    record_job_run,
    strategy_fallback_total,
)

__all__ = [
    "bet_results_total",
    "bot_bets_placed_total",
    "bot_prediction_errors_total",
    "ensemble_degraded_total",
    "get_metrics_text",
    "job_duration_ms",
    "job_runs_total",
    "record_bet_result",
    "record_bot_bet",
    "record_bot_prediction_error",
    "record_degraded_prediction",
    "record_fallback",
    "record_job_run",
    "strategy_fallback_total",
]
