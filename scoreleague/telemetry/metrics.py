"""
Prometheus metrics for the prediction and scoring pipeline.

Labels are restricted to low-cardinality values:
- job:       bot_betting, bot_betting_match_hours, bet_results_sweep, recalculate_league_standings
- status:    ok, error
- strategy:  StrategyKind values (max ~10)
- reason:    low_data_quality, no_form_data, no_model, service_error
- outcome:   exact, correct, miss

League, match and user identifiers never become labels; use logs for those.
All record_* helpers are best-effort and never raise into the caller.
"""

import logging
import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# =============================================================================
# JOB METRICS
# =============================================================================

job_runs_total = Counter(
    "scoreleague_job_runs_total",
    "Total job runs by job and status",
    ["job", "status"],
)

job_last_success_timestamp = Gauge(
    "scoreleague_job_last_success_timestamp",
    "Unix timestamp of last successful job run",
    ["job"],
)

job_duration_ms = Histogram(
    "scoreleague_job_duration_ms",
    "Job duration in milliseconds",
    ["job"],
    buckets=[10, 50, 100, 500, 1000, 5000, 10000, 30000, 60000, 300000],
)

# =============================================================================
# BOT METRICS
# =============================================================================

bot_bets_placed_total = Counter(
    "scoreleague_bot_bets_placed_total",
    "Bets placed by bots",
    ["strategy"],
)

bot_prediction_errors_total = Counter(
    "scoreleague_bot_prediction_errors_total",
    "Bot predictions skipped because the strategy raised",
    ["strategy"],
)

ensemble_degraded_total = Counter(
    "scoreleague_ensemble_degraded_predictions_total",
    "Stats analyst predictions made with at least one weighted signal unavailable",
)

strategy_fallback_total = Counter(
    "scoreleague_strategy_fallback_total",
    "Predictions delegated to the fallback strategy",
    ["strategy", "reason"],
)

# =============================================================================
# SCORING METRICS
# =============================================================================

bet_results_total = Counter(
    "scoreleague_bet_results_total",
    "Bet results calculated by outcome",
    ["outcome"],
)


def record_job_run(job: str, status: str, duration_ms: float) -> None:
    """
    Record a job run with status and duration.

    Args:
        job: Job identifier.
        status: "ok" or "error".
        duration_ms: Job duration in milliseconds.
    """
    try:
        job_runs_total.labels(job=job, status=status).inc()
        if duration_ms > 0:
            job_duration_ms.labels(job=job).observe(duration_ms)
        if status == "ok":
            job_last_success_timestamp.labels(job=job).set(time.time())
    except Exception as e:
        logger.warning(f"Failed to record job run metric: {e}")


def record_bot_bet(strategy: str) -> None:
    try:
        bot_bets_placed_total.labels(strategy=strategy).inc()
    except Exception as e:
        logger.warning(f"Failed to record bot bet metric: {e}")


def record_bot_prediction_error(strategy: str) -> None:
    try:
        bot_prediction_errors_total.labels(strategy=strategy).inc()
    except Exception as e:
        logger.warning(f"Failed to record prediction error metric: {e}")


def record_degraded_prediction() -> None:
    try:
        ensemble_degraded_total.inc()
    except Exception as e:
        logger.warning(f"Failed to record degraded prediction metric: {e}")


def record_fallback(strategy: str, reason: str) -> None:
    try:
        strategy_fallback_total.labels(strategy=strategy, reason=reason).inc()
    except Exception as e:
        logger.warning(f"Failed to record fallback metric: {e}")


def record_bet_result(outcome: str) -> None:
    try:
        bet_results_total.labels(outcome=outcome).inc()
    except Exception as e:
        logger.warning(f"Failed to record bet result metric: {e}")


def get_metrics_text() -> tuple[str, str]:
    """
    Generate Prometheus metrics text output.

    Returns:
        Tuple of (content, content_type)
    """
    return generate_latest(REGISTRY).decode("utf-8"), CONTENT_TYPE_LATEST
