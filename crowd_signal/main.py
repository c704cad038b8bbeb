"""crowd-signal — live venue crowd levels from crowd-submitted reports.

This is the application entry point.  It builds the scoring pipeline from
settings, wires it to the stores and notifier, and mounts the REST routes.
In-memory stores are used unless concrete ones are passed to create_app().
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from crowd_signal.api.alerts import create_alert_router
from crowd_signal.api.reports import create_report_router
from crowd_signal.api.venues import create_venue_router
from crowd_signal.config import Settings, settings
from crowd_signal.core.alert_evaluator import AlertConfig, AlertEvaluator
from crowd_signal.core.baseline_tracker import BaselineTracker
from crowd_signal.core.confidence import ConfidenceConfig
from crowd_signal.core.crowd_engine import CrowdEngine, WindowConfig
from crowd_signal.core.guardrail import GuardrailConfig, SubmissionGuardrail
from crowd_signal.core.predictor import Predictor, PredictorConfig
from crowd_signal.core.scoring import ConsensusScorer, DecayConfig, LabelBoundaries
from crowd_signal.core.submission import SubmissionService
from crowd_signal.core.subscriptions import SubscriptionService
from crowd_signal.core.trend import TrendConfig, TrendDetector
from crowd_signal.foundation.clock import Clock, utc_now
from crowd_signal.foundation.time_buckets import ZoneResolver
from crowd_signal.notify.logging_notifier import LoggingNotifier
from crowd_signal.store.contracts import (
    BaselineStore,
    Notifier,
    ReportStore,
    SubscriptionStore,
    VenueDirectory,
)
from crowd_signal.store.memory import (
    InMemoryBaselineStore,
    InMemoryReportStore,
    InMemorySubscriptionStore,
    InMemoryVenueDirectory,
)

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)


def build_engine(cfg: Settings) -> CrowdEngine:
    scorer = ConsensusScorer(
        DecayConfig(
            decay_minutes=cfg.decay_minutes,
            consensus_window_minutes=cfg.consensus_window_minutes,
            outlier_distance=cfg.outlier_distance,
            outlier_damping=cfg.outlier_damping,
            neutral_signal=cfg.neutral_signal,
        )
    )
    return CrowdEngine(
        scorer=scorer,
        boundaries=LabelBoundaries(
            low_below=cfg.label_low_below,
            medium_below=cfg.label_medium_below,
            high_below=cfg.label_high_below,
        ),
        confidence_config=ConfidenceConfig(
            high_max_age_minutes=cfg.confidence_high_max_age_minutes,
            high_min_reports=cfg.confidence_high_min_reports,
            medium_max_age_minutes=cfg.confidence_medium_max_age_minutes,
            medium_min_reports=cfg.confidence_medium_min_reports,
        ),
        trend_detector=TrendDetector(
            scorer,
            TrendConfig(
                current_window_minutes=cfg.trend_current_window_minutes,
                previous_window_minutes=cfg.trend_previous_window_minutes,
                min_reports_per_window=cfg.trend_min_reports_per_window,
                noise_floor=cfg.trend_noise_floor,
            ),
        ),
        window=WindowConfig(active_window_minutes=cfg.active_window_minutes),
    )


def create_app(
    cfg: Settings = settings,
    reports: ReportStore | None = None,
    baselines: BaselineStore | None = None,
    subscriptions: SubscriptionStore | None = None,
    venues: VenueDirectory | None = None,
    notifier: Notifier | None = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """Wire the pipeline to concrete collaborators and return the app."""
    reports = reports or InMemoryReportStore()
    baselines = baselines or InMemoryBaselineStore()
    subscriptions = subscriptions or InMemorySubscriptionStore()
    venues = venues or InMemoryVenueDirectory()
    notifier = notifier or LoggingNotifier()

    zones = ZoneResolver(cfg.default_timezone, cfg.venue_timezones)
    engine = build_engine(cfg)

    # ── Write path ───────────────────────────────────────────────────────
    tracker = BaselineTracker(baselines, zones, max_attempts=cfg.baseline_max_attempts)
    guardrail = SubmissionGuardrail(
        reports,
        zones,
        GuardrailConfig(
            venue_cooldown_minutes=cfg.report_cooldown_minutes,
            daily_cap=cfg.report_daily_cap,
        ),
    )
    submission = SubmissionService(reports, venues, guardrail, tracker, clock=clock)

    # ── Read path ────────────────────────────────────────────────────────
    predictor = Predictor(
        baselines,
        engine,
        zones,
        PredictorConfig(
            horizons_minutes=tuple(cfg.prediction_horizons_minutes),
            baseline_weight=cfg.prediction_baseline_weight,
            current_weight=cfg.prediction_current_weight,
        ),
    )

    # ── Alerts ───────────────────────────────────────────────────────────
    evaluator = AlertEvaluator(
        subscriptions,
        reports,
        venues,
        notifier,
        engine=engine,
        config=AlertConfig(
            cooldown_minutes=cfg.alert_cooldown_minutes,
            lookback_minutes=cfg.active_window_minutes,
        ),
        clock=clock,
    )

    app = FastAPI(
        title=cfg.app_name,
        description="Live venue crowd levels from crowd-submitted reports",
        version="0.1.0",
    )
    app.include_router(create_report_router(submission))
    app.include_router(create_venue_router(reports, venues, engine, predictor, clock=clock))
    app.include_router(
        create_alert_router(SubscriptionService(subscriptions, venues), evaluator)
    )

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "timezone": cfg.default_timezone}

    return app


app = create_app()
