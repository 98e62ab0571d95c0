"""
Wires the behavior engine parts around one store.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from app.config import Settings
from app.services.behavior_engine.accumulator import EventAccumulator, SessionState
from app.services.behavior_engine.baseline import BaselineEstimator
from app.services.behavior_engine.history import HistoryAggregator, HistorySummary, generate_demo_history
from app.services.behavior_engine.lifecycle import SessionLifecycle, now_ms
from app.services.behavior_engine.metrics import Baseline, LiveSnapshot
from app.services.behavior_engine.monitor import LiveScoreMonitor
from app.services.behavior_engine.notifier import StatusSeverity, SubscriptionNotifier
from app.services.behavior_engine import reports
from app.services.behavior_engine.reports import Report
from app.services.behavior_engine.scoring import RiskScore, StrainResult, StrainScorer
from app.services.behavior_engine.store import InMemoryStore, JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class LiveView:
    snapshot: LiveSnapshot
    baseline: Baseline
    risk: Optional[RiskScore]
    strain: Optional[StrainResult]


class BehaviorEngine:
    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], int] = now_ms,
        refresh_interval: float = LiveScoreMonitor.DEFAULT_INTERVAL,
    ):
        self.store = store
        self.state = SessionState(store=store)
        self.notifier = SubscriptionNotifier()
        self.estimator = BaselineEstimator()
        self.accumulator = EventAccumulator(self.state)
        self.lifecycle = SessionLifecycle(self.state, notifier=self.notifier, clock=clock, estimator=self.estimator)
        self.aggregator = HistoryAggregator(estimator=self.estimator)
        self.strain_scorer = StrainScorer()
        self.monitor = LiveScoreMonitor(self.lifecycle, interval=refresh_interval)
        self.clock = clock

    def live(self) -> LiveView:
        snapshot = self.lifecycle.snapshot()
        baseline = self.estimator.compute_baseline(snapshot.history)
        risk = self.lifecycle.live_score(snapshot)
        strain = self.strain_scorer.calculate(risk.rates, baseline) if risk and risk.rates else None
        return LiveView(snapshot=snapshot, baseline=baseline, risk=risk, strain=strain)

    def summary(self, demo: bool = False) -> HistorySummary:
        history = generate_demo_history(now_ms=self.clock()) if demo else self.lifecycle.history()
        return self.aggregator.summarize(history)

    def export_report(self) -> str:
        text = reports.export_report(self.store)
        self.notifier.notify_status("Report downloaded", StatusSeverity.INFO)
        return text

    def import_report(self, text: str) -> Report:
        # Serialized with Stop/Reset so a concurrent commit is not overwritten halfway
        with self.state.exclusive():
            return reports.import_report(text, self.store)


def build_engine(settings: Settings) -> BehaviorEngine:
    if settings.store_path:
        store = JsonFileStore(settings.store_path)
    else:
        store = InMemoryStore()
        logger.info("Using in-memory store")
    return BehaviorEngine(store, refresh_interval=settings.refresh_interval)
