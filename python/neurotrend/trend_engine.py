import logging
import threading
import time

from neurotrend.analyzers.baseline_manager import BaselineManager
from neurotrend.core.config import apply_flat_options, load_config, validate_config
from neurotrend.logic.alert_manager import AlertManager, project_alert_state
from neurotrend.logic.composite_index import CompositeIndex
from neurotrend.logic.deviation_classifier import DeviationClassifier
from neurotrend.logic.temporal_gate import TemporalGate
from neurotrend.modules.signal_monitor import SignalMonitor
from neurotrend.modules.temporal_buffer import SampleBuffer

logger = logging.getLogger(__name__)


def wall_clock_ms():
    return time.time() * 1000.0


class TrendEngine:
    """
    Motor de Tendências: baseline pessoal + mediana móvel + alertas.

    Fluxo por amostra:
      SampleBuffer -> BaselineManager (só na calibração) -> mediana
      -> DeviationClassifier (+ CompositeIndex) -> TemporalGate -> AlertManager

    Todo o estado vive na instância (várias sessões podem coexistir).
    O motor é função de (amostras, timestamps, config): o relógio só é
    consultado quando o chamador não informa o timestamp.
    Operações que mutam estado passam por um único lock.
    """
    def __init__(self, config=None, clock=None, **options):
        if config is None:
            config = load_config()
        if options:
            config = apply_flat_options(config, options)
        self.cfg = validate_config(config)
        self.clock = clock or wall_clock_ms

        self.buffer = SampleBuffer(self.cfg)
        self.baselines = BaselineManager(self.cfg)
        self.classifier = DeviationClassifier(self.cfg)
        self.composite = CompositeIndex(self.cfg)
        self.gate = TemporalGate(self.cfg)
        self.alerts = AlertManager(self.cfg)
        self.signal = SignalMonitor(self.cfg)

        self._lock = threading.RLock()
        self._pending_new = []
        self.started_at = None
        self.last_timestamp = None

    # ------------------------------------------------------------------
    # Entrada
    # ------------------------------------------------------------------

    def _advance(self, timestamp):
        now = self.clock() if timestamp is None else timestamp
        if self.started_at is None:
            self.started_at = now
        self.last_timestamp = now
        return now

    def current_time(self, now=None):
        if now is not None:
            return now
        if self.last_timestamp is not None:
            return self.last_timestamp
        return self.clock()

    def add_sample(self, metric, value, confidence=None, timestamp=None):
        """
        Admite (ou descarta) uma leitura e reavalia os alertas.
        Nunca levanta exceção por dado ruim: descarte vira contador.
        """
        with self._lock:
            now = self._advance(timestamp)
            # Lacuna longa desde a última medida conta como perda de sinal
            self._update_signal(now)

            if not self.buffer.add(metric, value, confidence):
                self.signal.mark_failure(now, "low_confidence")
                self._update_signal(now)
                return

            self.signal.mark_good(now)
            self.baselines.observe(metric, float(value))
            self._update_signal(now)
            self._evaluate(now)

    def mark_signal_lost(self, timestamp=None, error=None):
        """O analisador não conseguiu medir (erro de rede, sem rosto...)."""
        with self._lock:
            now = self._advance(timestamp)
            self.signal.mark_failure(now, error)
            self._update_signal(now)

    def tick(self, now=None):
        """Avança o tempo sem amostra nova (loop de monitoramento do host)."""
        with self._lock:
            now = self._advance(now)
            self._update_signal(now)
            self._evaluate(now)

    def _update_signal(self, now):
        if self.signal.update(now) and self.signal.status == "lost":
            self.gate.reset_timers()

    # ------------------------------------------------------------------
    # Avaliação
    # ------------------------------------------------------------------

    def _deviations(self):
        deviations = {}
        for metric in self.buffer.metrics():
            dev = self.classifier.classify(
                metric, self.buffer.median(metric), self.baselines.get(metric)
            )
            if dev is not None:
                deviations[metric] = dev
        return deviations

    def _evaluate(self, now):
        # Perda de sinal: nada dispara e nada limpa, só espera voltar
        if self.signal.status == "lost":
            logger.debug("Sinal perdido: avaliação suspensa em %s", now)
            return

        deviations = self._deviations()
        combined = self.composite.compute(deviations)
        combined_critical = self.composite.is_critical(combined)

        for metric, dev in deviations.items():
            level = dev["level"]
            reason = "threshold"
            if combined_critical and metric == self.composite.primary and level != "critical":
                level = "critical"
                reason = "composite"

            persisted = self.gate.process(metric, level, now)
            if persisted is not None:
                alert = self.alerts.raise_alert(
                    metric,
                    persisted,
                    now,
                    deviation=dev["percentage"],
                    baseline=self.baselines.get(metric),
                    current=self.buffer.median(metric),
                    reason=reason,
                )
                if alert is not None:
                    self._pending_new.append(dict(alert))

            self.alerts.update_clearance(metric, self.gate.below_since(metric), now)

    # ------------------------------------------------------------------
    # Ações do usuário
    # ------------------------------------------------------------------

    def acknowledge_alert(self, alert_id, timestamp=None):
        with self._lock:
            return self.alerts.acknowledge(alert_id, self.current_time(timestamp))

    def acknowledge_all(self, timestamp=None):
        with self._lock:
            return self.alerts.acknowledge_all(self.current_time(timestamp))

    def reset(self):
        """
        Reset DESTRUTIVO: buffers, baselines, cronômetros e todos os alertas
        (ativos e histórico). Devolve a cópia do histórico + ativos, tirada
        sob o mesmo lock do reset.
        """
        with self._lock:
            archived = self.history + [dict(a) for a in self.alerts.active]
            self.buffer.clear()
            self.baselines.reset()
            self.gate.reset()
            self.alerts.clear()
            self.signal.reset()
            self._pending_new = []
            self.started_at = None
            self.last_timestamp = None
            logger.info("Motor resetado, calibrando novo baseline")
            return archived

    # ------------------------------------------------------------------
    # Saída
    # ------------------------------------------------------------------

    def get_trend(self, now=None):
        """
        Fotografia do estado atual. Antes da calibração, baselines e
        deviations vêm como None (nunca exceção).
        `alerts.new` traz os alertas disparados desde a chamada anterior.
        """
        with self._lock:
            now = self.current_time(now)
            deviations = self._deviations()
            baselines = dict(self.baselines.baselines)
            new_alerts, self._pending_new = self._pending_new, []

            return {
                "timestamp": now,
                "medians": self.buffer.medians(),
                "trends": self.buffer.trends(),
                "baselines": baselines or None,
                "baseline_established": self.baselines.is_stable(),
                "baseline_progress": self.baselines.progress(),
                "deviations": deviations or None,
                "composite": self.composite.snapshot(deviations),
                "alerts": {
                    "active": [dict(a) for a in self.alerts.active],
                    "new": new_alerts,
                },
                "alert_state": project_alert_state(self.alerts),
                "signal": self.signal.status,
                "signal_lost": self.signal.status == "lost",
                "dropped_low_confidence": self.buffer.dropped_low_confidence,
                "dropped_invalid": self.buffer.dropped_invalid,
                "overall_confidence": self.buffer.overall_confidence(),
            }

    def get_summary(self, now=None):
        with self._lock:
            now = self.current_time(now)
            return {
                "uptime": 0 if self.started_at is None else now - self.started_at,
                "samples_processed": self.buffer.samples_admitted,
                "dropped_low_confidence": self.buffer.dropped_low_confidence,
                "baseline_established": self.baselines.is_stable(),
                "baselines": dict(self.baselines.baselines),
                "current_medians": self.buffer.medians(),
                "active_alerts": len(self.alerts.active),
                "total_alerts": self.alerts.raised_count,
                "average_time_to_ack": self.alerts.average_time_to_ack(),
            }

    @property
    def history(self):
        with self._lock:
            return [dict(a) for a in self.alerts.history]
