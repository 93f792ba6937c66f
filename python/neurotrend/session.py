import logging
import uuid

from neurotrend.core.signal_processing import is_valid_value
from neurotrend.modules.event_log import EventLog
from neurotrend.trend_engine import TrendEngine

logger = logging.getLogger(__name__)

# Campos do registro do analisador que não são métricas
RESERVED_KEYS = {"confidence", "timestamp", "signal_lost", "error", "latency"}


def derive_metrics(record):
    """
    Extrai as métricas numéricas de um MetricRecord e acrescenta as derivadas:
    - pupil_asymmetry = |esquerda - direita|
    - pupil_size      = média das duas pupilas
    """
    metrics = {
        key: value for key, value in record.items()
        if key not in RESERVED_KEYS and is_valid_value(value)
    }

    left = metrics.get("pupil_left_size")
    right = metrics.get("pupil_right_size")
    if left is not None and right is not None:
        metrics.setdefault("pupil_asymmetry", abs(left - right))
        metrics.setdefault("pupil_size", (left + right) / 2.0)

    return metrics


class AnalysisSession:
    """
    Consumidor do motor: recebe o resultado do analisador externo (visão ou
    voz), alimenta o TrendEngine e registra os eventos.

    O analisador é qualquer callable frame -> MetricRecord. Falha do
    analisador vira "sinal perdido", nunca derruba o loop.
    """
    def __init__(self, engine=None, analyzer=None, event_log=None, session_id=None):
        self.engine = engine or TrendEngine()
        self.analyzer = analyzer
        self.event_log = event_log or EventLog()
        self.session_id = session_id or uuid.uuid4().hex[:12]

    def _timestamp(self, record, timestamp):
        if timestamp is not None:
            return timestamp
        if record and is_valid_value(record.get("timestamp")):
            return record["timestamp"]
        return self.engine.clock()

    def analyze(self, frame, timestamp=None):
        if self.analyzer is None:
            raise RuntimeError("Sessão sem analisador configurado")

        try:
            record = self.analyzer(frame)
        except Exception as e:
            logger.warning("Analisador falhou: %s", e)
            record = {"signal_lost": True, "error": str(e)}
        return self.ingest(record, timestamp)

    def ingest(self, record, timestamp=None):
        """
        Alimenta o motor com um MetricRecord (ou sinal perdido) e devolve
        o get_trend() correspondente.
        """
        ts = self._timestamp(record, timestamp)

        if not record or record.get("signal_lost"):
            error = (record or {}).get("error", "no_measurement")
            self.engine.mark_signal_lost(ts, error)
            trend = self.engine.get_trend(ts)
            self.event_log.log("signal_lost", ts, session=self.session_id,
                               error=error, status=trend["signal"])
            return trend

        confidence = record.get("confidence")
        metrics = derive_metrics(record)
        for metric, value in metrics.items():
            self.engine.add_sample(metric, value, confidence, ts)

        if not metrics:
            # Registro sem nenhum número utilizável conta como falha de medida
            self.engine.mark_signal_lost(ts, "empty_record")

        trend = self.engine.get_trend(ts)
        self.event_log.log(
            "analysis", ts,
            session=self.session_id,
            metrics=metrics,
            confidence=confidence,
            medians=trend["medians"],
            baseline_established=trend["baseline_established"],
            signal=trend["signal"],
        )
        for alert in trend["alerts"]["new"]:
            self.event_log.log("alert", ts, session=self.session_id, alert=alert)
        return trend

    def acknowledge(self, alert_id, timestamp=None):
        ts = self.engine.current_time(timestamp)
        ok = self.engine.acknowledge_alert(alert_id, ts)
        if ok:
            self.event_log.log("acknowledgment", ts, session=self.session_id, alert_id=alert_id)
        return ok

    def acknowledge_all(self, timestamp=None):
        ts = self.engine.current_time(timestamp)
        for alert_id in self.engine.acknowledge_all(ts):
            self.event_log.log("acknowledgment", ts, session=self.session_id, alert_id=alert_id)

    def reset_baseline(self):
        # reset() apaga também o histórico de alertas e devolve a cópia
        ts = self.engine.current_time()
        archived = self.engine.reset()
        self.event_log.log("reset", ts, session=self.session_id,
                           archived_alerts=len(archived))
        return archived

    def summary(self):
        summary = self.engine.get_summary()
        summary["session_id"] = self.session_id
        return summary
