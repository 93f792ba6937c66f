import logging

from neurotrend.logic.deviation_classifier import LEVEL_RANK

logger = logging.getLogger(__name__)


class AlertManager:
    """
    Ciclo de vida dos alertas.

    - Debounce: o mesmo (métrica, nível) não é re-disparado antes de
      `debounce_ms` desde o último disparo, a não ser que o alerta ativo
      da métrica esteja em outro nível (crítico -> advisory -> crítico).
    - Latch: no máximo um alerta ativo por (métrica, nível). Um disparo de
      nível diferente para a mesma métrica cria um alerta NOVO e arquiva o
      antigo ("superseded"); nível nunca muda no lugar.
    - Reconhecimento não remove da lista ativa. O alerta reconhecido só é
      arquivado depois de `hysteresis_clear_ms` contínuos abaixo do piso,
      contados a partir do reconhecimento.
    - history é só de anexar: cada entrada é uma cópia congelada.
    """
    def __init__(self, config):
        self.hysteresis_clear_ms = config['timing']['hysteresis_clear_ms']
        self.debounce_ms = config['timing']['debounce_ms']

        self.active = []
        self.history = []
        self.last_raised_at = {}
        self.raised_count = 0
        self._sequence = 0

    def find(self, alert_id):
        for alert in self.active:
            if alert["id"] == alert_id:
                return alert
        return None

    def raise_alert(self, metric, level, now, deviation, baseline, current, reason="threshold"):
        """
        Tenta disparar. Retorna o alerta criado ou None se suprimido.
        """
        key = (metric, level)
        last = self.last_raised_at.get(key)
        current_levels = [a["level"] for a in self.active if a["metric"] == metric]
        # Nível diferente do alerta ativo da métrica fura o debounce
        level_changed = bool(current_levels) and level not in current_levels
        if last is not None and now - last < self.debounce_ms and not level_changed:
            logger.debug("Debounce: %s %s suprimido (%.0f ms desde o último)",
                         metric, level, now - last)
            return None

        for existing in list(self.active):
            if existing["metric"] != metric:
                continue
            cause = "reraised" if existing["level"] == level else "superseded"
            self._archive(existing, now, cause)

        self._sequence += 1
        alert = {
            "id": f"{metric}-{int(now)}-{self._sequence}",
            "metric": metric,
            "level": level,
            "deviation": deviation,
            "baseline": baseline,
            "current": current,
            "reason": reason,
            "raised_at": now,
            "acknowledged": False,
            "acknowledged_at": 0,
            "time_to_ack": None,
        }
        self.active.append(alert)
        self.last_raised_at[key] = now
        self.raised_count += 1

        logger.info("[ALERT] %s: %s desviou %.1f%% (%s)",
                    level.upper(), metric, deviation * 100, reason)
        return alert

    def acknowledge(self, alert_id, now):
        alert = self.find(alert_id)
        if alert is None:
            return False

        # Idempotente: o primeiro reconhecimento define o tempo de resposta
        if not alert["acknowledged"]:
            alert["acknowledged"] = True
            alert["acknowledged_at"] = now
            alert["time_to_ack"] = now - alert["raised_at"]
            logger.info("Alerta reconhecido: %s (%.0f ms)", alert_id, alert["time_to_ack"])
        return True

    def acknowledge_all(self, now):
        """Retorna os ids que estavam ativos no momento do reconhecimento."""
        ids = [alert["id"] for alert in self.active]
        for alert_id in ids:
            self.acknowledge(alert_id, now)
        return ids

    def update_clearance(self, metric, below_start, now):
        """
        Arquiva alertas reconhecidos da métrica que ficaram abaixo do piso
        por `hysteresis_clear_ms` contínuos após o reconhecimento.
        """
        if below_start is None:
            return []

        cleared = []
        for alert in list(self.active):
            if alert["metric"] != metric or not alert["acknowledged"]:
                continue
            clear_from = max(below_start, alert["acknowledged_at"])
            if now - clear_from >= self.hysteresis_clear_ms:
                cleared.append(self._archive(alert, now, "cleared"))
        return cleared

    def _archive(self, alert, now, cause):
        self.active = [a for a in self.active if a["id"] != alert["id"]]
        entry = dict(alert)
        entry["cleared_at"] = now
        entry["cleared_reason"] = cause
        self.history.append(entry)
        logger.info("Alerta arquivado: %s (%s)", alert["id"], cause)
        return entry

    def average_time_to_ack(self):
        times = [a["time_to_ack"] for a in self.history + self.active
                 if a["time_to_ack"] is not None]
        if not times:
            return None
        return sum(times) / len(times)

    def clear(self):
        self.active = []
        self.history = []
        self.last_raised_at = {}
        self.raised_count = 0


def select_highest_priority(active):
    """Alerta visível na UI: critical antes de advisory, depois o mais recente."""
    if not active:
        return None
    return max(active, key=lambda a: (LEVEL_RANK[a["level"]], a["raised_at"]))


def project_alert_state(manager):
    """
    Projeção de slot único (a UI só mostra um alerta por vez):
    level, raised_at, acknowledged_at, last_raised_at_by_level.
    """
    top = select_highest_priority(manager.active)

    by_level = {}
    for (_, level), ts in manager.last_raised_at.items():
        by_level[level] = max(ts, by_level.get(level, ts))

    return {
        "level": top["level"] if top else "none",
        "raised_at": top["raised_at"] if top else 0,
        "acknowledged_at": top["acknowledged_at"] if top else 0,
        "last_raised_at_by_level": by_level,
    }
