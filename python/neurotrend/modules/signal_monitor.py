import logging

logger = logging.getLogger(__name__)


class SignalMonitor:
    """
    Detector de Perda de Sinal.
    Se o analisador externo passa `lost_ms` sem entregar uma medida
    utilizável (erro, sem rosto, confiança baixa), o status vira "lost".

    Status: "waiting" (nada recebido ainda), "tracking", "lost".
    """
    def __init__(self, config):
        self.lost_ms = config['timing']['signal_lost_ms']
        self.last_good_at = None
        self.first_failure_at = None
        self.last_error = None
        self.status = "waiting"

    def mark_good(self, timestamp):
        self.last_good_at = timestamp
        self.first_failure_at = None
        self.last_error = None

    def mark_failure(self, timestamp, error=None):
        if self.first_failure_at is None:
            self.first_failure_at = timestamp
        self.last_error = error

    def update(self, now):
        """
        Recalcula o status. Retorna True se mudou neste instante.
        """
        reference = self.last_good_at
        if reference is None:
            reference = self.first_failure_at

        if reference is None:
            status = "waiting"
        elif now - reference >= self.lost_ms:
            status = "lost"
        elif self.last_good_at is None:
            status = "waiting"
        else:
            status = "tracking"

        changed = status != self.status
        if changed:
            if status == "lost":
                logger.warning("Sinal perdido há %.0f ms (%s)", now - reference, self.last_error)
            elif self.status == "lost":
                logger.info("Sinal recuperado")
        self.status = status
        return changed

    def reset(self):
        self.last_good_at = None
        self.first_failure_at = None
        self.last_error = None
        self.status = "waiting"
