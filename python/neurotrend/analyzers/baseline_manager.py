import logging

from neurotrend.core.signal_processing import mean, median

logger = logging.getLogger(__name__)


class BaselineManager:
    """
    Orquestrador de Baselines.
    Cada métrica calibra sozinha: as primeiras `window` amostras admitidas
    viram o baseline pessoal (mediana ou média) e ele fica CONGELADO até reset().
    """
    def __init__(self, config):
        self.window = int(config['baseline']['window'])
        self.statistic = config['baseline'].get('statistic', 'median')

        # Amostras de calibração ainda em coleta: {'face_symmetry': [0.08, ...]}
        self.calibration = {}
        # Baselines fixados: {'face_symmetry': 0.08}
        self.baselines = {}

    def observe(self, metric, value):
        """
        Recebe uma amostra admitida. Retorna True se ESTA amostra fechou
        a calibração da métrica.
        """
        if metric in self.baselines:
            return False

        samples = self.calibration.setdefault(metric, [])
        samples.append(value)
        if len(samples) < self.window:
            return False

        reducer = median if self.statistic == 'median' else mean
        self.baselines[metric] = reducer(samples)
        del self.calibration[metric]
        logger.info("Baseline estabelecido: %s=%.4f (%d amostras)",
                    metric, self.baselines[metric], self.window)
        return True

    def is_established(self, metric):
        return metric in self.baselines

    def get(self, metric):
        return self.baselines.get(metric)

    def is_stable(self):
        """True quando toda métrica já vista tem baseline (e há pelo menos uma)."""
        return bool(self.baselines) and not self.calibration

    def progress(self, metric=None):
        """Fração da calibração (0.0 a 1.0). Sem métrica -> a mais atrasada."""
        if metric is not None:
            if metric in self.baselines:
                return 1.0
            return len(self.calibration.get(metric, ())) / self.window

        if not self.baselines and not self.calibration:
            return 0.0
        pending = [len(s) / self.window for s in self.calibration.values()]
        return min(pending) if pending else 1.0

    def reset(self):
        self.calibration = {}
        self.baselines = {}
        logger.info("Baselines resetados, recalibrando do zero")
