import logging
from collections import deque

from neurotrend.core.signal_processing import is_valid_value, mean, median, trend_direction

logger = logging.getLogger(__name__)


class SampleBuffer:
    """
    Janela móvel por métrica.
    Guarda as últimas N amostras ADMITIDAS de cada sinal (FIFO):
    - Confiança abaixo do limiar -> descartada e contada
    - Valor não numérico / NaN -> descartado e contado à parte
    Nenhuma amostra descartada toca no buffer, no baseline ou na mediana.
    """
    def __init__(self, config):
        self.window_size = int(config['buffer']['window_size'])
        self.confidence_threshold = config['buffer']['confidence_threshold']
        self.trend_window = int(config['trend']['window'])
        self.slope_threshold = config['trend']['slope_threshold']

        # {'face_symmetry': deque([...]), 'pupil_left_size': deque([...])}
        self.buffers = {}
        self.confidences = deque(maxlen=self.window_size)

        self.samples_admitted = 0
        self.dropped_low_confidence = 0
        self.dropped_invalid = 0

    def add(self, metric, value, confidence=None):
        """
        Tenta admitir uma amostra. Retorna True se entrou no buffer.
        """
        if not is_valid_value(value):
            self.dropped_invalid += 1
            logger.debug("Amostra inválida descartada: %s=%r", metric, value)
            return False

        if confidence is not None:
            if not is_valid_value(confidence):
                self.dropped_invalid += 1
                logger.debug("Confiança inválida descartada: %s conf=%r", metric, confidence)
                return False
            if confidence < self.confidence_threshold:
                self.dropped_low_confidence += 1
                logger.debug("Baixa confiança: %s conf=%.2f", metric, confidence)
                return False

        if metric not in self.buffers:
            self.buffers[metric] = deque(maxlen=self.window_size)

        # deque com maxlen já descarta a mais antiga (O(1))
        self.buffers[metric].append(float(value))
        if confidence is not None:
            self.confidences.append(float(confidence))

        self.samples_admitted += 1
        return True

    def metrics(self):
        return list(self.buffers.keys())

    def values(self, metric):
        return list(self.buffers.get(metric, ()))

    def median(self, metric):
        return median(self.buffers.get(metric, ()))

    def medians(self):
        return {m: median(buf) for m, buf in self.buffers.items() if buf}

    def trend(self, metric):
        return trend_direction(
            self.buffers.get(metric, ()),
            window=self.trend_window,
            slope_threshold=self.slope_threshold,
        )

    def trends(self):
        return {m: self.trend(m) for m in self.buffers}

    def overall_confidence(self):
        return mean(self.confidences)

    def clear(self):
        self.buffers = {}
        self.confidences.clear()
        self.samples_admitted = 0
        self.dropped_low_confidence = 0
        self.dropped_invalid = 0
