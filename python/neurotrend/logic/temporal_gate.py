import logging

logger = logging.getLogger(__name__)


class TemporalGate:
    """
    Filtro Temporal: decide se um desvio se MANTEVE acima do limiar por
    tempo suficiente (Persistência) antes de virar alerta.

    Estado por métrica:
    - timing_level:    maior nível atualmente violado (None = abaixo do piso)
    - threshold_start: quando esse nível começou a ser violado
    - below_start:     quando a métrica voltou para baixo do piso advisory

    Só o nível MAIS ALTO acumula tempo: cruzar o crítico zera o cronômetro
    do advisory. Cair de nível antes de completar a persistência zera tudo
    (sem crédito parcial entre períodos não contíguos).
    """
    def __init__(self, config):
        self.persist_ms = {
            "advisory": config['timing']['advisory_persist_ms'],
            "critical": config['timing']['critical_persist_ms'],
        }
        self.states = {}

    def _state(self, metric):
        if metric not in self.states:
            self.states[metric] = {
                "timing_level": None,
                "threshold_start": None,
                "below_start": None,
            }
        return self.states[metric]

    def process(self, metric, level, now):
        """
        Recebe o nível classificado neste instante.
        Retorna o nível que completou a persistência (ou None).
        """
        st = self._state(metric)

        if level == "normal":
            st["timing_level"] = None
            st["threshold_start"] = None
            if st["below_start"] is None:
                st["below_start"] = now
            return None

        st["below_start"] = None
        if st["timing_level"] != level:
            # Novo nível (subiu ou desceu): cronômetro recomeça do zero
            st["timing_level"] = level
            st["threshold_start"] = now
            logger.debug("Gate %s: %s cruzado em %s", metric, level, now)

        if now - st["threshold_start"] >= self.persist_ms[level]:
            return level
        return None

    def state(self, metric):
        """'calibrating' (nunca avaliada), 'below' ou 'timing'."""
        st = self.states.get(metric)
        if st is None:
            return "calibrating"
        return "timing" if st["timing_level"] is not None else "below"

    def below_since(self, metric):
        st = self.states.get(metric)
        return st["below_start"] if st else None

    def reset_timers(self):
        """Perda de sinal: lacuna não conta como violação nem como normalidade."""
        for st in self.states.values():
            st["timing_level"] = None
            st["threshold_start"] = None
            st["below_start"] = None

    def reset(self):
        self.states = {}
