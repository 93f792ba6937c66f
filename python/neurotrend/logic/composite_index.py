class CompositeIndex:
    """
    Índice de Variância do Baseline.

    Soma ponderada dos |desvios percentuais| das métricas componentes
    (padrão: assimetria 0.7 + pupila 0.3). Só existe quando TODAS as
    componentes já têm desvio calculado.

    Se o índice passar do limiar combinado, a métrica primária vai para
    "critical" mesmo que sozinha não tenha cruzado o próprio limiar (OU).
    """
    def __init__(self, config):
        section = config.get('composite') or {}
        self.enabled = bool(section.get('enabled', False))
        self.name = section.get('name', 'baseline_variance_index')
        self.primary = section.get('primary')
        self.weights = dict(section.get('weights') or {})
        self.critical_threshold = section.get('critical_threshold', 0.5)

    def compute(self, deviations):
        if not self.enabled or not deviations:
            return None

        total = 0.0
        for metric, weight in self.weights.items():
            dev = deviations.get(metric)
            if dev is None:
                return None
            total += weight * abs(dev["percentage"])
        return total

    def is_critical(self, value):
        # Estritamente maior, igual ao limiar não dispara
        return value is not None and value > self.critical_threshold

    def snapshot(self, deviations):
        value = self.compute(deviations)
        return {
            "name": self.name,
            "value": value,
            "critical": self.is_critical(value),
        }
