from neurotrend.core.signal_processing import percent_deviation

LEVEL_RANK = {"normal": 0, "advisory": 1, "critical": 2}


class DeviationClassifier:
    """
    Classifica o desvio de cada métrica em normal / advisory / critical.

    Duas famílias de métrica:
    - relative (padrão): |mediana - baseline| / baseline contra os limiares
      fracionários (0.15 / 0.30).
    - absolute: a própria mediana contra limiares fixos. Usado para sinais
      que já são escores de desvio (assimetria facial) ou que têm faixa
      clínica conhecida (HNR em dB, com direction=below).
    """
    def __init__(self, config):
        self.advisory = config['thresholds']['advisory']
        self.critical = config['thresholds']['critical']
        self.policies = config.get('metrics') or {}

    def policy(self, metric):
        custom = self.policies.get(metric, {})
        mode = custom.get('mode', 'relative')
        return {
            "mode": mode,
            "direction": custom.get('direction', 'above'),
            "advisory": custom.get('advisory', self.advisory),
            "critical": custom.get('critical', self.critical),
        }

    def level_for(self, metric, current, percentage):
        p = self.policy(metric)

        if p["mode"] == "relative":
            magnitude = abs(percentage)
            if magnitude >= p["critical"]:
                return "critical"
            if magnitude >= p["advisory"]:
                return "advisory"
            return "normal"

        # Absoluto: "below" = valores BAIXOS são anormais
        if p["direction"] == "below":
            if current <= p["critical"]:
                return "critical"
            if current <= p["advisory"]:
                return "advisory"
            return "normal"

        if current >= p["critical"]:
            return "critical"
        if current >= p["advisory"]:
            return "advisory"
        return "normal"

    def classify(self, metric, current, baseline):
        """
        Retorna {absolute, percentage, level, mode} ou None enquanto não
        houver baseline ou mediana (métrica calibrando).
        """
        if baseline is None or current is None:
            return None

        percentage = percent_deviation(current, baseline)
        return {
            "absolute": current - baseline,
            "percentage": percentage,
            "level": self.level_for(metric, current, percentage),
            "mode": self.policy(metric)["mode"],
        }
