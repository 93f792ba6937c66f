import math

import numpy as np


def is_valid_value(value):
    """True se o valor é um número finito (bool não conta)."""
    if isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def median(values):
    """
    Mediana padrão: elemento do meio, ou média dos dois do meio para
    tamanho par. Retorna None para lista vazia.
    """
    if len(values) == 0:
        return None
    return float(np.median(np.asarray(values, dtype=float)))


def mean(values):
    if len(values) == 0:
        return None
    return float(np.mean(np.asarray(values, dtype=float)))


def trend_direction(values, window=10, slope_threshold=0.05):
    """
    Direção da tendência nas últimas `window` amostras.
    Inclinação = último - primeiro (não é regressão, é a diferença bruta).

    Retorna: "increasing", "decreasing" ou "stable".
    """
    if len(values) < window:
        return "stable"

    recent = list(values)[-window:]
    slope = recent[-1] - recent[0]

    if slope > slope_threshold:
        return "increasing"
    if slope < -slope_threshold:
        return "decreasing"
    return "stable"


def percent_deviation(current, baseline):
    """
    Desvio relativo (current - baseline) / baseline, com sinal.
    Baseline exatamente 0 -> 0.0 (evita NaN/Infinity).
    """
    if baseline == 0:
        return 0.0
    return (current - baseline) / baseline
