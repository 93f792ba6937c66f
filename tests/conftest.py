import pytest

from neurotrend.trend_engine import TrendEngine


def feed(engine, metric, values, start=0, step=1000, confidence=0.9):
    """Alimenta uma série com timestamps regulares. Retorna o próximo timestamp."""
    t = start
    for value in values:
        engine.add_sample(metric, value, confidence, t)
        t += step
    return t


@pytest.fixture
def fast_engine():
    """
    Janela de 1 amostra (mediana = último valor), baseline com 3 amostras
    e tempos curtos para exercitar a máquina de estados.
    """
    return TrendEngine(
        window_size=1,
        baseline_window=3,
        advisory_persist_ms=5000,
        critical_persist_ms=2000,
        hysteresis_clear_ms=4000,
        debounce_ms=10000,
        signal_lost_ms=30000,
    )
