import copy
import logging
import math
import os

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "config",
    "trend_config.yaml",
)

# Nomes "planos" aceitos no construtor do motor -> (seção, chave) do YAML
FLAT_OPTIONS = {
    "window_size": ("buffer", "window_size"),
    "confidence_threshold": ("buffer", "confidence_threshold"),
    "baseline_window": ("baseline", "window"),
    "baseline_statistic": ("baseline", "statistic"),
    "advisory_threshold": ("thresholds", "advisory"),
    "critical_threshold": ("thresholds", "critical"),
    "advisory_persist_ms": ("timing", "advisory_persist_ms"),
    "critical_persist_ms": ("timing", "critical_persist_ms"),
    "hysteresis_clear_ms": ("timing", "hysteresis_clear_ms"),
    "debounce_ms": ("timing", "debounce_ms"),
    "signal_lost_ms": ("timing", "signal_lost_ms"),
    "trend_window": ("trend", "window"),
    "trend_slope_threshold": ("trend", "slope_threshold"),
}


class ConfigError(ValueError):
    """Configuração inválida. Só é levantada na construção, nunca no loop."""


def _deep_merge(base, extra):
    merged = copy.deepcopy(base)
    for key, value in (extra or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_yaml(path):
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config '{path}' não é um mapeamento YAML")
    return data


def load_config(path=None, overrides=None):
    """
    Carrega o YAML padrão, aplica o arquivo do usuário (se houver) e depois
    os overrides (dict aninhado). Retorna o dict validado.
    """
    cfg = _read_yaml(DEFAULT_CONFIG_PATH)
    if path is not None:
        cfg = _deep_merge(cfg, _read_yaml(path))
        logger.info("Config carregada: %s", path)
    if overrides:
        cfg = _deep_merge(cfg, overrides)
    validate_config(cfg)
    return cfg


def apply_flat_options(config, options):
    """Converte window_size=..., debounce_ms=... para o formato aninhado."""
    nested = {}
    for name, value in options.items():
        if name not in FLAT_OPTIONS:
            raise ConfigError(f"Opção desconhecida: {name}")
        section, key = FLAT_OPTIONS[name]
        nested.setdefault(section, {})[key] = value
    return _deep_merge(config, nested)


def _number(cfg, section, key, minimum=None, integer=False):
    try:
        value = cfg[section][key]
    except (KeyError, TypeError):
        raise ConfigError(f"Faltando '{section}.{key}'")

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{section}.{key}' deve ser numérico, veio {value!r}")
    if not math.isfinite(value):
        raise ConfigError(f"'{section}.{key}' não é finito")
    if integer and int(value) != value:
        raise ConfigError(f"'{section}.{key}' deve ser inteiro, veio {value!r}")
    if minimum is not None and value < minimum:
        raise ConfigError(f"'{section}.{key}' deve ser >= {minimum}, veio {value!r}")
    return value


def _validate_policy(metric, policy):
    if not isinstance(policy, dict):
        raise ConfigError(f"Política de '{metric}' deve ser um mapeamento")

    mode = policy.get("mode", "relative")
    if mode not in ("relative", "absolute"):
        raise ConfigError(f"Modo inválido para '{metric}': {mode!r}")

    direction = policy.get("direction", "above")
    if direction not in ("above", "below"):
        raise ConfigError(f"Direção inválida para '{metric}': {direction!r}")

    for key in ("advisory", "critical"):
        if key in policy:
            _number({metric: policy}, metric, key)

    advisory = policy.get("advisory")
    critical = policy.get("critical")
    if mode == "absolute" and (advisory is None or critical is None):
        raise ConfigError(f"Política absoluta de '{metric}' precisa de advisory e critical")
    if advisory is not None and critical is not None:
        # Para "below" o crítico fica abaixo do advisory (ex: HNR 15 < 20 dB)
        if direction == "above" and critical < advisory:
            raise ConfigError(f"'{metric}': critical deve ser >= advisory")
        if direction == "below" and critical > advisory:
            raise ConfigError(f"'{metric}': critical deve ser <= advisory")


def validate_config(cfg):
    _number(cfg, "buffer", "window_size", minimum=1, integer=True)
    conf = _number(cfg, "buffer", "confidence_threshold", minimum=0)
    if conf > 1:
        raise ConfigError("'buffer.confidence_threshold' deve estar em [0, 1]")

    _number(cfg, "baseline", "window", minimum=1, integer=True)
    if cfg["baseline"].get("statistic", "median") not in ("median", "mean"):
        raise ConfigError("'baseline.statistic' deve ser 'median' ou 'mean'")

    advisory = _number(cfg, "thresholds", "advisory", minimum=0)
    critical = _number(cfg, "thresholds", "critical", minimum=0)
    if critical < advisory:
        raise ConfigError("'thresholds.critical' deve ser >= 'thresholds.advisory'")

    for key in ("advisory_persist_ms", "critical_persist_ms", "hysteresis_clear_ms",
                "debounce_ms", "signal_lost_ms"):
        _number(cfg, "timing", key, minimum=0)

    _number(cfg, "trend", "window", minimum=2, integer=True)
    _number(cfg, "trend", "slope_threshold", minimum=0)

    composite = cfg.get("composite") or {}
    if composite.get("enabled", False):
        weights = composite.get("weights") or {}
        if len(weights) < 2:
            raise ConfigError("'composite.weights' precisa de pelo menos duas métricas")
        for metric, weight in weights.items():
            if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight <= 0:
                raise ConfigError(f"Peso inválido para '{metric}': {weight!r}")
        if composite.get("primary") not in weights:
            raise ConfigError("'composite.primary' deve ser uma das métricas em 'weights'")
        _number(cfg, "composite", "critical_threshold", minimum=0)

    metrics = cfg.get("metrics") or {}
    if not isinstance(metrics, dict):
        raise ConfigError("'metrics' deve ser um mapeamento")
    for metric, policy in metrics.items():
        _validate_policy(metric, policy)

    return cfg
