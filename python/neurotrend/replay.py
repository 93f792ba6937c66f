"""
Reprocessa um arquivo JSON Lines de saídas do analisador pelo motor.

Uso:
    python -m neurotrend.replay gravacao.jsonl --config meu_config.yaml --events eventos.jsonl

Cada linha: {"timestamp": 1200, "face_symmetry": 0.08, "confidence": 0.9, ...}
ou {"timestamp": 1300, "signal_lost": true, "error": "timeout"}.
"""
import argparse
import json
import logging
import sys

from neurotrend.core.config import load_config
from neurotrend.modules.event_log import EventLog
from neurotrend.session import AnalysisSession
from neurotrend.trend_engine import TrendEngine

logger = logging.getLogger(__name__)


def read_records(path):
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("Linha %d ignorada (JSON inválido): %s", line_no, e)


def replay(path, config_path=None, events_path=None):
    engine = TrendEngine(load_config(config_path))
    with EventLog(events_path) as event_log:
        session = AnalysisSession(engine, event_log=event_log)
        for record in read_records(path):
            session.ingest(record)
        return session.summary()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Replay de registros do analisador no motor de tendências")
    parser.add_argument("records", help="Arquivo .jsonl com as saídas do analisador")
    parser.add_argument("--config", default=None, help="YAML com overrides da configuração")
    parser.add_argument("--events", default=None, help="Arquivo .jsonl para os eventos da sessão")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    summary = replay(args.records, args.config, args.events)
    json.dump(summary, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
