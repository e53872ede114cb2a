"""Entrypoint for running a metric threshold rule once from the command line.

Reads rule parameters from a JSON file, evaluates them against the HTTP
evaluation backend and prints every notification as a JSON line. The rule
state file is only written when the run completes.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

from . import config
from .backend import HttpEvaluationBackend
from .errors import BackendError, ConfigurationError
from .executor import execute_rule
from .host import LocalAlertHost
from .logger import setup_logging
from .models.alerts import RunResult
from .params import decode_rule_params

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metric-threshold", description="Evaluate a metric threshold rule once."
    )
    parser.add_argument("params", type=Path, help="JSON file with the rule parameters")
    parser.add_argument(
        "--state-file",
        type=Path,
        default=Path(config.STATE_FILE),
        help="JSON file holding rule state and open alerts between runs",
    )
    parser.add_argument("--rule-id", default=None, help="Rule id used in log lines")
    parser.add_argument(
        "--backend-url", default=config.BACKEND_URL, help="Evaluation backend base URL"
    )
    return parser


def render_result(result: RunResult) -> list[str]:
    lines = []
    for notification in result.notifications:
        lines.append(
            json.dumps(
                {
                    "group": notification.group,
                    "actionGroup": notification.action_group.value,
                    "context": notification.context,
                },
                default=str,
            )
        )
    for recovered in result.recovered:
        lines.append(
            json.dumps(
                {"group": recovered.group, "actionGroup": "recovered", "context": recovered.context},
                default=str,
            )
        )
    return lines


async def run_once(args: argparse.Namespace) -> RunResult:
    raw = json.loads(args.params.read_text())
    params = decode_rule_params(raw)
    host = LocalAlertHost(args.state_file)
    state = host.load_state()
    backend = HttpEvaluationBackend(
        args.backend_url, token=config.BACKEND_TOKEN, timeout=config.BACKEND_TIMEOUT_S
    )
    result = await execute_rule(
        params,
        state,
        datetime.now(timezone.utc),
        backend,
        host,
        composite_size=config.GROUP_BY_PAGE_SIZE,
        rule_id=args.rule_id or args.params.stem,
        execution_id=uuid.uuid4().hex,
    )
    host.save_state(result.state)
    return result


def run(argv: list[str] | None = None) -> int:
    setup_logging()
    config.validate_settings()
    args = build_parser().parse_args(argv)
    try:
        result = asyncio.run(run_once(args))
    except (ConfigurationError, BackendError) as e:
        logger.error("Rule execution failed: %s", e)
        return 1
    for line in render_result(result):
        print(line)
    logger.info(
        "Run finished: %d notification(s), %d recovered",
        len(result.notifications),
        len(result.recovered),
    )
    return 0


if __name__ == "__main__":
    sys.exit(run())
