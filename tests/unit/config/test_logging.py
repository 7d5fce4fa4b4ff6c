"""JsonFormatter: JSON lines with context variables and extra fields."""

import json
import logging

from workflow_dispatch.config.logging import JsonFormatter
from workflow_dispatch.core.context import run_id_ctx, workflow_ref_ctx


def _record(msg="workflow_dispatched", **extra) -> logging.LogRecord:
    logger = logging.getLogger("test.json")
    return logger.makeRecord("test.json", logging.INFO, __file__, 1, msg, None, None, extra=extra)


def test_json_formatter_includes_extra_fields():
    out = json.loads(JsonFormatter().format(_record(workflow_id=7, ref="refs/heads/main")))
    assert out["message"] == "workflow_dispatched"
    assert out["level"] == "INFO"
    assert out["logger"] == "test.json"
    assert out["workflow_id"] == 7
    assert out["ref"] == "refs/heads/main"
    assert "args" not in out and "levelno" not in out


def test_json_formatter_reads_context():
    ref_token = workflow_ref_ctx.set("deploy.yml")
    run_token = run_id_ctx.set(900)
    try:
        out = json.loads(JsonFormatter().format(_record()))
    finally:
        workflow_ref_ctx.reset(ref_token)
        run_id_ctx.reset(run_token)
    assert out["workflow_ref"] == "deploy.yml"
    assert out["run_id"] == 900


def test_json_formatter_serializes_unknown_types():
    out = json.loads(JsonFormatter().format(_record(outputs={"a": object.__name__}, when=object())))
    assert out["outputs"] == {"a": "object"}
    assert isinstance(out["when"], str)
