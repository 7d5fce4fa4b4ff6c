# workflow_dispatch/core/context.py

import contextvars

workflow_ref_ctx = contextvars.ContextVar("workflow_ref", default=None)
run_id_ctx = contextvars.ContextVar("run_id", default=None)
