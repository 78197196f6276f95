#!/usr/bin/env python3
"""brief2repo web server - streams pipeline progress as server-sent events."""

import json
import logging
import os

from flask import Flask, Response, jsonify, request, stream_with_context

from config.settings import Settings
from core.errors import PipelineError
from core.orchestrator import Orchestrator
from core.state import ProgressEvent

logger = logging.getLogger(__name__)

app = Flask(__name__)
settings = Settings.from_env()
orchestrator = Orchestrator(settings)


def _sse(data):
    return f"data: {json.dumps(data)}\n\n"


def _stream(brief):
    """Serialize the pipeline run: one event per stage, then the result or the failure."""
    try:
        for item in orchestrator.stream_project(brief):
            if isinstance(item, ProgressEvent):
                yield _sse(item.to_dict())
            else:
                yield _sse({"status": "completed", "progress": 100, "result": item.to_dict()})
    except PipelineError as e:
        yield _sse({
            "status": "error",
            "progress": 0,
            "stage": e.stage.value,
            "kind": e.kind,
            "error": str(e.cause),
        })


@app.route("/api/health")
def api_health():
    return jsonify({
        "status": "ok",
        "anthropic": bool(settings.anthropic_api_key),
        "github": bool(settings.github_token),
        "vercel": settings.enable_deploy,
    })


@app.route("/api/create", methods=["POST"])
def api_create():
    data = request.get_json(silent=True)
    brief = (data or {}).get("brief")
    if not isinstance(brief, str) or not brief.strip():
        return jsonify({"error": "Missing brief"}), 400

    logger.info("Starting project for brief: %s", brief[:100])
    return Response(
        stream_with_context(_stream(brief.strip())),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = int(os.environ.get("PORT", 5001))
    logger.info("brief2repo running at http://localhost:%d", port)
    app.run(debug=False, port=port, threaded=True)
