from __future__ import annotations

import base64
import binascii
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request

# Ensure project root is importable when running this file directly
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from coach import ByCoordinates, ByNotation, Scheduler, Settings, TurnOrchestrator
from coach.narrator import GeminiNarrator, Narrator

CANDIDATE_KINDS = ("pragmatic", "artistic")


def create_app(
    settings: Optional[Settings] = None,
    narrator: Optional[Narrator] = None,
    scheduler: Optional[Scheduler] = None,
) -> Flask:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    app = Flask(__name__)
    narrator = narrator or GeminiNarrator(api_key=settings.gemini_api_key, model=settings.gemini_model)
    coach = TurnOrchestrator(narrator, settings=settings, scheduler=scheduler)
    app.extensions["coach"] = coach
    # One request at a time may touch the session or pump the scheduler
    lock = threading.Lock()

    def state():
        # Scheduled thinking pauses and narrator calls run when someone asks.
        # Callers hold the lock.
        coach.pump()
        return jsonify(coach.session.to_dict())

    @app.get("/api/state")
    def api_state():
        with lock:
            return state()

    @app.post("/api/new")
    def api_new():
        data = request.get_json(silent=True) or {}
        with lock:
            coach.start(data.get("fen"))
            return state()

    @app.post("/api/reset")
    def api_reset():
        with lock:
            coach.reset()
            return state()

    @app.post("/api/analyze")
    def api_analyze():
        upload = request.files.get("image")
        if upload is not None:
            image = upload.read()
            mime_type = upload.mimetype or "image/jpeg"
        else:
            data = request.get_json(silent=True) or {}
            encoded = data.get("image")
            if not encoded:
                return jsonify({"error": "Missing image"}), 400
            # Accept data URLs as produced by FileReader.readAsDataURL
            if encoded.startswith("data:") and "," in encoded:
                header, encoded = encoded.split(",", 1)
                mime_type = header[5:].split(";", 1)[0] or "image/jpeg"
            else:
                mime_type = data.get("mime_type") or "image/jpeg"
            try:
                image = base64.b64decode(encoded, validate=True)
            except (binascii.Error, ValueError):
                return jsonify({"error": "Image is not valid base64"}), 400
        with lock:
            coach.load_image(image, mime_type)
            return state()

    @app.post("/api/execute")
    def api_execute():
        payload = request.get_json(silent=True) or {}
        kind = payload.get("candidate")
        if kind is not None:
            if kind not in CANDIDATE_KINDS:
                return jsonify({"error": f"Unknown candidate: {kind}"}), 400
            with lock:
                coach.execute_candidate(kind)
                return state()

        requests = []
        if payload.get("san"):
            requests.append(ByNotation(payload["san"]))
        if payload.get("from") and payload.get("to"):
            requests.append(ByCoordinates(payload["from"], payload["to"]))
        if not requests:
            return jsonify({"error": "Missing move"}), 400
        with lock:
            coach.execute(*requests)
            return state()

    @app.post("/api/attack-map")
    def api_attack_map():
        with lock:
            coach.toggle_attack_map()
            return state()

    @app.post("/api/chat")
    def api_chat():
        payload = request.get_json(silent=True) or {}
        text = (payload.get("message") or "").strip()
        if not text:
            return jsonify({"error": "Missing message"}), 400
        with lock:
            coach.chat(text)
            return state()

    @app.post("/api/continue")
    def api_continue():
        with lock:
            coach.continue_analysis()
            return state()

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
