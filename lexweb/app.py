import atexit
import logging
import os
import sys
import tempfile

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS

from .lex_tool import STAGE_TIMEOUT, LexTool
from .results import UNKNOWN, CompileResult, ValidationError
from .sessions import SessionManager, Sweeper

logger = logging.getLogger(__name__)

SCRATCH_ROOT = os.path.join(tempfile.gettempdir(), "lex-compiler-temp")
SESSION_MAX_AGE = 3600
SWEEP_INTERVAL = 600

bp = Blueprint("lexweb", __name__)


def read_compile_request(data):
    """Pull (source, input) out of a request body, accepting the old field names."""
    if not isinstance(data, dict):
        raise ValidationError("No Lex code provided")
    source = data.get("source") or data.get("lexCode")
    input_text = data.get("input") or data.get("inputText")
    if not isinstance(source, str) or not source:
        raise ValidationError("No Lex code provided")
    if input_text is not None and not isinstance(input_text, str):
        input_text = str(input_text)
    return source, input_text


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_mapping(
        SCRATCH_ROOT=SCRATCH_ROOT,
        STAGE_TIMEOUT=STAGE_TIMEOUT,
        SESSION_MAX_AGE=SESSION_MAX_AGE,
        SWEEP_INTERVAL=SWEEP_INTERVAL,
        SWEEP_ENABLED=True,
        MAX_CONTENT_LENGTH=10 * 1024 * 1024,
    )
    if test_config is not None:
        app.config.from_mapping(test_config)

    CORS(app)

    sessions = SessionManager(app.config["SCRATCH_ROOT"])
    sessions.ensure_root()
    lex_tool = LexTool(sessions, timeout=app.config["STAGE_TIMEOUT"])
    app.extensions["lex_tool"] = lex_tool

    sweeper = Sweeper(sessions, app.config["SWEEP_INTERVAL"], app.config["SESSION_MAX_AGE"])
    app.extensions["sweeper"] = sweeper
    if app.config["SWEEP_ENABLED"]:
        sweeper.start()
        atexit.register(sweeper.stop)

    logger.info("Temp directory: %s", sessions.root)
    logger.info("Platform: %s", sys.platform)
    logger.info("Flex link flags: %s", " ".join(lex_tool.profile.link_flags) or "none")

    app.register_blueprint(bp)
    return app


@bp.route("/compile", methods=["POST"])
@bp.route("/api/compile", methods=["POST"])
def compile_source():
    try:
        source, input_text = read_compile_request(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    try:
        result = current_app.extensions["lex_tool"].compile_and_run(source, input_text)
    except Exception as e:
        logger.exception("Unexpected error while compiling")
        result = CompileResult.failure(UNKNOWN, str(e))
    return jsonify(result.to_json())


@bp.route("/health", methods=["GET"])
@bp.route("/api/health", methods=["GET"])
def health():
    return jsonify({
        "status": "ok",
        "message": "Server is running",
        "platform": sys.platform,
        "scratchRoot": current_app.extensions["lex_tool"].sessions.root,
    })
