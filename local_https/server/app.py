import logging
from pathlib import Path
from flask import Flask, Response
from werkzeug.exceptions import MethodNotAllowed, NotFound
from local_https.domain.cert import Cert
from local_https.server.helpers import build_response, log_request
from local_https.server.routes import files as files_blueprint

log = logging.getLogger(__name__)


def create_app(root_dir: str | Path = ".") -> Flask:
    app = Flask(__name__)
    app.extensions["root_dir"] = Path(root_dir).expanduser().resolve()
    
    setup_error_handlers(app)
    app.register_blueprint(files_blueprint)
    
    log.debug(f"Serving files from '{app.extensions['root_dir']}'")
    return app


def setup_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def handle_not_found(e: NotFound) -> Response:
        log_request(f"{e.code} {e.name}: {e.description}", "warning")
        return build_response(404, msg="page not found")
    
    @app.errorhandler(405)
    def handle_method_not_allowed(e: MethodNotAllowed) -> Response:
        log_request(f"{e.code} {e.name}: {e.description}", "warning")
        return build_response(405, msg=f"valid methods are: {', '.join(e.valid_methods or [])}")
    
    @app.errorhandler(500)
    def handle_any_exception(e) -> Response:
        log_request(f"Unhandled exception: {e}", "error")
        return build_response(500)


def serve(app: Flask, host: str, port: int, cert: Cert) -> None:
    app.run(
        host=host,
        port=port,
        ssl_context=(cert.file, cert.key_file),
        threaded=True
    )
