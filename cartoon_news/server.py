"""Flask HTTP proxy exposing the news, article, location and cartoon routes."""

from flask import Flask, jsonify, request
from flask_cors import CORS

from .errors import AppError
from .handlers import ROUTES, Services, dispatch, error_body
from .logging_config import create_execution_logger


def create_app(services: Services | None = None) -> Flask:
    """Build the Flask app.

    Args:
        services: Wired components; built from the environment when None
    """
    app = Flask(__name__)
    CORS(app)  # all origins; answers OPTIONS preflights with an empty 200

    services = services or Services()
    app.config["SERVICES"] = services
    logger = create_execution_logger("server")

    def view():
        if request.method == "POST":
            params = request.get_json(silent=True) or {}
        else:
            params = request.args.to_dict()
        logger.info(f"{request.method} {request.path}", http_method=request.method)
        status, body = dispatch(services, request.method, request.path, params)
        return jsonify(body), status

    for method, path in ROUTES:
        app.add_url_rule(
            path,
            endpoint=f"{method.lower()}_{path.strip('/').replace('/', '_')}",
            view_func=view,
            methods=[method],
        )

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        return jsonify(error_body(error)), error.status_code or 500

    return app


def main() -> None:
    from .config import Config
    from .logging_config import setup_structured_logging

    config = Config()
    server_config = config.get_server_config()
    setup_structured_logging(server_config.log_level)

    app = create_app(Services(config))
    create_execution_logger("server").info(
        f"News proxy listening on http://{server_config.host}:{server_config.port}",
        host=server_config.host,
        port=server_config.port,
    )
    app.run(host=server_config.host, port=server_config.port)


if __name__ == "__main__":
    main()
