"""서울 부동산 공공데이터 대시보드 API."""

import logging
import os
from datetime import datetime
from typing import Optional

from flask import Flask, jsonify

from estate import config as estate_config
from estate.config import config, setup_logging
from estate.fanout import ChannelRegistry
from estate.routes import CHANNELS_EXTENSION, bp as estate_bp

logger = logging.getLogger("estate")


def create_app(config_name: Optional[str] = None) -> Flask:
    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "default")

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    app.json.ensure_ascii = False
    app.json.sort_keys = False
    app.config["CLOCK"] = datetime.now
    app.extensions[CHANNELS_EXTENSION] = ChannelRegistry()

    app.register_blueprint(estate_bp)

    @app.errorhandler(404)
    def not_found(_error):
        return jsonify({"success": False, "error": "Not found", "message": "존재하지 않는 API 경로입니다."}), 404

    logger.debug("Flask app created (config=%s)", config_name)
    return app


app = create_app()


if __name__ == "__main__":
    setup_logging()
    app.run(host=estate_config.HOST, port=estate_config.PORT)
