from flask import Flask
from config import Config
from routes.images import bp as images_bp
from utils.log import setup_logger
import os

def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    setup_logger("dsp", app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # ensure dirs exist
    os.makedirs(app.config["UPLOAD_DIR"], exist_ok=True)
    os.makedirs(app.config["RESULT_DIR"], exist_ok=True)

    # blueprints
    app.register_blueprint(images_bp)

    return app

if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
