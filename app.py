from flask import Flask
from config import Config
from extensions import db
from middleware import register_error_handlers, request_logger
from routes.guard import guard_bp
from routes.session import session_bp
from routes.admin import admin_bp
from services.container import init_guard_services
import logging
import time


def create_app(config_class=Config, clock=time.time):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Initialize extensions
    db.init_app(app)

    # Register middleware
    register_error_handlers(app)
    request_logger(app)

    # Register blueprints
    app.register_blueprint(guard_bp, url_prefix='/api/guard')
    app.register_blueprint(session_bp, url_prefix='/api/session')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')

    # Create tables
    with app.app_context():
        db.create_all()

    init_guard_services(app, clock=clock)

    @app.route('/api/health')
    def health_check():
        return {'status': 'healthy', 'message': 'HobbyGuard Running'}, 200

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True, host='0.0.0.0', port=5000)
