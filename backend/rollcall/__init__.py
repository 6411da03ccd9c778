from flask import Flask
from flask_cors import CORS
from .config import Config
from rollcall.extensions import db, jwt, limiter, migrate, settings_service
from rollcall.errors import register_error_handlers


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    from rollcall.models import TokenBlocklist
    from rollcall.routes import register_routes
    from rollcall.users import RESET_PURPOSE

    db.init_app(app)
    jwt.init_app(app)
    CORS(app, origins=app.config["CORS_ORIGINS"], supports_credentials=True)
    limiter.init_app(app)
    migrate.init_app(app, db)
    settings_service.init_app(app)
    register_error_handlers(app)
    register_routes(app)

    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        # reset tokens only unlock /auth/reset-password, never a session
        if jwt_payload.get("purpose") == RESET_PURPOSE:
            return True
        jti = jwt_payload["jti"]
        token = db.session.query(TokenBlocklist).filter_by(jti=jti).first()
        return token is not None

    with app.app_context():
        db.create_all()

    return app
