from flask import Flask, send_from_directory
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import os
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

from app.hunt import Hunt  # noqa: E402

hunt = Hunt()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Models must be registered before the hunt extension looks for tables
    import app.models  # noqa: F401
    hunt.init_app(flask_app)

    from app.auth import init_admin_secret, load_admin
    init_admin_secret(flask_app)
    login_manager.user_loader(load_admin)

    from app.api.hunt import hunt_api
    flask_app.register_blueprint(hunt_api, url_prefix='/api/hunt')

    from app.api.admin import admin_api
    flask_app.register_blueprint(admin_api, url_prefix='/api/admin')

    from app.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @flask_app.route('/uploads/<path:filename>')
    def uploaded_file(filename):
        return send_from_directory(flask_app.config['UPLOAD_FOLDER'], filename)

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            os.makedirs(flask_app.config['UPLOAD_FOLDER'], exist_ok=True)

            # Fresh session seeded from config, then written as the first snapshot
            hunt.init_app(flask_app)
            hunt.store.save(hunt.session.export_state())
            print(f"Database has been reset and seeded with {len(hunt.session.teams)} team(s)!")

    flask_app.cli.add_command(db_reset_command)

    return flask_app
