import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from config import config, DevelopmentConfig

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()

def create_app(config_name='default'):
    app = Flask(__name__)
    app.config.from_object(config.get(config_name, DevelopmentConfig))

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    db.init_app(app)
    bcrypt.init_app(app)
    login_manager.init_app(app)

    with app.app_context():
        from .models import User, Location, Teacher, TeacherSpecialty, TeacherLeave, TeacherUnavailableDate, \
                            HistoricClass, Schedule, ScheduleEntry
        db.create_all()
        db.session.commit()

    @login_manager.user_loader
    def load_user(user_id):
        from .models import User
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        from flask import jsonify
        return jsonify({'success': False, 'message': 'Login required'}), 401

    from studio.routes.api import api_bp
    from studio.routes.auth import auth_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)

    return app
