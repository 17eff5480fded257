from dotenv import load_dotenv
import os
import sys
from datetime import timedelta

load_dotenv()

def get_appdata_dir(app_name="StudioSchedulerApp"):
    # Check if running as a PyInstaller bundle
    if getattr(sys, 'frozen', False):
        appdata_path = os.path.join(os.path.dirname(sys.executable), f"{app_name}_Data")
    else:
        if os.name == 'nt':  # Windows
            base_dir = os.getenv('APPDATA', os.path.expanduser('~\\AppData\\Roaming'))
        else:  # Linux and macOS
            base_dir = os.getenv('XDG_DATA_HOME', os.path.expanduser('~/.local/share'))
        appdata_path = os.path.join(base_dir, app_name)

    os.makedirs(appdata_path, exist_ok=True)
    return appdata_path

def _env_list(name, default):
    value = os.environ.get(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(',') if item.strip()]

class Config:
    """Base configuration class"""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Session settings
    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)

    # Scheduler settings
    WEEKLY_HOUR_CEILING = float(os.environ.get('WEEKLY_HOUR_CEILING', 15.0))
    NEW_TEACHER_HOUR_CEILING = float(os.environ.get('NEW_TEACHER_HOUR_CEILING', 12.0))
    HOURS_WARNING_THRESHOLD = 12.0
    MINIMUM_WEEKLY_HOURS = 9.0
    MIN_AVERAGE_PARTICIPANTS = 6
    SHIFT_CLASS_CAP = 4
    PRIORITY_TEACHERS = _env_list(
        'PRIORITY_TEACHERS',
        ['Anisha', 'Vivaran', 'Mrigakshi', 'Pranjali', 'Atulan', 'Cauveri', 'Rohan']
    )

class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = 'DEBUG'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///database.db'

class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        f'sqlite:///{os.path.join(get_appdata_dir(), "database.db")}'

class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    LOG_LEVEL = 'WARNING'
    BCRYPT_LOG_ROUNDS = 4
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'  # In-memory database for testing

# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
