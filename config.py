import os
from dotenv import load_dotenv

load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))

class Config:
    """Base configuration class."""
    # SECRET_KEY must be set via environment variable in production
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance', 'payroll.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MIGRATION_DIR = os.path.join(basedir, 'migrations')

    # The payroll endpoints are a JSON API driven by the data-access layer
    WTF_CSRF_ENABLED = False

    # Payroll policy
    TIMEZONE = os.environ.get('TIMEZONE', 'Asia/Manila')
    HOLIDAY_LOOKBACK_DAYS = int(os.environ.get('HOLIDAY_LOOKBACK_DAYS', 7))
    # Days with no prior clock data (system cutover) always earn holiday pay
    HOLIDAY_CUTOVER_DATES = ['2026-01-01']

    # Logging
    LOG_TO_STDOUT = os.environ.get('LOG_TO_STDOUT')

    @staticmethod
    def init_app(app):
        """Initialize application-specific configuration."""
        import logging
        from logging import StreamHandler

        if app.debug or app.testing:
            return

        formatter = logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        )
        if app.config.get('LOG_TO_STDOUT'):
            handler = StreamHandler()
        else:
            if not os.path.exists('logs'):
                os.mkdir('logs')
            handler = logging.FileHandler('logs/payroll.log')
        handler.setFormatter(formatter)
        handler.setLevel(logging.INFO)
        app.logger.addHandler(handler)
        app.logger.setLevel(logging.INFO)
        app.logger.info('Payroll pipeline startup')

class DevelopmentConfig(Config):
    DEBUG = True

class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'

class ProductionConfig(Config):
    DEBUG = False
    # In production, these must be set via environment variables

    @staticmethod
    def init_app(app):
        """Initialize production configuration with validation."""
        Config.init_app(app)  # Call parent init_app for logging

        # Validate required environment variables
        if not os.environ.get('SECRET_KEY'):
            raise ValueError("SECRET_KEY environment variable must be set in production!")

        if not os.environ.get('DATABASE_URL'):
            raise ValueError("DATABASE_URL environment variable must be set in production!")

        app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY')
        app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL')

config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
