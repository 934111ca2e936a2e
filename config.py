import os

from dotenv import load_dotenv

load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


def _engine_options():
    options = {}
    isolation_level = os.environ.get('DB_ISOLATION_LEVEL')
    if isolation_level:
        options['isolation_level'] = isolation_level
    pool_timeout = os.environ.get('DB_POOL_TIMEOUT')
    if pool_timeout:
        options['pool_timeout'] = int(pool_timeout)
    return options


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'your-secret-key-here-make-it-long'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance', 'committee.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # e.g. DB_ISOLATION_LEVEL="READ COMMITTED" on PostgreSQL
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options()

    # Upper bound for a single unit of work (PostgreSQL statement_timeout)
    TRANSACTION_TIMEOUT_SECONDS = int(os.environ.get('TRANSACTION_TIMEOUT_SECONDS', 10))

    DEFAULT_MEMBER_PASSWORD = os.environ.get('DEFAULT_MEMBER_PASSWORD', 'admin123')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_LEVEL = 'WARNING'
